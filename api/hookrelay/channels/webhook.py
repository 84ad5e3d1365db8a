"""Generic webhook channel transport."""

import logging
from typing import Optional

import httpx

from hookrelay.errors import SendError

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "POST"
DEFAULT_TIMEOUT = 10.0


def http_client(
    timeout: float = DEFAULT_TIMEOUT,
    follow_redirects: bool = True,
    **kwargs,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=follow_redirects,
        trust_env=True,
        **kwargs,
    )


class WebhookClient:
    """Send rendered bodies to an HTTP endpoint."""

    def __init__(
        self,
        method: str = DEFAULT_METHOD,
        timeout: float = DEFAULT_TIMEOUT,
        username: Optional[str] = None,
        password: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.method = (method or DEFAULT_METHOD).upper()
        self.timeout = timeout or DEFAULT_TIMEOUT
        self.username = username
        self.password = password
        self.headers = dict(headers or {})
        self._transport = transport

    @classmethod
    def from_config(cls, config) -> "WebhookClient":
        """
        Config shape: WebhookChannelConfig
        (method, timeout, username, password, headers)
        """
        return cls(
            method=config.method,
            timeout=config.timeout,
            username=config.username,
            password=config.password,
            headers=config.headers,
        )

    def _auth(self) -> Optional[httpx.BasicAuth]:
        if self.username or self.password:
            return httpx.BasicAuth(self.username or "", self.password or "")
        return None

    async def send(self, url: str, body: bytes) -> bytes:
        """
        Issue one request and return the response body.

        Raises SendError with ``status_code`` set for responses >= 300, or
        with ``cause`` set when the request never got a response.
        """
        kwargs = {}
        if self._transport is not None:
            kwargs["transport"] = self._transport

        try:
            async with http_client(timeout=self.timeout, **kwargs) as client:
                response = await client.request(
                    method=self.method,
                    url=url,
                    headers=self.headers,
                    content=body,
                    auth=self._auth(),
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SendError(url, cause=e) from e

        if response.status_code >= 300:
            logger.debug("Webhook %s answered %s: %s", url, response.status_code, response.text[:200])
            raise SendError(url, status_code=response.status_code)

        return response.content
