"""Route inbound events to receivers and fan out to their channels."""

import asyncio
import json
import logging
import re
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Collection, Optional, Sequence

from hookrelay.channels import ALL_CHANNEL_KINDS, ChannelContext, ChannelKind
from hookrelay.channels.options import decode_body, decode_options
from hookrelay.channels.render import render
from hookrelay.channels.snmptrap import TrapSession
from hookrelay.channels.webhook import WebhookClient
from hookrelay.errors import ClientInputError, HookRelayError
from hookrelay.schemas.config import (
    ReceiverConfig,
    SnmpTrapChannelConfig,
    WebhookChannelConfig,
)

logger = logging.getLogger(__name__)


_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _scrub(value: Any) -> Any:
    """Replace unpaired surrogates (from escapes like \\ud800) with U+FFFD."""
    if isinstance(value, str):
        return _LONE_SURROGATE.sub("\ufffd", value)
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    if isinstance(value, dict):
        return {_scrub(key): _scrub(item) for key, item in value.items()}
    return value


def decode_event(raw_body: bytes) -> Any:
    """
    Decode a request body as JSON. Any JSON value, including null, is valid.

    Invalid UTF-8 and unpaired surrogate escapes inside strings become U+FFFD.
    """
    try:
        event = json.loads(raw_body.decode("utf-8", "replace"), parse_constant=_reject_constant)
    except ValueError as e:
        raise ClientInputError(f"request body is not valid JSON: {e}") from e
    return _scrub(event)


class Dispatcher:
    """
    Match inbound events to receivers and deliver them.

    Every channel of every matching receiver gets its own asyncio task.
    ``handle`` never waits for those tasks, and a failure in one task is
    logged there without touching the caller or sibling deliveries.
    """

    def __init__(
        self,
        receivers: Sequence[ReceiverConfig],
        *,
        enabled_kinds: Collection[ChannelKind] = ALL_CHANNEL_KINDS,
        webhook_client_factory: Callable[[WebhookChannelConfig], WebhookClient] = WebhookClient.from_config,
        trap_session_factory: Callable[[SnmpTrapChannelConfig], TrapSession] = TrapSession,
        max_concurrency: int = 0,
    ):
        self.receivers = tuple(receivers)
        self.enabled_kinds = frozenset(enabled_kinds)
        self._webhook_client_factory = webhook_client_factory
        self._trap_session_factory = trap_session_factory
        self._max_concurrency = max_concurrency
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: set[asyncio.Task] = set()

        for receiver in self.receivers:
            for channel in receiver.channels:
                if channel.kind not in self.enabled_kinds:
                    logger.warning(
                        "Receiver %s has a %s channel (%s) but %s delivery is disabled",
                        receiver.path, channel.kind.value, channel.target, channel.kind.value,
                    )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def match(self, path: str) -> list[ReceiverConfig]:
        return [receiver for receiver in self.receivers if receiver.path == path]

    def handle(self, path: str, raw_body: bytes) -> HTTPStatus:
        """
        Accept one inbound event.

        Raises ClientInputError if the body is not JSON; nothing is spawned in
        that case. Otherwise returns 204 immediately, whether or not any
        receiver matched.
        """
        event = decode_event(raw_body)

        receivers = self.match(path)
        if not receivers:
            logger.debug("No receiver configured for %s", path)

        for receiver in receivers:
            for channel in receiver.channels:
                if channel.kind not in self.enabled_kinds:
                    continue
                ctx = ChannelContext(
                    receiver_path=receiver.path,
                    kind=channel.kind,
                    target=channel.target,
                    templates=tuple(channel.option_templates),
                )
                if channel.kind is ChannelKind.WEBHOOK:
                    self._spawn(self._deliver_webhook(channel, event, ctx), ctx)
                else:
                    self._spawn(self._deliver_traps(channel, event, ctx), ctx)

        return HTTPStatus.NO_CONTENT

    def _spawn(self, coro: Awaitable[None], ctx: ChannelContext) -> None:
        task = asyncio.create_task(self._run(coro, ctx), name=f"deliver {ctx.kind.value} {ctx.target}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, coro: Awaitable[None], ctx: ChannelContext) -> None:
        try:
            if self._max_concurrency > 0:
                if self._semaphore is None:
                    self._semaphore = asyncio.Semaphore(self._max_concurrency)
                async with self._semaphore:
                    await coro
            else:
                await coro
        except HookRelayError as e:
            logger.error("Delivery via %s failed: %s", ctx, e)
        except Exception:
            logger.exception("Unexpected error delivering via %s", ctx)

    async def _deliver_webhook(self, channel: WebhookChannelConfig, event: Any, ctx: ChannelContext) -> None:
        text = await asyncio.to_thread(render, channel.option_templates, event)
        body = decode_body(text)

        client = self._webhook_client_factory(channel)
        response = await client.send(channel.url, body)
        logger.info("Delivered event to webhook %s (receiver %s)", channel.url, ctx.receiver_path)
        logger.debug("Webhook %s responded: %r", channel.url, response[:200])

    async def _deliver_traps(self, channel: SnmpTrapChannelConfig, event: Any, ctx: ChannelContext) -> None:
        text = await asyncio.to_thread(render, channel.option_templates, event)
        options = decode_options(text)
        if not options:
            logger.debug("No trap options rendered for %s", ctx)
            return

        sent = 0
        async with self._trap_session_factory(channel) as session:
            for option in options:
                try:
                    await session.send_trap(option.trap_oid, option.data_list)
                except HookRelayError as e:
                    logger.error("Trap %s via %s failed: %s", option.trap_oid, ctx, e)
                    continue
                sent += 1
                logger.info(
                    "Sent trap %s to %s with %d data bindings",
                    option.trap_oid, channel.addr, len(option.data_list),
                )
        logger.debug("Sent %d/%d traps via %s", sent, len(options), ctx)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight deliveries; give up after ``timeout`` seconds."""
        tasks = list(self._tasks)
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning("%d deliveries still in flight after %.1fs", len(pending), timeout or 0)
