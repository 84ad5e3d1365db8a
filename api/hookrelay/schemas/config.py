"""Pydantic schemas for the routing table configuration file."""

from typing import Any, ClassVar, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hookrelay.channels import ChannelKind
from hookrelay.channels.validate import (
    parse_duration,
    validate_address,
    validate_method,
    validate_path,
    validate_url,
)


def _check(error: Optional[str], value: Any) -> Any:
    if error:
        raise ValueError(error)
    return value


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class GlobalConfig(_StrictModel):
    listen_address: str = Field(..., description="host:port the HTTP server binds to")


class WebhookChannelConfig(_StrictModel):
    kind: ClassVar[ChannelKind] = ChannelKind.WEBHOOK

    url: str
    method: str = "POST"
    timeout: float = Field(10.0, description="Seconds, or a duration such as '10s'")
    username: Optional[str] = None
    password: Optional[str] = None
    headers: dict[str, str] = Field(default_factory=dict)
    option_templates: tuple[str, ...] = ()

    @field_validator("url")
    @classmethod
    def _url(cls, v: str) -> str:
        return _check(validate_url(v, "url"), v)

    @field_validator("method", mode="before")
    @classmethod
    def _method(cls, v: Any) -> Any:
        if v is None or v == "":
            return "POST"
        _check(validate_method(v), v)
        return v.upper()

    @field_validator("timeout", mode="before")
    @classmethod
    def _timeout(cls, v: Any) -> float:
        return parse_duration(v)

    @property
    def target(self) -> str:
        return self.url


class SnmpTrapChannelConfig(_StrictModel):
    kind: ClassVar[ChannelKind] = ChannelKind.SNMPTRAP

    addr: str
    community: str = "public"
    retries: int = Field(1, ge=0)
    timeout: float = Field(1.0, description="Seconds, or a duration such as '1s'")
    option_templates: tuple[str, ...] = ()

    @field_validator("addr")
    @classmethod
    def _addr(cls, v: str) -> str:
        return _check(validate_address(v), v)

    @field_validator("timeout", mode="before")
    @classmethod
    def _timeout(cls, v: Any) -> float:
        return parse_duration(v)

    @property
    def target(self) -> str:
        return self.addr


ChannelConfig = Union[WebhookChannelConfig, SnmpTrapChannelConfig]


class ReceiverConfig(_StrictModel):
    path: str
    webhook_configs: tuple[WebhookChannelConfig, ...] = ()
    snmptrap_configs: tuple[SnmpTrapChannelConfig, ...] = ()

    @field_validator("path")
    @classmethod
    def _path(cls, v: str) -> str:
        return _check(validate_path(v), v)

    @field_validator("webhook_configs", "snmptrap_configs", mode="before")
    @classmethod
    def _null_list(cls, v: Any) -> Any:
        return () if v is None else v

    @property
    def channels(self) -> Iterator[ChannelConfig]:
        """All channels of this receiver: webhooks first, then traps."""
        yield from self.webhook_configs
        yield from self.snmptrap_configs


class RelayConfig(_StrictModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    global_: GlobalConfig = Field(..., alias="global")
    receivers: tuple[ReceiverConfig, ...] = ()

    @field_validator("receivers", mode="before")
    @classmethod
    def _null_receivers(cls, v: Any) -> Any:
        return () if v is None else v
