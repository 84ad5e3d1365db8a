"""SNMPv2c trap channel transport."""

import logging
import time
from typing import Iterable, Optional

from pysnmp.error import PySnmpError
from pysnmp.hlapi.v3arch.asyncio import (
    CommunityData,
    ContextData,
    ObjectIdentity,
    ObjectType,
    SnmpEngine,
    UdpTransportTarget,
    send_notification,
)

from hookrelay.channels.varbind import build_varbinds
from hookrelay.errors import ConnectError, TrapSendError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 162

_STARTED = time.monotonic()


def uptime_ticks() -> int:
    """Process uptime in hundredths of a second."""
    return int((time.monotonic() - _STARTED) * 100)


def parse_address(addr: str) -> tuple[str, int]:
    """Split ``host[:port]``; IPv6 hosts must be bracketed when a port is given."""
    addr = (addr or "").strip()
    if not addr:
        raise ValueError("address is empty")

    if addr.startswith("["):
        host, sep, rest = addr[1:].partition("]")
        if not sep:
            raise ValueError(f"missing ']' in address {addr!r}")
        port_text = rest[1:] if rest.startswith(":") else rest
    elif addr.count(":") == 1:
        host, _, port_text = addr.partition(":")
    else:
        host, port_text = addr, ""

    if not host:
        raise ValueError(f"missing host in address {addr!r}")
    if not port_text:
        return host, DEFAULT_PORT
    if not port_text.isdigit() or not 0 < int(port_text) < 65536:
        raise ValueError(f"invalid port in address {addr!r}")
    return host, int(port_text)


class TrapSession:
    """
    A short-lived SNMPv2c session to one trap receiver.

    Usage::

        async with TrapSession(config) as session:
            await session.send_trap(trap_oid, data_list)

    A session wraps the traps produced for one channel and one event. It is
    never shared between channels or reused across events.
    """

    def __init__(self, config):
        self.addr = config.addr
        self.community = config.community
        self.retries = config.retries
        self.timeout = config.timeout
        self._engine: Optional[SnmpEngine] = None
        self._target: Optional[UdpTransportTarget] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self) -> None:
        if not self.community:
            raise ConnectError(f"invalid SNMP configuration for {self.addr}: community is empty")
        try:
            host, port = parse_address(self.addr)
        except ValueError as e:
            raise ConnectError(f"invalid SNMP configuration: {e}") from e

        engine = SnmpEngine()
        try:
            self._target = await UdpTransportTarget.create(
                (host, port), timeout=self.timeout, retries=self.retries
            )
        except (PySnmpError, OSError) as e:
            engine.close_dispatcher()
            raise ConnectError(f"invalid SNMP configuration for {self.addr}: {e}") from e
        self._engine = engine

    async def send_trap(self, trap_oid: str, data_list: Iterable) -> None:
        """
        Encode and send one trap.

        Encoding errors (InvalidOidError, EncodeError subclasses) propagate
        before anything is sent. Transport failures raise TrapSendError.
        """
        if self._engine is None:
            raise TrapSendError(f"trap session to {self.addr} is not open")

        varbinds = build_varbinds(trap_oid, data_list, uptime_ticks())

        try:
            error_indication, _, _, _ = await send_notification(
                self._engine,
                CommunityData(self.community, mpModel=1),
                self._target,
                ContextData(),
                "trap",
                *[ObjectType(ObjectIdentity(oid), value) for oid, value in varbinds],
            )
        except (PySnmpError, OSError) as e:
            raise TrapSendError(f"failed to send SNMP trap to {self.addr}: {e}") from e

        if error_indication:
            raise TrapSendError(f"failed to send SNMP trap to {self.addr}: {error_indication}")

        logger.debug("Trap %s sent to %s with %d bindings", trap_oid, self.addr, len(varbinds))

    async def close(self) -> None:
        if self._engine is not None:
            self._engine.close_dispatcher()
        self._engine = None
        self._target = None

    async def __aenter__(self) -> "TrapSession":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
