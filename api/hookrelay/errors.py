"""Exception hierarchy for hookrelay.

Only ``ClientInputError`` is ever surfaced to the HTTP caller. Everything else
is raised inside a single channel delivery and logged there.
"""

from typing import Optional


class HookRelayError(Exception):
    """Base class for all hookrelay errors."""


class ClientInputError(HookRelayError):
    """The inbound request body could not be read or decoded as JSON."""


class ConfigError(HookRelayError):
    """The configuration file is missing or invalid."""


# --- Rendering ---


class TemplateLoadError(HookRelayError):
    """A template file is missing, unreadable or fails to parse."""


class TemplateExecError(HookRelayError):
    """A template failed while executing against the event."""


class DecodeError(HookRelayError):
    """Rendered output is not a well-formed option document."""


# --- Variable binding encoding ---


class EncodeError(HookRelayError):
    """A datum could not be encoded as an SNMP variable binding."""

    def __init__(self, message: str, oid: str = "", type_tag: str = ""):
        super().__init__(message)
        self.oid = oid
        self.type_tag = type_tag


class UnsupportedTypeError(EncodeError):
    """The type tag is a known SNMP type that hookrelay does not encode."""


class UnknownTypeError(EncodeError):
    """The type tag is not an SNMP type at all."""


class ValueParseError(EncodeError):
    """The value is not a valid integer for a numeric type tag."""


class InvalidOidError(HookRelayError):
    """An OID is not a dotted-decimal object identifier."""

    def __init__(self, oid: str):
        super().__init__(f"invalid OID {oid!r}")
        self.oid = oid


# --- Transports ---


class ConnectError(HookRelayError):
    """A trap session could not be opened."""


class TrapSendError(HookRelayError):
    """The SNMP layer failed to transmit a trap."""


class SendError(HookRelayError):
    """A webhook request failed.

    Carries either the response ``status_code`` (>= 300) or the underlying
    transport ``cause``.
    """

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        if status_code is not None:
            message = f"when writing to [{url}] received status code: {status_code}"
        else:
            message = f"when writing to [{url}] received error: {cause}"
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause
