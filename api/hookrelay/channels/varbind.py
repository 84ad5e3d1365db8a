"""Typed SNMP variable binding encoder.

Type tags follow the net-snmp ``snmptrap`` command-line conventions:

    c  counter64        i  integer         n  null
    s  octet string     t  time-ticks

``a``, ``d``, ``o``, ``u`` and ``x`` are recognised but not supported.
"""

import re
from typing import Any, Iterable

from pyasn1.type import univ
from pysnmp.proto import rfc1902

from hookrelay.errors import (
    InvalidOidError,
    UnknownTypeError,
    UnsupportedTypeError,
    ValueParseError,
)

VarBind = tuple[rfc1902.ObjectName, Any]

SYS_UPTIME_OID = rfc1902.ObjectName("1.3.6.1.2.1.1.3.0")
SNMP_TRAP_OID = rfc1902.ObjectName("1.3.6.1.6.3.1.1.4.1.0")

_OID_RE = re.compile(r"\.?[0-9]+(\.[0-9]+)+")
_INT_RE = re.compile(r"[+-]?[0-9]+")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

UNSUPPORTED_TYPES = {
    "a": "IP address",
    "d": "Decimal string",
    "o": "Object ID",
    "u": "Unsigned integer",
    "x": "Hexadecimal string",
}


def parse_oid(oid: str) -> rfc1902.ObjectName:
    """Parse a dotted-decimal OID, tolerating a leading dot."""
    text = oid.strip() if isinstance(oid, str) else ""
    if not _OID_RE.fullmatch(text):
        raise InvalidOidError(oid)
    return rfc1902.ObjectName(text.lstrip("."))


def _parse_int64(oid: str, type_tag: str, value: str) -> int:
    if not _INT_RE.fullmatch(value):
        raise ValueParseError(
            f"parsing {value!r}: invalid syntax", oid=oid, type_tag=type_tag
        )
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueParseError(
            f"parsing {value!r}: value out of range", oid=oid, type_tag=type_tag
        )
    return number


def _wrap_int32(number: int) -> int:
    return ((number + 2**31) % 2**32) - 2**31


def encode(oid: str, type_tag: str, value: str) -> VarBind:
    """Encode one ``(oid, type_tag, value)`` triple as a variable binding."""
    name = parse_oid(oid)

    if type_tag == "c":
        return name, rfc1902.Counter64(_parse_int64(oid, type_tag, value) % 2**64)
    if type_tag == "i":
        return name, rfc1902.Integer32(_wrap_int32(_parse_int64(oid, type_tag, value)))
    if type_tag == "n":
        return name, univ.Null("")
    if type_tag == "s":
        return name, rfc1902.OctetString(value.encode("utf-8"))
    if type_tag == "t":
        return name, rfc1902.TimeTicks(_parse_int64(oid, type_tag, value) % 2**32)

    if type_tag in UNSUPPORTED_TYPES:
        raise UnsupportedTypeError(
            f"Snmptrap Datatype '{UNSUPPORTED_TYPES[type_tag]}' ({type_tag}) not supported",
            oid=oid,
            type_tag=type_tag,
        )
    raise UnknownTypeError(
        f"Snmptrap Datatype not known: {type_tag!r}", oid=oid, type_tag=type_tag
    )


def build_varbinds(trap_oid: str, data_list: Iterable[Any], uptime: int) -> list[VarBind]:
    """
    Build the full var-bind list for one trap.

    The list always starts with sysUpTime.0 and snmpTrapOID.0, followed by
    one binding per datum in input order. ``data_list`` items need ``oid``,
    ``type`` and ``value`` attributes. The first failure aborts the whole list.
    """
    varbinds: list[VarBind] = [
        (SYS_UPTIME_OID, rfc1902.TimeTicks(uptime % 2**32)),
        (SNMP_TRAP_OID, parse_oid(trap_oid)),
    ]
    for datum in data_list:
        varbinds.append(encode(datum.oid, datum.type, datum.value))
    return varbinds
