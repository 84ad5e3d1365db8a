"""Config validation helpers for receivers and channels."""

import re
from typing import Optional, Union
from urllib.parse import urlparse

from hookrelay.channels.snmptrap import parse_address

VALID_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE"}

_DURATION_RE = re.compile(r"([0-9]*\.?[0-9]+)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def validate_url(value, field_name: str = "url") -> Optional[str]:
    if not isinstance(value, str) or not value:
        return f"Missing required field: {field_name}"
    try:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https"):
            return f"{field_name} must use http or https protocol"
        if not parsed.netloc:
            return f"{field_name} is not a valid URL"
    except ValueError:
        return f"{field_name} is not a valid URL"
    return None


def validate_method(value) -> Optional[str]:
    if not isinstance(value, str) or value.upper() not in VALID_METHODS:
        return f"method must be one of {', '.join(sorted(VALID_METHODS))}"
    return None


def validate_address(value) -> Optional[str]:
    try:
        parse_address(value)
    except (ValueError, TypeError, AttributeError) as e:
        return f"addr is not a valid host[:port]: {e}"
    return None


def validate_path(value) -> Optional[str]:
    if not isinstance(value, str) or not value.startswith("/"):
        return "path must start with '/'"
    return None


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Parse a timeout given as seconds or as a duration string
    (``500ms``, ``10s``, ``1m``, ``1m30s``).
    """
    if isinstance(value, bool):
        raise ValueError("duration must be a number or a string such as '10s'")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_RE.findall(text)
            if not parts or "".join(n + u for n, u in parts) != text:
                raise ValueError(f"invalid duration {value!r}")
            seconds = sum(float(n) * _DURATION_UNITS[u] for n, u in parts)
    if seconds <= 0:
        raise ValueError(f"duration must be positive, got {value!r}")
    return seconds
