"""Base types for delivery channels."""

from dataclasses import dataclass
from enum import Enum


class ChannelKind(str, Enum):
    WEBHOOK = "webhook"
    SNMPTRAP = "snmptrap"


ALL_CHANNEL_KINDS = frozenset(ChannelKind)


@dataclass(frozen=True)
class ChannelContext:
    """Identifies one delivery for logging."""
    receiver_path: str
    kind: ChannelKind
    target: str
    templates: tuple[str, ...]

    def __str__(self) -> str:
        return f"{self.kind.value} {self.target} (receiver {self.receiver_path}, templates {list(self.templates)})"
