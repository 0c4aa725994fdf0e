from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    WELCOME = "welcome"
    STATUS = "status"
    RESULTS = "results"
    ERROR = "error"


@dataclass
class ChannelEvent:
    """One push notification for the WebSocket and SSE channels."""

    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {"type": self.event.value, **self.data}
