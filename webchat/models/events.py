from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    STATUS = "status"
    SEARCH_RESULT = "searchResult"
    COMPLETION = "completion"
    ERROR = "error"


class Status(str, Enum):
    SEARCHING = "searching"
    SCRAPING = "scraping"


@dataclass
class ChatEvent:
    event: EventType
    content: Any = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def terminal(self) -> bool:
        return self.event in (EventType.COMPLETION, EventType.ERROR)

    def payload(self) -> dict[str, Any]:
        return {"type": self.event.value, "content": self.content, **self.data}

    def format(self) -> str:
        return f"data: {json.dumps(self.payload())}\n\n"
