"""Bounded, newest-first log of AI-check attempts for the admin page."""
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from debate_backend import config
from debate_backend.domain import utcnow

PROMPT_NOT_SENT = "Error occurred before prompt was sent"


@dataclass
class DebugLogEntry:
    block_id: str
    block_type: str
    input_text: str
    prompt: str
    raw_response: str = ""
    parsed_suggestions: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)


class AiDebugLog:
    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or config.MAX_DEBUG_LOGS
        self._entries: Deque[DebugLogEntry] = deque(maxlen=self.max_entries)

    def record(self, entry: DebugLogEntry) -> None:
        self._entries.appendleft(entry)

    def entries(self) -> List[DebugLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
