from __future__ import annotations
import threading
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from .impact_model import AnalysisResult, AsteroidInput


@dataclass(frozen=True)
class HistoryItem:
    id: str
    input: AsteroidInput
    result: AnalysisResult

    def to_dict(self) -> dict:
        return {"id": self.id, "input": self.input.to_dict(), "result": self.result.to_dict()}


class HistoryStore:
    """Bounded in-memory log of successful analyses, most recent first."""

    def __init__(self, limit: int = 50):
        self._items: Deque[HistoryItem] = deque(maxlen=limit)
        self._lock = threading.Lock()

    def add(self, inp: AsteroidInput, result: AnalysisResult) -> HistoryItem:
        item = HistoryItem(id=uuid.uuid4().hex, input=inp, result=result)
        with self._lock:
            self._items.appendleft(item)
        return item

    def list(self) -> List[HistoryItem]:
        with self._lock:
            return list(self._items)

    def get(self, item_id: str) -> Optional[HistoryItem]:
        with self._lock:
            for item in self._items:
                if item.id == item_id:
                    return item
        return None

    def clear(self) -> int:
        with self._lock:
            n = len(self._items)
            self._items.clear()
        return n

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
