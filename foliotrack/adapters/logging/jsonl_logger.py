from __future__ import annotations

import json
import os
import threading
from dataclasses import fields, is_dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable

from foliotrack.core.valuation.ports import EventBus


class JsonlEventLogger:
    """Appends every run lifecycle event to a JSON-lines journal."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._lock = threading.Lock()

    def subscribe(self, bus: EventBus) -> Callable[[], None]:
        return bus.subscribe(object, self.handle)

    def handle(self, event: object) -> None:
        record = {
            "logged_at": datetime.now(timezone.utc).isoformat(),
            "event_type": type(event).__name__,
            "event": _to_json(event),
        }
        line = json.dumps(record, sort_keys=True)
        with self._lock:
            folder = os.path.dirname(self._path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as journal:
                journal.write(line + "\n")


def _to_json(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: _to_json(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        # exact decimal text
        return str(value)
    if isinstance(value, dict):
        return {str(key): _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_json(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return repr(value)
