"""JSONL event logger - append-only record of conversation activity"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class EventLogger:
    """Append-only JSONL event log.

    Every event carries a UTC timestamp, a monotonic `sequence` number and
    its `event_type`. With no output path the logger only keeps the
    in-memory tail, which is what tests use.
    """

    output_path: Path | None
    _sequence: int

    def __init__(self, output_path: str | Path | None = None, keep_recent: int = 200) -> None:
        """Initialize the event logger.

        Args:
            output_path: JSONL file to append to; parent dirs are created
            keep_recent: How many events read_recent() can return
        """
        self.output_path = Path(output_path) if output_path else None
        if self.output_path is not None:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._sequence = 0
        self._keep_recent = keep_recent
        self._recent: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def log(self, event_type: str, data: dict[str, Any]) -> dict[str, Any]:
        """Log an event and return the record that was written."""
        with self._lock:
            self._sequence += 1
            event: dict[str, Any] = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "sequence": self._sequence,
                "event_type": event_type,
                **data,
            }
            if self.output_path is not None:
                with open(self.output_path, "a") as f:
                    f.write(json.dumps(event, default=str) + "\n")
            self._recent.append(event)
            if len(self._recent) > self._keep_recent:
                del self._recent[: len(self._recent) - self._keep_recent]
        return event

    def read_recent(self, n: int | None = None, event_type: str | None = None) -> list[dict[str, Any]]:
        """Most recent events, oldest first, optionally filtered by type."""
        with self._lock:
            events = [
                e for e in self._recent
                if event_type is None or e["event_type"] == event_type
            ]
        return events if n is None else events[-n:]

    @property
    def sequence(self) -> int:
        return self._sequence
