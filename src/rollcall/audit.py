"""SessionEvent and the built-in sinks: StdoutSink, FileSink, MemorySink, MultiSink.

Enabling and disabling a session produce a SessionEvent that is handed to
every configured sink. Delivery is fire-and-forget from the session's
point of view: it never waits on, or learns about, the outcome.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from rollcall.envelope import Principal, utc_now
from rollcall.types import EventKind, EventSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionEvent:
    """A session transition, as seen by external observers."""

    kind: EventKind
    owner: Principal
    course_id: str
    session_date: datetime
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "owner": self.owner.address,
            "course_id": self.course_id,
            "session_date": self.session_date.isoformat(),
            "timestamp": self.timestamp.isoformat(),
        }


class StdoutSink:
    """Writes session events to stdout as JSON lines."""

    def emit(self, event: SessionEvent) -> None:
        json.dump(event.to_dict(), sys.stdout)
        sys.stdout.write("\n")
        sys.stdout.flush()


class FileSink:
    """Appends session events to a file as JSON lines."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, event: SessionEvent) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            json.dump(event.to_dict(), f)
            f.write("\n")


class MemorySink:
    """Keeps every event in a list. Useful for tests and in-process observers."""

    def __init__(self) -> None:
        self.events: list[SessionEvent] = []

    def emit(self, event: SessionEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[EventKind]:
        return [e.kind for e in self.events]


class MultiSink:
    """Fans one event out to several sinks.

    A sink that raises does not stop delivery to the ones after it.
    """

    def __init__(self, sinks: Iterable[EventSink] = ()) -> None:
        self._sinks: list[EventSink] = list(sinks)

    def __len__(self) -> int:
        return len(self._sinks)

    def add(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def emit(self, event: SessionEvent) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.exception("Sink %s failed to emit %s", type(sink).__name__, event.kind.value)
