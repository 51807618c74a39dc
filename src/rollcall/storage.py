"""StorageBackend protocol, MemoryBackend, FileBackend, and SessionStore.

Sessions are never destroyed, so hosts need somewhere to keep them between
processes. SessionStore turns a session into its snapshot dict and hands
it to a key/value backend; how the backend persists it is its own business.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from rollcall.envelope import Clock
from rollcall.session import AttendanceSession
from rollcall.types import EventSink

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Protocol for persistent key/value storage of session snapshots."""

    def get(self, key: str) -> Any | None:
        """Retrieve a value by key."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a value by key."""
        ...

    def delete(self, key: str) -> None:
        """Delete a value by key."""
        ...

    def list_keys(self, prefix: str = "") -> list[str]:
        """List all keys with the given prefix."""
        ...


class MemoryBackend:
    """In-memory storage backend for development and testing."""

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self._store.get(key)

    def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def list_keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._store if k.startswith(prefix)]


class FileBackend:
    """Stores each key as a JSON document inside a directory."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}.json"

    def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, sort_keys=True), encoding="utf-8")
        tmp.replace(path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def list_keys(self, prefix: str = "") -> list[str]:
        return sorted(p.stem for p in self._dir.glob("*.json") if p.stem.startswith(prefix))


class SessionStore:
    """Saves and restores AttendanceSession snapshots through a StorageBackend."""

    def __init__(self, backend: StorageBackend, prefix: str = "session:") -> None:
        self._backend = backend
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def save(self, key: str, session: AttendanceSession) -> None:
        self._backend.set(self._key(key), session.to_dict())
        logger.debug("Saved session %s (%s)", key, session.state.value)

    def load(
        self,
        key: str,
        *,
        clock: Clock | None = None,
        sinks: Iterable[EventSink] = (),
    ) -> AttendanceSession | None:
        """Restore a stored session, or return None when nothing is stored under ``key``."""
        data = self._backend.get(self._key(key))
        if data is None:
            return None
        return AttendanceSession.from_dict(data, clock=clock, sinks=sinks)

    def exists(self, key: str) -> bool:
        return self._backend.get(self._key(key)) is not None

    def keys(self) -> list[str]:
        return [k[len(self._prefix):] for k in self._backend.list_keys(self._prefix)]
