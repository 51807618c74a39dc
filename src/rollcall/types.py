"""Shared types, enums, and protocols for Rollcall."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rollcall.audit import SessionEvent


class SessionState(Enum):
    """Lifecycle of an attendance session.

    The only reachable path is FLOATING -> ENABLED -> DISABLED.
    """

    FLOATING = "floating"
    ENABLED = "enabled"
    DISABLED = "disabled"


class EventKind(Enum):
    """Notifications emitted on session transitions."""

    SESSION_ENABLED = "session_enabled"
    SESSION_DISABLED = "session_disabled"


@runtime_checkable
class EventSink(Protocol):
    """Protocol for session event consumers."""

    def emit(self, event: SessionEvent) -> None: ...
