"""Rollcall — one-shot attendance sessions with an owner-controlled window."""

from __future__ import annotations

__version__ = "0.1.0"


class RollcallError(Exception):
    """Base class for every error raised by Rollcall."""


class InvalidArgument(RollcallError, ValueError):
    """Bad input to session construction or restore."""


class Unauthorized(RollcallError, PermissionError):
    """A non-owner called an owner-only operation."""


class InvalidState(RollcallError):
    """The operation is not allowed in the session's current state."""


class AlreadyClaimed(RollcallError):
    """The caller has already given attendance for this session."""


class RollcallConfigError(RollcallError):
    """A deployment file could not be loaded or validated."""


# Submodules import the errors above from this package, so these imports stay below them.
from rollcall.audit import FileSink, MemorySink, MultiSink, SessionEvent, StdoutSink  # noqa: E402
from rollcall.envelope import Clock, Principal, utc_now  # noqa: E402
from rollcall.session import AttendanceSession  # noqa: E402
from rollcall.storage import FileBackend, MemoryBackend, SessionStore, StorageBackend  # noqa: E402
from rollcall.types import EventKind, EventSink, SessionState  # noqa: E402

__all__ = [
    "AlreadyClaimed",
    "AttendanceSession",
    "Clock",
    "EventKind",
    "EventSink",
    "FileBackend",
    "FileSink",
    "InvalidArgument",
    "InvalidState",
    "MemoryBackend",
    "MemorySink",
    "MultiSink",
    "Principal",
    "RollcallConfigError",
    "RollcallError",
    "SessionEvent",
    "SessionState",
    "SessionStore",
    "StdoutSink",
    "StorageBackend",
    "Unauthorized",
    "__version__",
    "utc_now",
]
