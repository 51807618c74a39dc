"""AttendanceSession — the state machine, access gate and attendance ledger.

One instance models one roll-call window for a single course occurrence.
The window opens once and closes once; claims made while it was open stay
readable forever after. Every writer takes the session lock and runs all
of its guards before touching any field, so a rejected call leaves the
session exactly as it found it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from rollcall import AlreadyClaimed, InvalidArgument, InvalidState, RollcallError, Unauthorized
from rollcall.audit import MultiSink, SessionEvent
from rollcall.envelope import Clock, Principal, utc_now
from rollcall.telemetry import session_attributes, start_session_span
from rollcall.types import EventKind, EventSink, SessionState

logger = logging.getLogger(__name__)

# state required -> (next state, event emitted on entering it)
_TRANSITIONS: dict[SessionState, tuple[SessionState, EventKind]] = {
    SessionState.FLOATING: (SessionState.ENABLED, EventKind.SESSION_ENABLED),
    SessionState.ENABLED: (SessionState.DISABLED, EventKind.SESSION_DISABLED),
}


class AttendanceSession:
    """Attendance for one course occurrence, owned by the principal that created it.

    Args:
        course_id: Non-empty course identifier.
        session_date: When the course takes place. Must be timezone-aware
            and strictly later than ``clock()`` at construction.
        owner: The constructing caller. Sole holder of enable/disable and
            of the by-student-id audit query.
        clock: Source of the current time. Defaults to UTC wall-clock.
        sinks: Observers notified when the session is enabled or disabled.

    Raises:
        InvalidArgument: On an empty ``course_id`` or a ``session_date``
            that is naive or not in the future.
    """

    def __init__(
        self,
        course_id: str,
        session_date: datetime,
        *,
        owner: Principal,
        clock: Clock | None = None,
        sinks: Iterable[EventSink] = (),
    ) -> None:
        clock = clock or utc_now
        _validate_course(course_id, session_date)
        if session_date <= clock():
            raise InvalidArgument("session_date must be in the future")

        self._setup(owner, course_id, session_date, clock, sinks)
        logger.info("Created session for %s on %s (owner %s)", course_id, session_date.isoformat(), owner)

    def _setup(
        self,
        owner: Principal,
        course_id: str,
        session_date: datetime,
        clock: Clock,
        sinks: Iterable[EventSink],
    ) -> None:
        self._owner = owner
        self._course_id = course_id
        self._session_date = session_date
        self._clock = clock
        self._sinks = MultiSink(sinks)
        self._lock = threading.Lock()
        self._state = SessionState.FLOATING
        self._total_attendance = 0
        self._claims_by_identity: dict[str, str] = {}
        self._identity_claimed: set[str] = set()

    # -- read-only accessors ------------------------------------------------

    @property
    def owner(self) -> Principal:
        return self._owner

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def session_date(self) -> datetime:
        return self._session_date

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_enabled(self) -> bool:
        return self._state is SessionState.ENABLED

    @property
    def total_attendance(self) -> int:
        """Number of successful claims. Readable by anyone, in any state."""
        with start_session_span("total_attendance", self._span_attributes("total_attendance")):
            return self._total_attendance

    # -- owner operations ---------------------------------------------------

    def enable(self, caller: Principal) -> None:
        """Open the attendance window. Owner only, once, from FLOATING."""
        with start_session_span("enable", self._span_attributes("enable")):
            with self._lock:
                kind = self._advance(caller, "enable", SessionState.FLOATING)
            self._notify(kind)

    def disable(self, caller: Principal) -> None:
        """Close the attendance window for good. Owner only, from ENABLED."""
        with start_session_span("disable", self._span_attributes("disable")):
            with self._lock:
                kind = self._advance(caller, "disable", SessionState.ENABLED)
            self._notify(kind)

    def flick_switch(self, caller: Principal) -> SessionState:
        """Move to the next state: enable a floating session, disable an enabled one.

        Returns the state the session ended up in.
        """
        with start_session_span("flick_switch", self._span_attributes("flick_switch")):
            with self._lock:
                self._require_owner(caller, "flick_switch")
                if self._state is SessionState.DISABLED:
                    raise self._reject(InvalidState("attendance is disabled"), "flick_switch", caller)
                kind = self._advance(caller, "flick_switch", self._state)
                state = self._state
            self._notify(kind)
            return state

    def check_attendance_by_student_id(self, caller: Principal, student_id: str) -> bool:
        """Whether anyone has ever claimed ``student_id``. Owner only.

        Answers existence only. It does not reveal which identity made the claim.
        """
        with start_session_span(
            "check_attendance_by_student_id", self._span_attributes("check_attendance_by_student_id")
        ):
            self._require_owner(caller, "check_attendance_by_student_id")
            return student_id in self._identity_claimed

    # -- participant operations ---------------------------------------------

    def give_attendance(self, caller: Principal, student_id: str) -> None:
        """Record the caller's one-time claim to be ``student_id``.

        Raises:
            InvalidState: The session is not ENABLED.
            AlreadyClaimed: The caller has a claim already, whatever it was.
        """
        if not isinstance(student_id, str):
            raise InvalidArgument("student_id must be a string")

        with start_session_span("give_attendance", self._span_attributes("give_attendance")):
            with self._lock:
                if self._state is not SessionState.ENABLED:
                    raise self._reject(InvalidState("not taking attendance"), "give_attendance", caller)
                if caller.address in self._claims_by_identity:
                    raise self._reject(AlreadyClaimed("already given"), "give_attendance", caller)

                self._claims_by_identity[caller.address] = student_id
                self._identity_claimed.add(student_id)
                self._total_attendance += 1
                total = self._total_attendance

            logger.debug("Attendance given by %s for %s (total %d)", caller, self._course_id, total)

    def check_attendance(self, caller: Principal) -> str:
        """The caller's own claimed student id, or ``""`` if they have none."""
        with start_session_span("check_attendance", self._span_attributes("check_attendance")):
            return self._claims_by_identity.get(caller.address, "")

    # -- snapshots ----------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize the full session, ledger included, for storage."""
        with self._lock:
            return {
                "owner": self._owner.address,
                "course_id": self._course_id,
                "session_date": self._session_date.isoformat(),
                "state": self._state.value,
                "total_attendance": self._total_attendance,
                "claims": dict(self._claims_by_identity),
                "claimed_student_ids": sorted(self._identity_claimed),
            }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        clock: Clock | None = None,
        sinks: Iterable[EventSink] = (),
    ) -> AttendanceSession:
        """Rebuild a session from :meth:`to_dict` output.

        The future-date check is not repeated: a stored session stays
        auditable after its date has passed.
        """
        try:
            owner = Principal(data["owner"])
            course_id = data["course_id"]
            session_date = datetime.fromisoformat(data["session_date"])
            state = SessionState(data["state"])
            total = int(data["total_attendance"])
            claims = {str(k): str(v) for k, v in data.get("claims", {}).items()}
            claimed = {str(s) for s in data.get("claimed_student_ids", [])}
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidArgument(f"malformed session snapshot: {e}") from e

        _validate_course(course_id, session_date)
        if total != len(claims):
            raise InvalidArgument(
                f"total_attendance {total} does not match {len(claims)} recorded claims"
            )
        if claimed != set(claims.values()):
            raise InvalidArgument("claimed_student_ids does not match the ids recorded in claims")
        if claims and state is SessionState.FLOATING:
            raise InvalidArgument("a floating session cannot hold claims")

        session = cls.__new__(cls)
        session._setup(owner, course_id, session_date, clock or utc_now, sinks)
        session._state = state
        session._total_attendance = total
        session._claims_by_identity = claims
        session._identity_claimed = claimed
        return session

    # -- internals ----------------------------------------------------------

    def _advance(self, caller: Principal, operation: str, required: SessionState) -> EventKind:
        # Caller holds self._lock.
        self._require_owner(caller, operation)
        if self._state is not required:
            raise self._reject(InvalidState(self._state_message(required)), operation, caller)
        self._state, kind = _TRANSITIONS[required]
        logger.info("Session %s is now %s", self._course_id, self._state.value)
        return kind

    def _state_message(self, required: SessionState) -> str:
        if self._state is SessionState.DISABLED:
            return "attendance is disabled"
        if required is SessionState.FLOATING:
            return "attendance is already enabled"
        return "attendance is not enabled"

    def _require_owner(self, caller: Principal, operation: str) -> None:
        if caller != self._owner:
            raise self._reject(Unauthorized("method reserved for owner"), operation, caller)

    def _reject(self, error: RollcallError, operation: str, caller: Principal) -> RollcallError:
        logger.info(
            "Rejected %s by %s on %s: %s (%s)",
            operation,
            caller,
            self._course_id,
            error,
            type(error).__name__,
        )
        return error

    def _notify(self, kind: EventKind) -> None:
        event = SessionEvent(
            kind=kind,
            owner=self._owner,
            course_id=self._course_id,
            session_date=self._session_date,
            timestamp=self._clock(),
        )
        self._sinks.emit(event)

    def _span_attributes(self, operation: str) -> dict[str, Any]:
        return session_attributes(operation, self._course_id, self._state.value)

    def __repr__(self) -> str:
        return (
            f"AttendanceSession(course_id={self._course_id!r}, "
            f"session_date={self._session_date.isoformat()!r}, state={self._state.value!r}, "
            f"total_attendance={self._total_attendance})"
        )


def _validate_course(course_id: Any, session_date: Any) -> None:
    if not course_id or not isinstance(course_id, str):
        raise InvalidArgument("missing course_id")
    if not isinstance(session_date, datetime):
        raise InvalidArgument("session_date must be a datetime")
    if session_date.tzinfo is None:
        raise InvalidArgument("session_date must be timezone-aware")
