"""Shared fixtures: a frozen clock, principals, and a session factory."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from rollcall import AttendanceSession, MemorySink, Principal

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
COURSE_ID = "course101"


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def session_date():
    return NOW + timedelta(days=1)


@pytest.fixture
def owner():
    return Principal("0xowner", display_name="Course owner")


@pytest.fixture
def other():
    return Principal("0xother")


@pytest.fixture
def many_callers():
    return [Principal(f"0xstudent{i}") for i in range(4)]


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def session(owner, session_date, clock, sink):
    return AttendanceSession(COURSE_ID, session_date, owner=owner, clock=clock, sinks=[sink])


@pytest.fixture
def enabled_session(session, owner):
    session.enable(owner)
    return session
