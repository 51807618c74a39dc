"""Principal and Clock — what the hosting environment supplies per call.

The session never authenticates anyone. The host resolves who is calling
and hands the result over as a Principal; the session only compares it
against its owner or against ledger keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol


@dataclass(frozen=True)
class Principal:
    """Identity of the caller for a single operation.

    Two principals are the same caller when their addresses match;
    ``display_name`` is informational and ignored for comparison.
    """

    address: str
    display_name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.address:
            from rollcall import InvalidArgument

            raise InvalidArgument("principal address must not be empty")

    def __str__(self) -> str:
        return self.address


class Clock(Protocol):
    """Source of the current time. Must return a timezone-aware datetime."""

    def __call__(self) -> datetime: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
