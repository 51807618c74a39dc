"""OpenTelemetry span helpers.

Spans go through the global tracer provider. Without an SDK installed by
the host, the API hands back non-recording spans and this costs nothing.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace

_tracer = trace.get_tracer("rollcall")


def start_session_span(name: str, attributes: dict[str, Any] | None = None) -> Any:
    """Start a span for a session operation. Returns a context manager."""
    return _tracer.start_as_current_span(f"rollcall.{name}", attributes=attributes)


def session_attributes(operation: str, course_id: str, state: str) -> dict[str, Any]:
    return {
        "rollcall.operation": operation,
        "rollcall.course_id": course_id,
        "rollcall.state": state,
    }
