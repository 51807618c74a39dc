"""HTTP event sinks for Rollcall."""

from __future__ import annotations

from rollcall.sinks.webhook import WebhookSink

__all__ = [
    "WebhookSink",
]
