"""Build sinks and sessions from a validated deployment file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import aiohttp

from rollcall.audit import FileSink, StdoutSink
from rollcall.envelope import Clock, Principal
from rollcall.session import AttendanceSession
from rollcall.sinks.webhook import WebhookSink
from rollcall.types import EventSink
from rollcall.yaml_config.loader import load_config, parse_session_date

logger = logging.getLogger(__name__)


def build_sink(sink_cfg: dict[str, Any]) -> EventSink:
    sink_type = sink_cfg["type"]
    if sink_type == "stdout":
        return StdoutSink()
    if sink_type == "file":
        return FileSink(sink_cfg["path"])
    if sink_type == "webhook":
        timeout = None
        if "timeout_seconds" in sink_cfg:
            timeout = aiohttp.ClientTimeout(total=sink_cfg["timeout_seconds"])
        return WebhookSink(
            sink_cfg["url"],
            headers=sink_cfg.get("headers"),
            max_retries=sink_cfg.get("max_retries", 3),
            base_delay=sink_cfg.get("base_delay", 1.0),
            timeout=timeout,
        )
    # The schema only admits the types above.
    raise ValueError(f"Unknown sink type: {sink_type!r}")


def build_sinks(config: dict[str, Any]) -> list[EventSink]:
    return [build_sink(sink_cfg) for sink_cfg in config.get("sinks", [])]


def session_from_config(source: str | Path, *, clock: Clock | None = None) -> AttendanceSession:
    """Create a fresh AttendanceSession described by a deployment file.

    The configured owner becomes the session owner and the configured log
    level is applied to the ``rollcall`` logger.
    """
    config, config_hash = load_config(source)

    level = config.get("logging", {}).get("level")
    if level:
        logging.getLogger("rollcall").setLevel(level)

    session_cfg = config["session"]
    owner = Principal(session_cfg["owner"], display_name=session_cfg.get("owner_name"))
    session = AttendanceSession(
        session_cfg["course_id"],
        parse_session_date(session_cfg["session_date"]),
        owner=owner,
        clock=clock,
        sinks=build_sinks(config),
    )
    logger.info("Loaded session %s from %s (config %s)", session.course_id, source, config_hash.hex[:12])
    return session
