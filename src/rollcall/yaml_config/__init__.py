"""YAML deployment files — load, validate, and build a session from them."""

from __future__ import annotations

from rollcall.yaml_config.builder import build_sink, build_sinks, session_from_config
from rollcall.yaml_config.loader import ConfigHash, load_config, parse_session_date

__all__ = [
    "ConfigHash",
    "build_sink",
    "build_sinks",
    "load_config",
    "parse_session_date",
    "session_from_config",
]
