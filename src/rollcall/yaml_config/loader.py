"""Deployment file loader — parse YAML, validate against JSON Schema, compute hash."""

from __future__ import annotations

import datetime as _dt
import hashlib
import importlib.resources as _resources
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from rollcall import RollcallConfigError

MAX_CONFIG_SIZE = 1_048_576  # 1 MB

# Lazy-loaded schema singleton
_schema_cache: dict | None = None


def _get_schema() -> dict:
    """Load and cache the JSON Schema for validation."""
    global _schema_cache  # noqa: PLW0603
    if _schema_cache is None:
        schema_text = (
            _resources.files("rollcall.yaml_config").joinpath("rollcall-v1.schema.json").read_text(encoding="utf-8")
        )
        _schema_cache = json.loads(schema_text)
    return _schema_cache


@dataclass(frozen=True)
class ConfigHash:
    """SHA256 hash of the raw deployment file bytes."""

    hex: str

    def __str__(self) -> str:
        return self.hex


def _compute_hash(raw_bytes: bytes) -> ConfigHash:
    return ConfigHash(hex=hashlib.sha256(raw_bytes).hexdigest())


def _normalize_timestamps(data: dict) -> None:
    """Turn YAML-native timestamps back into ISO strings.

    An unquoted ``2030-01-01T09:00:00+00:00`` is parsed by PyYAML into a
    datetime; the schema and the session loader both expect a string.
    """
    session = data.get("session")
    if isinstance(session, dict):
        value = session.get("session_date")
        if isinstance(value, (_dt.datetime, _dt.date)):
            session["session_date"] = value.isoformat()


def _validate_schema(data: dict) -> None:
    """Validate parsed YAML against the Rollcall JSON Schema."""
    schema = _get_schema()
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise RollcallConfigError(f"Schema validation failed: {e.message}") from e


def parse_session_date(value: str) -> _dt.datetime:
    """Parse an ISO-8601 session date, insisting on an explicit UTC offset."""
    try:
        parsed = _dt.datetime.fromisoformat(value)
    except ValueError as e:
        raise RollcallConfigError(f"Invalid session_date '{value}': {e}") from e
    if parsed.tzinfo is None:
        raise RollcallConfigError(f"session_date '{value}' must include a UTC offset")
    return parsed


def load_config(source: str | Path) -> tuple[dict[str, Any], ConfigHash]:
    """Load and validate a deployment file.

    Args:
        source: Path to a YAML file.

    Returns:
        Tuple of (parsed config dict, config hash).

    Raises:
        RollcallConfigError: If the YAML is invalid, is not a mapping, fails
            schema validation, or carries an unusable session_date.
        FileNotFoundError: If the file does not exist.
    """
    path = Path(source)

    file_size = path.stat().st_size
    if file_size > MAX_CONFIG_SIZE:
        raise RollcallConfigError(f"Config file too large ({file_size} bytes, max {MAX_CONFIG_SIZE})")

    raw_bytes = path.read_bytes()
    config_hash = _compute_hash(raw_bytes)

    try:
        data = yaml.safe_load(raw_bytes)
    except yaml.YAMLError as e:
        raise RollcallConfigError(f"YAML parse error: {e}") from e

    if not isinstance(data, dict):
        raise RollcallConfigError("YAML document must be a mapping")

    _normalize_timestamps(data)
    _validate_schema(data)
    parse_session_date(data["session"]["session_date"])

    return data, config_hash
