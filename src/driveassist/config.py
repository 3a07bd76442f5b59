"""Service configuration.

Settings are read from environment variables with safe defaults and can be
overlaid by a YAML file pointed to by ``DRIVEASSIST_CONFIG``. Credentials are
only ever read from the environment.
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIRMATION_WINDOW_SECONDS = 300
DEFAULT_SUMMARY_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_MESSAGE_LENGTH = 1600  # Twilio message body limit

CONFIRMATION_BACKENDS = ("memory", "redis")


@dataclass(frozen=True)
class Settings:
    """Operational parameters for the assistant."""

    confirmation_window_seconds: int = DEFAULT_CONFIRMATION_WINDOW_SECONDS
    summary_max_bytes: int = DEFAULT_SUMMARY_MAX_BYTES
    summary_max_files: int = 5
    handler_timeout_seconds: float = 20.0
    http_timeout_seconds: float = 10.0
    max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH
    duckdb_path: str = "data/driveassist.db"
    confirmation_backend: str = "memory"
    audit_sheet_id: str | None = None
    openai_model: str = "gpt-4o-mini"


# Environment variable -> (field name, converter)
_ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "CONFIRMATION_WINDOW_SECONDS": ("confirmation_window_seconds", int),
    "SUMMARY_MAX_BYTES": ("summary_max_bytes", int),
    "SUMMARY_MAX_FILES": ("summary_max_files", int),
    "HANDLER_TIMEOUT_SECONDS": ("handler_timeout_seconds", float),
    "HTTP_TIMEOUT_SECONDS": ("http_timeout_seconds", float),
    "MAX_MESSAGE_LENGTH": ("max_message_length", int),
    "DUCKDB_PATH": ("duckdb_path", str),
    "CONFIRMATION_BACKEND": ("confirmation_backend", str),
    "GOOGLE_AUDIT_SHEET_ID": ("audit_sheet_id", str),
    "OPENAI_SUMMARY_MODEL": ("openai_model", str),
}


def _validate(settings: Settings) -> Settings:
    """Check value ranges.

    Raises:
        ValueError: If a value is out of range.
    """
    if settings.confirmation_window_seconds <= 0:
        raise ValueError("confirmation_window_seconds must be positive")
    if settings.summary_max_bytes <= 0:
        raise ValueError("summary_max_bytes must be positive")
    if settings.summary_max_files <= 0:
        raise ValueError("summary_max_files must be positive")
    if settings.handler_timeout_seconds <= 0 or settings.http_timeout_seconds <= 0:
        raise ValueError("timeouts must be positive")
    if settings.max_message_length < 32:
        raise ValueError("max_message_length must be at least 32")
    if settings.confirmation_backend not in CONFIRMATION_BACKENDS:
        raise ValueError(
            f"confirmation_backend must be one of {', '.join(CONFIRMATION_BACKENDS)}"
        )
    return settings


def load_settings_file(path: str | Path) -> dict[str, Any]:
    """Load settings overrides from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Dictionary of overrides keyed by Settings field name.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a mapping, has unknown keys or a value
            that does not convert to the field type.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    converters = {field_name: convert for field_name, convert in _ENV_OVERRIDES.values()}
    defaults = Settings()
    settings: dict[str, Any] = {}
    for key, value in data.items():
        if value is None and getattr(defaults, key) is None:
            settings[key] = None
            continue
        convert = converters[key]
        if value is None or isinstance(value, bool) or (
            convert is int and isinstance(value, float) and not value.is_integer()
        ):
            raise ValueError(f"Invalid value for {key}: {value!r}")
        try:
            settings[key] = convert(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for {key}: {value!r}") from e
    return settings


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Build settings from defaults, an optional YAML file and the environment.

    Environment variables take precedence over the YAML file.

    Args:
        config_path: Optional YAML path (default: DRIVEASSIST_CONFIG env var).

    Returns:
        Validated Settings.
    """
    settings = Settings()

    config_path = config_path or os.environ.get("DRIVEASSIST_CONFIG")
    if config_path:
        settings = replace(settings, **load_settings_file(config_path))

    overrides: dict[str, Any] = {}
    for env_name, (field_name, convert) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            overrides[field_name] = convert(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_name}: {raw!r}") from e

    if overrides:
        settings = replace(settings, **overrides)

    return _validate(settings)
