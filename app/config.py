"""Configuration loading for the todos service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_SECTION_HEADING = "## Tasks"
DEFAULT_DAILY_NOTE_TEMPLATE = "Daily/%Y-%m-%d.md"
DEFAULT_LOG_LEVEL = "INFO"


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class TaskSettings:
    """Task-related settings passed explicitly into each pipeline call."""

    section_heading: str = DEFAULT_SECTION_HEADING
    daily_note_template: str = DEFAULT_DAILY_NOTE_TEMPLATE
    excluded_dirs: tuple[str, ...] = ()


@dataclass(frozen=True)
class AppConfig:
    library_path: Path
    service_token: str | None
    log_level: str = DEFAULT_LOG_LEVEL
    tasks: TaskSettings = field(default_factory=TaskSettings)


def parse_excluded_dirs(raw_value: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Split a comma-separated prefix list, dropping blank entries."""
    if raw_value is None:
        return ()
    if isinstance(raw_value, str):
        items = raw_value.split(",")
    else:
        items = list(raw_value)
    return tuple(item.strip() for item in items if isinstance(item, str) and item.strip())


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        name = name.strip()
        if name != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_setting(dotenv_path: Path, key: str) -> str | None:
    value = os.environ.get(key)
    if value is None:
        value = _read_dotenv_value(dotenv_path, key)
    return value


def _read_log_level(raw_value: str | None, *, key: str) -> str:
    if raw_value is None or not raw_value.strip():
        return DEFAULT_LOG_LEVEL
    normalized = raw_value.strip().upper()
    if not isinstance(logging.getLevelName(normalized), int):
        raise ConfigError(f"{key} must be a logging level name.")
    return normalized


def load_config() -> AppConfig:
    """Load required configuration from the environment."""
    dotenv_path = Path.cwd() / ".env"

    env_key = "TODOS_LIBRARY_PATH"
    raw_path = (_read_setting(dotenv_path, env_key) or "").strip()
    if not raw_path:
        raise ConfigError(
            "TODOS_LIBRARY_PATH is required; set it to the library root path."
        )

    service_token = _read_setting(dotenv_path, "TODOS_SERVICE_TOKEN")
    service_token = service_token.strip() if isinstance(service_token, str) else None
    if not service_token:
        service_token = None

    heading = (_read_setting(dotenv_path, "TODOS_SECTION_HEADING") or "").strip()
    template = (_read_setting(dotenv_path, "TODOS_DAILY_NOTE_TEMPLATE") or "").strip()
    excluded = parse_excluded_dirs(_read_setting(dotenv_path, "TODOS_EXCLUDED_DIRS"))
    log_key = "TODOS_LOG_LEVEL"
    log_level = _read_log_level(_read_setting(dotenv_path, log_key), key=log_key)

    return AppConfig(
        library_path=Path(raw_path).resolve(),
        service_token=service_token,
        log_level=log_level,
        tasks=TaskSettings(
            section_heading=heading or DEFAULT_SECTION_HEADING,
            daily_note_template=template or DEFAULT_DAILY_NOTE_TEMPLATE,
            excluded_dirs=excluded,
        ),
    )
