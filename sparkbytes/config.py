"""Global configuration for Spark!Bytes.

Values resolve in three layers: built-in ``DEFAULTS``, then ``sparkbytes.toml``,
then ``SPARKBYTES_<KEY>`` environment variables. Each value is coerced to the
type of its default.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .catalog import CAMPUS_CENTER

ENV_PREFIX = "SPARKBYTES_"
CONFIG_FILENAME = "sparkbytes.toml"
DATABASE_FILENAME = "sparkbytes.db"

DEFAULTS: dict[str, Any] = {
    "enable_scheduler": True,
    "status_refresh_minutes": 5,
    "starting_soon_minutes": 30,
    "faculty_code": "123",
    "email_domain": "bu.edu",
    "display_timezone": "America/New_York",
    "session_ttl_hours": 24 * 7,
    "default_longitude": CAMPUS_CENTER[0],
    "default_latitude": CAMPUS_CENTER[1],
    "seed_profiles": 12,
    "seed_events": 8,
    "seed_rsvps_per_event": 5,
    "app_host": "0.0.0.0",
    "app_port": 8000,
}

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    base_dir: Path
    data_dir: Path
    database_path: Path
    enable_scheduler: bool
    status_refresh_minutes: int
    starting_soon_minutes: int
    faculty_code: str
    email_domain: str
    display_timezone: str
    session_ttl_hours: int
    default_longitude: float
    default_latitude: float
    seed_profiles: int
    seed_events: int
    seed_rsvps_per_event: int
    app_host: str
    app_port: int
    config_path: Path

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"

    @property
    def default_coords(self) -> tuple[float, float]:
        return (self.default_longitude, self.default_latitude)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.display_timezone)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(hours=self.session_ttl_hours)

    @property
    def starting_soon_window(self) -> timedelta:
        return timedelta(minutes=self.starting_soon_minutes)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, (bool, int, float)):
        return bool(value)
    lowered = str(value).strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"Cannot parse boolean value from {value!r}")


def coerce(key: str, value: Any) -> Any:
    """Convert ``value`` to the type of ``DEFAULTS[key]``."""
    default = DEFAULTS.get(key)
    if default is None:
        return value
    if isinstance(default, bool):
        return _parse_bool(value)
    return type(default)(value)


def _check(values: dict[str, Any]) -> None:
    try:
        ZoneInfo(values["display_timezone"])
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown display_timezone {values['display_timezone']!r}") from exc
    for key in ("status_refresh_minutes", "session_ttl_hours"):
        if values[key] < 1:
            raise ValueError(f"{key} must be at least 1")
    if values["starting_soon_minutes"] < 0:
        raise ValueError("starting_soon_minutes cannot be negative")


def read_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _layered(key: str, toml_config: dict[str, Any]) -> Any:
    env_value = os.environ.get(ENV_PREFIX + key.upper())
    if env_value is not None:
        return coerce(key, env_value)
    if key in toml_config:
        return coerce(key, toml_config[key])
    return DEFAULTS[key]


def _under(base_dir: Path, value: str | Path | None, fallback: Path) -> Path:
    path = Path(value) if value else fallback
    return path if path.is_absolute() else base_dir / path


def load_settings(config_override: Path | None = None) -> Settings:
    base_dir = Path(os.getenv(f"{ENV_PREFIX}BASE_DIR", Path.cwd()))
    config_path = Path(
        config_override
        or os.getenv(f"{ENV_PREFIX}CONFIG")
        or base_dir / CONFIG_FILENAME
    )
    toml_config = read_toml(config_path)

    data_dir = _under(
        base_dir,
        os.getenv(f"{ENV_PREFIX}DATA_DIR", toml_config.get("data_dir")),
        base_dir / "data",
    )
    database_path = _under(
        base_dir,
        os.getenv(f"{ENV_PREFIX}DB", toml_config.get("database_path")),
        data_dir / DATABASE_FILENAME,
    )

    values = {key: _layered(key, toml_config) for key in DEFAULTS}
    _check(values)
    data_dir.mkdir(parents=True, exist_ok=True)
    return Settings(
        base_dir=base_dir,
        data_dir=data_dir,
        database_path=database_path,
        config_path=config_path,
        **values,
    )


def settings_as_dict(current: Settings) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "base_dir": str(current.base_dir),
        "data_dir": str(current.data_dir),
        "database_path": str(current.database_path),
    }
    payload.update({key: getattr(current, key) for key in DEFAULTS})
    return payload


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return repr(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def write_config_file(config: dict[str, Any], *, path: Path) -> None:
    body = "".join(f"{key} = {_toml_value(config[key])}\n" for key in sorted(config))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("# Spark!Bytes configuration\n" + body, encoding="utf-8")


def update_config_file(updates: dict[str, Any], *, path: Path | None = None) -> Settings:
    """Merge known keys into the TOML file and reload the module-level settings."""
    global settings
    target_path = path or settings.config_path
    merged = read_toml(target_path)
    merged.update(
        {key: coerce(key, value) for key, value in updates.items() if key in DEFAULTS}
    )
    write_config_file(merged, path=target_path)
    settings = load_settings(target_path)
    return settings


settings = load_settings()
