"""Configuration file management for collector-rank.

Reads and writes ~/.collector-rank/config.json for settings that don't belong
in the DB (database location, default user, log level, tier table override).
"""
from __future__ import annotations

import json
from pathlib import Path

from collector_rank.levels import DEFAULT_TIERS, CollectorTier, ConfigurationError, validate_tiers

DEFAULT_CONFIG_PATH: Path = Path.home() / ".collector-rank" / "config.json"


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def get_db_path(config: dict) -> Path | None:
    """Return the configured database path, or None to use the default."""
    raw = config.get("db_path")
    if raw:
        return Path(raw).expanduser()
    return None


def get_default_user(config_path: Path | None = None) -> str | None:
    """Return the configured default user id, or None if not set."""
    return load_config(config_path).get("default_user") or None


def set_default_user(user_id: str, config_path: Path | None = None) -> None:
    """Persist the default user id to config."""
    config = load_config(config_path)
    config["default_user"] = user_id
    save_config(config, config_path)


def get_log_level(config: dict) -> str:
    return str(config.get("log_level", "WARNING")).upper()


def load_tiers(config: dict) -> tuple[CollectorTier, ...]:
    """Return the tier table from config, or the default table.

    Raises ConfigurationError if the override is malformed.
    """
    raw = config.get("tiers")
    if not raw:
        return DEFAULT_TIERS
    if not isinstance(raw, list):
        raise ConfigurationError("'tiers' must be a list of {name, albums, value} objects")
    tiers = []
    for i, item in enumerate(raw):
        try:
            albums = float(item["albums"])
            if not albums.is_integer():
                raise ValueError("album threshold must be a whole number")
            tiers.append(
                CollectorTier(
                    name=str(item["name"]),
                    album_threshold=int(albums),
                    value_threshold=float(item["value"]),
                    emoji=str(item.get("emoji", "")),
                    color=str(item.get("color", "white")),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid tier entry at index {i}: {item!r}") from exc
    return validate_tiers(tiers)
