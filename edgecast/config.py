"""Application-wide settings.

Two layers:

* a JSON settings file (``data/app_settings.json``) for values that
  survive restarts and can be edited by hand;
* environment variables for deployment concerns (port, database backend).

Usage::

    from edgecast.config import get_setting, set_setting, get_port

    port = get_port()                        # PORT env var, default 3000
    set_setting("log_level", "DEBUG")        # persists immediately
    get_setting("bankroll", fallback=1000)   # with explicit fallback
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = PROJECT_ROOT / "data"

_SETTINGS_PATH = DATA_DIR / "app_settings.json"

DEFAULT_PORT = 3000
DEFAULT_DB_FILENAME = "predictions.db"


def _settings_path() -> Path:
    override = os.environ.get("EDGECAST_SETTINGS_PATH")
    return Path(override) if override else _SETTINGS_PATH


def _load() -> dict:
    """Load the settings file, returning {} when missing or unreadable."""
    path = _settings_path()
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not read settings file %s: %s", path, exc)
        return {}


def _save(data: dict) -> None:
    path = _settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")


def get_setting(key: str, fallback: Any = None) -> Any:
    """Read a single setting.  Returns *fallback* if not set."""
    return _load().get(key, fallback)


def set_setting(key: str, value: Any) -> None:
    """Write a single setting (persists immediately)."""
    data = _load()
    data[key] = value
    _save(data)


def get_all_settings() -> dict:
    """Return a copy of all saved settings."""
    return _load()


# ── Environment-driven helpers ──


def get_port() -> int:
    val = os.environ.get("PORT") or get_setting("port")
    if val is not None:
        try:
            return int(val)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid port %r", val)
    return DEFAULT_PORT


def get_database_url() -> Optional[str]:
    """Postgres DSN when the hosted backend is configured, else None."""
    return os.environ.get("POSTGRES_URL") or None


def get_db_path() -> str:
    """Location of the local SQLite file."""
    override = os.environ.get("EDGECAST_DB_PATH") or get_setting("db_path")
    if override:
        return str(override)
    return str(DATA_DIR / DEFAULT_DB_FILENAME)


def get_log_level() -> str:
    return str(os.environ.get("EDGECAST_LOG_LEVEL") or get_setting("log_level", "INFO")).upper()


def scheduler_enabled() -> bool:
    """Daily auto-jobs run unless disabled by env var or setting."""
    if os.environ.get("EDGECAST_DISABLE_SCHEDULER"):
        return False
    return bool(get_setting("scheduler_enabled", True))


def get_manual_injuries_path() -> Path:
    return DATA_DIR / "manual_injuries.json"
