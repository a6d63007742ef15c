"""Environment-driven settings."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path


def get_vault_path() -> Path:
    env = os.environ.get("STATEMENTBOT_VAULT")
    if env:
        return Path(env)
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "statementbot" / "app_data.sqlite"


def get_log_level() -> int:
    """Return the level named by ``STATEMENTBOT_LOG_LEVEL`` (default INFO)."""
    name = os.environ.get("STATEMENTBOT_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level in STATEMENTBOT_LOG_LEVEL: {name!r}")
    return level
