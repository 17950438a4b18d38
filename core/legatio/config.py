"""Shared legatio configuration utilities.

Centralises reading of ~/.legatio/configuration.json so the CLI and the
session layer share one implementation.

Example file::

    {
      "storage": {"data_dir": "~/.legatio/data"},
      "history": {"strict": false},
      "logging": {"level": "INFO", "format": "auto"}
    }
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

LEGATIO_HOME = Path.home() / ".legatio"
LEGATIO_CONFIG_FILE = LEGATIO_HOME / "configuration.json"


def get_legatio_config() -> dict[str, Any]:
    """Load legatio configuration from ~/.legatio/configuration.json."""
    if not LEGATIO_CONFIG_FILE.exists():
        return {}
    try:
        with open(LEGATIO_CONFIG_FILE, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def get_data_dir() -> Path:
    """Return the record store directory (default ~/.legatio/data)."""
    data_dir = get_legatio_config().get("storage", {}).get("data_dir")
    if data_dir:
        return Path(data_dir).expanduser()
    return LEGATIO_HOME / "data"


def get_strict_chain() -> bool:
    """Return True when broken prompt chains should raise instead of truncate."""
    return bool(get_legatio_config().get("history", {}).get("strict", False))


def get_log_level() -> str:
    return get_legatio_config().get("logging", {}).get("level", "INFO")


def get_log_format() -> str:
    return get_legatio_config().get("logging", {}).get("format", "auto")


# ---------------------------------------------------------------------------
# LegatioConfig
# ---------------------------------------------------------------------------


@dataclass
class LegatioConfig:
    """Runtime configuration loaded from ~/.legatio/configuration.json."""

    data_dir: Path = field(default_factory=get_data_dir)
    strict_chain: bool = field(default_factory=get_strict_chain)
    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)
