"""Centralized path management for Artfeed.

All state (config, schedules, logs) is stored under a single base directory.
The base directory can be overridden with the ARTFEED_HOME environment variable.

Default locations:
- Linux/macOS: ~/.artfeed
- Windows: %USERPROFILE%\\.artfeed
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "ARTFEED_HOME"


@lru_cache(maxsize=1)
def get_artfeed_home() -> Path:
    """Get the base directory for all Artfeed data.

    Resolution order:
    1. ARTFEED_HOME environment variable (if set)
    2. Platform default (~/.artfeed)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".artfeed"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_artfeed_home() / "config.toml"


def get_schedules_path() -> Path:
    """Get the schedule store document path."""
    return get_artfeed_home() / "schedules.json"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_artfeed_home() / "logs"
