"""Configuration for the weekly timecard view.

Loads settings from a .env file and the environment and provides typed
access to them. Settings are built once by the entry point and passed to
the components that need them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ..core.time import resolve_timezone

__all__ = [
    "ConfigError",
    "LOG_LEVELS",
    "Settings",
    "generate_example_env",
    "load_env_file",
]

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

DEFAULT_API_URL = "http://localhost:5001/api"


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """Settings for the weekly view.

    Attributes
    ----------
    api_url : str | None
        Base URL of the timecard API; only required for HTTP mode
    api_token : str | None
        Bearer token sent with every request
    timezone : str
        Local timezone used to pick the current week (default: UTC)
    request_timeout : float
        Per-request timeout in seconds
    max_entry_hours : float
        Entries above this many hours are excluded from totals
    server_side_filter : bool
        Ask the API to filter entries by employee
    log_level : str
        Loguru level
    log_dir : Path | None
        Directory for JSONL logs; console only when unset
    """

    api_url: str | None = None
    api_token: str | None = None
    timezone: str = "UTC"
    request_timeout: float = 10.0
    max_entry_hours: float = 24.0
    server_side_filter: bool = False

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.log_dir and isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

        if self.api_url:
            self.api_url = self.api_url.rstrip("/")

        if self.request_timeout <= 0:
            raise ConfigError(f"TIMECARDS_REQUEST_TIMEOUT must be positive, got {self.request_timeout}")

        if not 0 < self.max_entry_hours <= 24:
            raise ConfigError(f"TIMECARDS_MAX_ENTRY_HOURS must be in (0, 24], got {self.max_entry_hours}")

        try:
            resolve_timezone(self.timezone)
        except ValueError as exc:
            raise ConfigError(f"TIMECARDS_TIMEZONE is not a valid timezone: {self.timezone}") from exc

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"TIMECARDS_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}")

    def require_api_url(self) -> str:
        """Return the API base URL.

        Raises
        ------
        ConfigError
            If no URL is configured
        """
        if not self.api_url:
            raise ConfigError(
                "TIMECARDS_API_URL is required.\n\n"
                "Set it in .env or environment, e.g.:\n"
                f"  export TIMECARDS_API_URL={DEFAULT_API_URL}\n\n"
                "Or run with --demo to use built-in sample data."
            )
        return self.api_url

    @classmethod
    def from_env(cls, env_file: Path | str | None = None) -> Settings:
        """Load settings from environment.

        Loads from .env file if present, then reads os.environ.

        Parameters
        ----------
        env_file
            Path to .env file (default: .env in current directory)

        Returns
        -------
        Settings
            Loaded settings

        Raises
        ------
        ConfigError
            If a value is malformed or out of range
        """
        if env_file is None:
            env_file = Path(".env")
        if isinstance(env_file, str):
            env_file = Path(env_file)

        if env_file.exists():
            load_env_file(env_file)

        try:
            return cls(
                api_url=os.environ.get("TIMECARDS_API_URL") or None,
                api_token=os.environ.get("TIMECARDS_API_TOKEN") or None,
                timezone=os.environ.get("TIMECARDS_TIMEZONE", "UTC"),
                request_timeout=float(os.environ.get("TIMECARDS_REQUEST_TIMEOUT", "10.0")),
                max_entry_hours=float(os.environ.get("TIMECARDS_MAX_ENTRY_HOURS", "24.0")),
                server_side_filter=os.environ.get("TIMECARDS_SERVER_SIDE_FILTER", "false").lower() == "true",
                log_level=os.environ.get("TIMECARDS_LOG_LEVEL", "INFO"),
                log_dir=Path(os.environ["TIMECARDS_LOG_DIR"]) if os.environ.get("TIMECARDS_LOG_DIR") else None,
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_env_file(env_file: Path) -> dict[str, str]:
    """Load KEY=VALUE lines from a .env file into ``os.environ``.

    Returns
    -------
    dict[str, str]
        The values that were loaded
    """
    loaded: dict[str, str] = {}

    with open(env_file) as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]

            os.environ[key] = value
            loaded[key] = value

    return loaded


def generate_example_env(output_path: Path | None = None) -> str:
    """Generate an example .env file with every setting.

    Parameters
    ----------
    output_path
        Optional path to write the file to

    Returns
    -------
    str
        Example .env contents
    """
    example = f"""# Timecard weekly view configuration
# Copy this to .env and adjust values

# ====================
# API
# ====================

# Base URL of the timecard API (required unless running with --demo)
TIMECARDS_API_URL={DEFAULT_API_URL}

# Bearer token for the employer account (optional)
# TIMECARDS_API_TOKEN=your-token

# Request timeout in seconds (optional, default: 10)
TIMECARDS_REQUEST_TIMEOUT=10.0

# Let the API filter entries by employee (optional, default: false)
TIMECARDS_SERVER_SIDE_FILTER=false

# ====================
# Weekly view
# ====================

# Timezone used to determine the current week (optional, default: UTC)
# Examples: UTC, America/New_York, Asia/Kolkata
TIMECARDS_TIMEZONE=UTC

# Entries above this many hours are excluded (optional, default: 24)
TIMECARDS_MAX_ENTRY_HOURS=24

# ====================
# Logging
# ====================

# Log level (optional, default: INFO)
# Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
TIMECARDS_LOG_LEVEL=INFO

# Directory for JSONL logs (optional, console only if not set)
# TIMECARDS_LOG_DIR=logs
"""

    if output_path:
        output_path.write_text(example)

    return example
