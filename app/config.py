"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    for filename in (".env", ".env.local"):
        env_path = PROJECT_ROOT / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_optional_int_env(name: str) -> int | None:
    raw_value = _get_optional_str_env(name)
    if raw_value is None:
        return None
    try:
        return int(raw_value)
    except ValueError:
        return None


@dataclass(frozen=True)
class DataDirectorySettings:
    """
    Location of the spreadsheet export directories.

    The engine only ever reads from these directories.
    """

    base_dir: Path

    @property
    def customer_dir(self) -> Path:
        return self.base_dir / "customer"

    @property
    def sales_dir(self) -> Path:
        return self.base_dir / "sales"

    @property
    def support_dir(self) -> Path:
        return self.base_dir / "support"


@dataclass(frozen=True)
class CSATSettings:
    """
    Tunables for the support/CSAT pipeline.

    NPS and churn have no source column; the ranges below bound the
    placeholder values emitted for them.
    """

    topic_share_threshold: float = 0.05
    nps_min: float = 7.0
    nps_max: float = 9.0
    churn_min: float = 1.0
    churn_max: float = 4.0
    synthetic_months: int = 3
    random_seed: int | None = None


@dataclass(frozen=True)
class LoggingSettings:
    """
    Root logger configuration applied once at process start.
    """

    level: str = "INFO"
    json_format: bool = False
    log_file: str | None = None


@lru_cache(maxsize=1)
def get_data_directory_settings() -> DataDirectorySettings:
    """
    Return cached data directory settings from environment variables.
    """

    raw_dir = _get_str_env("DASHBOARD_DATA_DIR", "data")
    return DataDirectorySettings(base_dir=Path(raw_dir).expanduser().resolve())


@lru_cache(maxsize=1)
def get_csat_settings() -> CSATSettings:
    """
    Return cached CSAT pipeline settings from environment variables.
    """

    nps_min = _get_float_env("CSAT_NPS_MIN", 7.0)
    nps_max = max(nps_min, _get_float_env("CSAT_NPS_MAX", 9.0))
    churn_min = max(0.0, _get_float_env("CSAT_CHURN_MIN", 1.0))
    churn_max = max(churn_min, _get_float_env("CSAT_CHURN_MAX", 4.0))
    return CSATSettings(
        topic_share_threshold=min(1.0, max(0.0, _get_float_env("CSAT_TOPIC_SHARE_THRESHOLD", 0.05))),
        nps_min=nps_min,
        nps_max=nps_max,
        churn_min=churn_min,
        churn_max=churn_max,
        synthetic_months=max(1, _get_int_env("CSAT_SYNTHETIC_MONTHS", 3)),
        random_seed=_get_optional_int_env("CSAT_RANDOM_SEED"),
    )


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """
    Return cached logging settings from environment variables.
    """

    return LoggingSettings(
        level=_get_str_env("LOG_LEVEL", "INFO").upper(),
        json_format=_get_str_env("LOG_FORMAT", "text").lower() == "json",
        log_file=_get_optional_str_env("LOG_FILE"),
    )
