"""Runtime settings read from the environment (and an optional .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    api_url: Optional[str] = None
    output_file: Optional[Path] = None
    parse_on_boot: bool = True
    run_interval_minutes: Optional[int] = None
    request_timeout: float = 30.0
    max_pages: int = 500
    detail_workers: int = 1
    crawl_days: int = 365
    log_level: str = "INFO"
    log_file: Optional[Path] = None


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _env_int(name: str, default: Optional[int], *, minimum: int = 1) -> Optional[int]:
    """Parse an int from the environment; invalid values fall back to the default."""
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return max(minimum, int(value))
    except ValueError:
        return default


def _env_float(name: str, default: float, *, minimum: float = 1.0) -> float:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return max(minimum, float(value))
    except ValueError:
        return default


LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _env_log_level(name: str, default: str) -> str:
    value = os.getenv(name, "").strip().upper()
    return value if value in LOG_LEVELS else default


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Build Settings from the process environment.

    A .env file (env_file, or ./.env when not given) is loaded first; variables that
    are already set in the environment win.
    """
    load_dotenv(dotenv_path=env_file)

    output_file = _env_str("OUTPUT_FILE")
    log_file = _env_str("LOG_FILE")

    return Settings(
        api_url=_env_str("API_URL"),
        output_file=Path(output_file) if output_file else None,
        parse_on_boot=_env_bool("PARSE_ON_BOOT", True),
        run_interval_minutes=_env_int("RUN_INTERVAL_MINUTES", None),
        request_timeout=_env_float("REQUEST_TIMEOUT", 30.0),
        max_pages=_env_int("MAX_PAGES", 500),
        detail_workers=_env_int("DETAIL_WORKERS", 1),
        crawl_days=_env_int("CRAWL_DAYS", 365),
        log_level=_env_log_level("LOG_LEVEL", "INFO"),
        log_file=Path(log_file) if log_file else None,
    )
