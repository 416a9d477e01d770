from __future__ import annotations

"""Settings loader driven by environment variables.

``get_settings`` reads the environment once and caches the resulting
``Settings`` object.  Tests may call ``reset_settings_cache`` to force a
reload after they modify environment variables at runtime.
"""

from dataclasses import dataclass
import logging
import os
from functools import lru_cache
from pathlib import Path

from .schemas import Tuning


@dataclass
class Settings:
    session_gap_minutes: int = 30
    log_level: str = "WARNING"
    tuning_path: str | None = None


@lru_cache()
def get_settings() -> Settings:
    """Return settings loaded from environment variables."""

    raw_gap = os.getenv("PRACTICE_SESSION_GAP_MINUTES", "30")
    try:
        session_gap_minutes = max(1, int(raw_gap))
    except ValueError:
        session_gap_minutes = 30
    log_level = os.getenv("PRACTICE_LOG_LEVEL", "WARNING").upper()
    tuning_path = os.getenv("PRACTICE_TUNING_PATH") or None
    return Settings(
        session_gap_minutes=session_gap_minutes,
        log_level=log_level,
        tuning_path=tuning_path,
    )


def reset_settings_cache() -> None:
    """Clear the settings cache (mainly for tests)."""

    get_settings.cache_clear()


def load_tuning(path: str | Path | None = None) -> Tuning:
    """Return the tuning parameters from ``path`` or the configured file.

    Without a file the built-in defaults are returned.
    """

    if path is None:
        path = get_settings().tuning_path
    if path is None:
        return Tuning()
    return Tuning.model_validate_json(Path(path).read_text())


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging for command line use."""

    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
