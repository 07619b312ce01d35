"""Configuration objects loaded by the application factory."""
from __future__ import annotations

import os


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default) in {"1", "true", "True"}


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///clinic.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Python weekday numbering: 0=Monday ... 6=Sunday
    WEEK_STARTS_ON = int(os.environ.get("WEEK_STARTS_ON", 6))
    PAIN_LEVEL_REQUIRED = _env_flag("PAIN_LEVEL_REQUIRED")
    REMINDER_MONTH_OPTIONS = (1, 2, 3, 6, 12)
    # Hour rows shown in the day grid, 7:00 - 18:00
    DAY_VIEW_HOURS = tuple(range(7, 19))
    # Unfinished workflows are discarded after this long
    WORKFLOW_MAX_AGE_SECONDS = int(os.environ.get("WORKFLOW_MAX_AGE_SECONDS", 8 * 60 * 60))


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
