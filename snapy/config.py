"""Configuration for the Snapy study engine."""

import logging
import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class Settings:
    """
    Database location, default learner and log level.

    Every field is overridable at construction for testing; fields left
    as None are filled from the environment.
    """
    database_url: Optional[str] = None
    default_user_id: Optional[str] = None
    log_level: Optional[str] = None
    sqlite_timeout_s: float = 5.0

    def __post_init__(self):
        if self.database_url is None:
            self.database_url = (
                os.environ.get("SNAPY_DATABASE_URL")
                or os.environ.get("DATABASE_URL")
                or "sqlite:///./snapy.db"
            )
        if self.default_user_id is None:
            self.default_user_id = os.environ.get("SNAPY_USER_ID", "default_user")
        if self.log_level is None:
            self.log_level = os.environ.get("SNAPY_LOG_LEVEL", "WARNING")
        self.log_level = self.log_level.upper()

        try:
            if v := os.environ.get("SNAPY_SQLITE_TIMEOUT_S"):
                self.sqlite_timeout_s = float(v)
        except ValueError:
            pass

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level)
        return level if isinstance(level, int) else logging.WARNING
