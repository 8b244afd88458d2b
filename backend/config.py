"""Configuration for the Quick Draw scheduler and its stores."""

import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger("quickdraw.config")


@dataclass
class Settings:
    """
    Database location, local timezone and scheduling switches.

    Defaults resolve relative to the project root.
    Every field is overridable at construction for testing.
    """
    database_url: Optional[str] = None
    study_db_path: Optional[Path] = None
    session_log_path: Optional[Path] = None
    timezone_name: Optional[str] = None
    disable_fuzz: bool = False
    log_level: str = "WARNING"

    def __post_init__(self):
        project_root = Path(__file__).resolve().parent.parent

        if self.database_url is None:
            self.database_url = os.environ.get("DATABASE_URL", "sqlite:///./quickdraw.db")

        if self.study_db_path is None:
            env_db = os.environ.get("STUDY_DB_PATH")
            self.study_db_path = Path(env_db) if env_db else project_root / "study_store.jsonl"
        self.study_db_path = Path(self.study_db_path)

        if self.session_log_path is None:
            env_log = os.environ.get("SESSION_LOG_PATH")
            self.session_log_path = (Path(env_log) if env_log
                                     else self.study_db_path.parent / "session_log.jsonl")
        self.session_log_path = Path(self.session_log_path)

        if self.timezone_name is None:
            self.timezone_name = os.environ.get("QUICKDRAW_TZ") or None

        if os.environ.get("QUICKDRAW_DISABLE_FUZZ", "").lower() in ("1", "true", "yes"):
            self.disable_fuzz = True

        env_level = os.environ.get("LOG_LEVEL")
        if env_level and isinstance(logging.getLevelName(env_level.upper()), int):
            self.log_level = env_level.upper()

    @property
    def tz(self) -> Optional[tzinfo]:
        """Configured local zone, or None for the system zone."""
        if not self.timezone_name:
            return None
        try:
            return ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r; using system local time", self.timezone_name)
            return None
