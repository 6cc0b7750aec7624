"""Application configuration read from environment variables"""
import os
from typing import List, Optional

from pydantic import BaseModel


def _env_or(key: str, default: str) -> str:
    v = os.getenv(key)
    return v if v is not None else default


def _env_flag(key: str, default: bool) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime settings; an empty database_url selects in-memory storage"""
    app_title: str = "Boston Suites Booking API"
    database_url: Optional[str] = None
    seed_demo_data: bool = True
    log_level: str = "INFO"
    allowed_origins: List[str] = ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        origins = _env_or("ALLOWED_ORIGINS", "*")
        return cls(
            app_title=_env_or("APP_TITLE", "Boston Suites Booking API"),
            database_url=os.getenv("DATABASE_URL") or None,
            seed_demo_data=_env_flag("SEED_DEMO_DATA", True),
            log_level=_env_or("LOG_LEVEL", "INFO").upper(),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
