"""Runtime configuration for the venue booking service."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./venue_booking.db"
    # Comma-separated; compared case-insensitively
    admin_emails: str = ""
    log_level: str = "INFO"
    skip_db_init: bool = False
    # Refuse to approve a booking overlapping one that is already approved
    revalidate_on_approve: bool = True
    decision_reason_max_length: int = 500

    @property
    def admin_email_list(self) -> tuple[str, ...]:
        return tuple(e.strip() for e in self.admin_emails.split(",") if e.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()
