from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str
    cors_allow_origins: str = "http://localhost:5173"

    web_access_token_expiry_hours: int = 24 * 30
    web_access_token_secret: str = "change-me-in-production"
    admin_user_ids: str = ""

    default_min_interested: int = 10
    default_min_votes: int = 5
    draft_min_interested: int = 4
    default_creator_reward_cents: int = 2000
    default_start_city: str = "Coimbra"
    default_trip_capacity: int = 10

    viability_sweep_enabled: bool = False
    viability_sweep_interval_minutes: float = 15.0

    ops_console_enabled: bool = False
    ops_event_buffer_size: int = 500

    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout_seconds: int = 30
    db_echo_sql: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("DATABASE_URL must be provided")
        return value

    @field_validator(
        "default_min_interested",
        "default_min_votes",
        "draft_min_interested",
        "default_creator_reward_cents",
    )
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("thresholds and reward amounts must be >= 0")
        return value

    def admin_user_id_list(self) -> list[str]:
        return [item.strip() for item in self.admin_user_ids.split(",") if item.strip()]

    def cors_allow_origin_list(self) -> list[str]:
        return [item.strip() for item in self.cors_allow_origins.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
