from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./stampcard.db"

    # Server
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_level: str = "INFO"

    # Tracing export (spans stay in-process when unset)
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None

    # Internal API security
    admin_api_key: str = ""

    # Sessions
    session_token_bytes: int = 32

    # Scan cooldown (resets at local midnight in this zone)
    cooldown_timezone: str = "UTC"

    @field_validator("cooldown_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        ZoneInfo(value)
        return value

    # Bootstrap offer used by legacy QR codes
    bootstrap_default_offer: bool = True
    default_offer_id: str = "default_offer"
    default_offer_name: str = "Welcome Offer"
    default_offer_description: str = "Complete purchases to unlock your reward!"
    default_offer_stamp_requirement: int = 5
    default_offer_stamps_per_scan: int = 1
    default_offer_reward_type: str = "percentage"
    default_offer_reward_value: str = "20"
    default_offer_reward_description: str = "20% OFF"

    # Admin analytics
    analytics_active_window_days: int = 7

    @property
    def cooldown_zone(self) -> ZoneInfo:
        return ZoneInfo(self.cooldown_timezone)


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
