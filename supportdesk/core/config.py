# supportdesk/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./supportdesk.db")
    APP_NAME: str = "Support Desk API"
    APP_DESC: str = "Ticket intake, classification and lifecycle service"
    APP_VERSION: str = "1.0.0"

    # Location of the integrations document (webhook / email rules)
    APP_CONFIG_PATH: str = Field(default="./data/app-config.json")

    DEFAULT_SLA_HOURS: int = Field(default=24, ge=1)
    TICKET_NUMBER_MAX_ATTEMPTS: int = Field(default=10, ge=1)

    LOG_LEVEL: str = "INFO"

    # Comma separated; "*" when unset
    CORS_ORIGINS: str | None = None

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        if not self.CORS_ORIGINS:
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
