"""Environment-driven configuration.

Every knob the service reads lives on ``AppSettings``. Values come from the
process environment first, then ``.env`` / ``.env.local`` files, then the
defaults below, so a fresh checkout boots against a local SQLite file with no
extra setup.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "PharmaPOS"
    LOG_LEVEL: str = "INFO"

    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 60
    JWT_REFRESH_TTL_DAYS: int = 7
    ALLOWED_ORIGINS: list[str] = Field(default_factory=list)

    # Text-generation backend used by the assistant endpoints.
    GEMINI_API_KEY: str = Field(default="", validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"))
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    ADVISOR_TIMEOUT_SECONDS: float = 30.0

    # Items expiring within this many days count as "expiring soon".
    EXPIRY_WARNING_DAYS: int = 90

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'pharmapos.db'}"

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
