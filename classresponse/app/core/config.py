"""Application configuration.

Defines `Settings` with environment variables (and an optional `.env` file).
"""
# app/core/config.py
import string

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "ClassResponse Core"
    DEBUG: bool = False
    DATABASE_URL: str = "sqlite:///./classresponse.db"
    LOG_PATH: str = "logging"
    LOG_LEVEL: str = "INFO"

    # canonical civil time zone for session stamping and sweep comparisons
    TIMEZONE: str = "UTC"

    SWEEP_ENABLED: bool = True
    SWEEP_INTERVAL: int = 60  # seconds
    EXPIRE_UNSTARTED_SESSIONS: bool = False

    ACCESS_KEY_ALPHABET: str = string.ascii_uppercase + string.digits
    ACCESS_KEY_LENGTH: int = 8
    ACCESS_KEY_MAX_ATTEMPTS: int = 5

    TEXT_PREVIEW_LIMIT: int = 10


settings = Settings()
