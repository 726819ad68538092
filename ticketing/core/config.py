from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables
    or a `.env` file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./ticketing.db"
    """SQLAlchemy URL of the relational store."""

    SQL_ECHO: bool = False
    """Echo emitted SQL through the sqlalchemy logger."""

    SECRET_KEY: str = Field(min_length=32)
    """Key used to sign bearer tokens. Required, at least 32 characters."""

    ALGORITHM: str = "HS256"
    """JWT signing algorithm."""

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    """Lifetime of an issued bearer token."""

    LOG_LEVEL: str = "INFO"

    REQUEST_LOG_ENABLED: bool = True
    """Append one row to `user_logs` per HTTP request."""


@lru_cache
def get_settings() -> Settings:
    return Settings()
