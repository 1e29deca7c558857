# cgshare/config.py
"""
Centralized application configuration using pydantic-settings.

All settings are read from environment variables or .env file.
"""

import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Priority: environment variables > .env file > defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    # --- Database ---
    DB_URL: str = Field(
        default="sqlite:///database.sqlite",
        description="Database connection URL (sqlite or postgresql)"
    )
    DB_AUTO_CREATE: bool = Field(
        default=True,
        description="Create the entries table on startup"
    )

    # --- Server ---
    HOST: str = Field(
        default="127.0.0.1",
        description="Server bind host"
    )
    PORT: int = Field(
        default=8080,
        description="Server bind port"
    )

    # --- Entries ---
    ENTRY_TTL_SECONDS: int = Field(
        default=24 * 60 * 60,
        description="Lifespan of a stored entry"
    )
    ENTRY_ID_LENGTH: int = Field(
        default=8,
        description="Length of generated entry IDs"
    )
    BCRYPT_ROUNDS: int = Field(
        default=10,
        description="bcrypt work factor for entry passwords"
    )

    # --- Game servers ---
    GAME_SERVER_TIMEOUT: float = Field(
        default=10.0,
        description="Timeout in seconds for requests to game servers"
    )

    # --- HTTP ---
    RATE_LIMIT_PER_MINUTE: int = Field(
        default=60,
        description="Requests per minute per client (0 disables)"
    )
    README_URL: str = Field(
        default="https://github.com/code-game-project/codegame-share/blob/main/README.md",
        description="Redirect target for the root page"
    )

    # --- Debug / Logging ---
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    OTEL_ENABLED: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v_upper

    @field_validator("ENTRY_ID_LENGTH", "BCRYPT_ROUNDS", "ENTRY_TTL_SECONDS")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings()


# --- Singleton instance for easy import ---
settings = get_settings()


# --- Module-level exports ---

# Database
DATABASE_URL: str = settings.DB_URL
DB_AUTO_CREATE: bool = settings.DB_AUTO_CREATE

# Server
HOST: str = settings.HOST
PORT: int = settings.PORT
DEBUG: bool = settings.DEBUG
LOG_LEVEL: str = settings.LOG_LEVEL

# Entries
ENTRY_TTL_SECONDS: int = settings.ENTRY_TTL_SECONDS
ENTRY_ID_LENGTH: int = settings.ENTRY_ID_LENGTH
BCRYPT_ROUNDS: int = settings.BCRYPT_ROUNDS

# --- Paths (computed, not from env) ---
PROJECT_ROOT: str = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
TEMPLATE_PATH: str = os.path.join(os.path.dirname(__file__), "templates")
LOGS_PATH: str = os.path.join(PROJECT_ROOT, "logs")
