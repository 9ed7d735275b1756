"""
Application configuration management.

Uses pydantic-settings for type-safe environment variable parsing.
All configuration is centralized here; the record store itself never
reads settings, the storage factory translates them into constructor
arguments.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with validation and type coercion.
    
    Values are loaded from environment variables or .env file.
    All fields have sensible defaults for local development.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Storage Backend Selection
    # Options: "json" (single file on disk), "memory" (process-local)
    storage_backend: Literal["json", "memory"] = "json"
    
    # Snapshot file
    database_path: Path = Path("database.json")
    database_fresh_start: bool = False
    
    # Access credentials (signed, never stored)
    jwt_secret: str = ""
    jwt_issuer: str = "chirpy"
    access_token_max_seconds: int = 60 * 60 * 24
    
    # Refresh credentials (stored)
    refresh_token_ttl_seconds: int = 60 * 60 * 24 * 60
    
    # Posts
    post_max_length: int = 140
    banned_words: list[str] = Field(
        default_factory=lambda: ["kerfuffle", "sharbert", "fornax"],
    )
    
    # Upgrade webhook
    webhook_api_key: str = ""
    
    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    
    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    
    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings singleton.
    
    The @lru_cache ensures we only parse environment once.
    """
    return Settings()


# Convenience export for direct import
settings = get_settings()
