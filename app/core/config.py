"""
DocProof Configuration
Settings loaded from environment variables (and an optional .env file).
"""

import hashlib
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_name: str = "DocProof"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./docproof.db"

    # Registration policy
    hash_algorithm: str = "sha256"
    max_file_size_bytes: int = 104857600  # 100 MiB

    # Ledger simulation
    confirmation_delay_seconds: float = 2.0
    recover_pending_on_startup: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    # Listing
    default_page_size: int = 50
    max_page_size: int = 500

    @property
    def hash_hex_length(self) -> int:
        """Number of hex characters in a digest of the configured algorithm."""
        return hashlib.new(self.hash_algorithm).digest_size * 2

    @property
    def max_file_size_mb(self) -> int:
        return self.max_file_size_bytes // (1024 * 1024)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
