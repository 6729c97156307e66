"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "healthday"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Storage ---
    record_store: Literal["memory", "postgres"] = "memory"
    database_url: str = ""  # postgres connection string for asyncpg
    db_pool_min_size: int = 2
    db_pool_max_size: int = 20

    # --- Provider ---
    oura_personal_token: str = ""  # fallback when no X-Provider-Token header is sent
    provider_timeout_seconds: float = 30.0

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
