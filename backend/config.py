"""Application settings loaded from .env file."""
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Stores
    RESOURCE_DATABASE_URL: str = "sqlite:///./resources.db"
    METADATA_DATABASE_URL: str = "sqlite:///./metadata.db"
    CATALOG_SCHEMA: str = "public"          # ignored for SQLite
    APP_MODE: Literal["local", "hosted"] = "hosted"

    # Metadata cache
    TABLE_METADATA_CACHE_ENABLED: bool = True
    TABLE_METADATA_CACHE_TTL_SECONDS: int = 60 * 60 * 24
    TABLE_METADATA_CACHE_MAX_ENTRIES: int = 1024

    # Queries
    DEFAULT_PAGE_LIMIT: int = 100
    MAX_PAGE_LIMIT: int = 1000

    # Introspection
    INTROSPECTION_WORKERS: int = 4

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:5173"

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
