from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONNECTION_NAME = "default"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Database connections
    database_url: str | None = None
    database_urls: dict[str, str] = {}
    default_schema: str = "public"
    statement_timeout_ms: int = 30_000
    database_pool_size: int = 10
    database_max_overflow: int = 5
    database_pool_timeout_seconds: int = 10

    # Pagination
    default_page_limit: int = 100
    max_page_limit: int = 1000
    estimated_count_threshold: int | None = None

    # Application
    app_name: str = "pglens"
    debug: bool = False
    log_level: str = "INFO"
    logs_dir: Path = Path("logs")
    host: str = "127.0.0.1"
    port: int = 54321

    @field_validator("statement_timeout_ms", "database_pool_size", "max_page_limit")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("default_page_limit")
    @classmethod
    def validate_default_page_limit(cls, v):
        if v < 1:
            raise ValueError("DEFAULT_PAGE_LIMIT must be a positive integer")
        return v

    @model_validator(mode="after")
    def validate_connections(self):
        if not self.connection_urls:
            raise ValueError("DATABASE_URL or DATABASE_URLS must be set")
        return self

    @property
    def connection_urls(self) -> dict[str, str]:
        """Named connection URLs, with ``DATABASE_URL`` registered as ``default``."""
        urls: dict[str, str] = {}
        if self.database_url:
            urls[DEFAULT_CONNECTION_NAME] = self.database_url
        urls.update(self.database_urls)
        return urls


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
