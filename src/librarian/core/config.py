"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from LIBRARIAN_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARIAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database - any SQLAlchemy async URL (aiosqlite for local use, asyncpg for PostgreSQL)
    database_url: str = "sqlite+aiosqlite:///librarian.db"
    database_echo: bool = False

    # API server
    host: str = "127.0.0.1"
    port: int = 8080

    # HTTP client used by the CLI
    api_url: str = "http://127.0.0.1:8080"
    api_timeout: float = 10.0

    log_level: str = "INFO"

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(default="", validation_alias="LIBRARIAN_CORS_ORIGINS")

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
