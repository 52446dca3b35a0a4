"""
FitComp - Configuration Module
==============================
All configuration is loaded from environment variables.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    # App
    app_name: str = "FitComp Competition Manager"
    app_env: str = "development"
    app_debug: bool = False
    app_secret_key: str = Field(default="dev-secret-key-change-me-0123456789abcdef", min_length=32)
    app_port: int = 8000

    @property
    def secret_key(self) -> str:
        return self.app_secret_key

    # Auth tokens
    token_algorithm: str = "HS256"
    token_expiry_minutes: int = 60 * 12
    impersonation_token_expiry_minutes: int = 60

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "fitcomp_db"
    postgres_user: str = "fitcomp"
    postgres_password: str = Field(default="fitcomp-dev", min_length=8)
    database_url_override: str = ""

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Audit
    audit_default_limit: int = 50
    audit_max_limit: int = 500

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "FITCOMP_"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
