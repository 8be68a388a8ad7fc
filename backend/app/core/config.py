"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore", # Allow extra env vars without failing
    )

    # App
    app_name: str = "Mecone Back-Office"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Signing secrets MUST be provided via environment (JWT_SECRET / JWT_REFRESH_SECRET)
    jwt_secret: str
    jwt_refresh_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7

    # Passwords
    bcrypt_rounds: int = 12
    log_temporary_passwords: bool = False # Development only

    # Sessions and audit
    audit_api_access: bool = True
    enforce_session_expiry: bool = False
    rotate_refresh_tokens: bool = False

    # Startup seeding
    seed_admin_email: str = "admin@mecone.com"
    seed_admin_password: str = "admin123"
    seed_admin_first_name: str = "Administrator"
    seed_admin_last_name: str = "System"

    # API
    api_prefix: str = "/api"
    allowed_origins: list[str] = ["http://localhost:5173"]

    # Database
    database_url: str = "sqlite+aiosqlite:///./mecone.db"
    database_pool_size: int = 5
    database_max_overflow: int = 10
    auto_create_tables: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
