"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with TSK_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="TSK_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///./teenskill.db"
    redis_url: str = "redis://localhost:6379/0"  # empty string disables rate limiting
    cors_origins: list[str] = ["http://localhost:3000"]
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Schema bootstrap ---
    auto_bootstrap_schema: bool = True

    # --- Identity gateway (session tokens issued by the hosted auth provider) ---
    identity_jwt_algorithm: str = "RS256"
    identity_jwt_public_key_path: str = "keys/identity_public.pem"
    identity_jwt_secret: str = ""  # only used with HS* algorithms
    identity_jwt_issuer: str = ""  # empty skips the issuer check

    # --- Marketplace rules ---
    default_task_quota: int = 5
    quota_window_days: int = 7
    completion_xp_reward: int = 100
    freelancer_min_age: int = 13
    freelancer_max_age: int = 17
    client_min_age: int = 18

    # --- Safety classifier (Gemini) ---
    safety_api_key: str = ""
    safety_model: str = "gemini-3-flash-preview"
    safety_api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    safety_timeout_seconds: float = 5.0


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
