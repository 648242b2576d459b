"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated origins. Empty = default list in app/main.py.
    cors_origins: str = ""

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default

    # ===========================================
    # AUTH
    # ===========================================
    # Bearer tokens issued by the identity provider (HS256 shared secret).
    jwt_secret_key: str  # Required, no default
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = "authenticated"
    # Admin / scheduler calls (X-Admin-Key). Unset = admin actions are refused.
    admin_api_key: str | None = None

    # ===========================================
    # DAILY BONUS
    # ===========================================
    bonus_timezone: str = "America/Sao_Paulo"
    # Claim day rolls over at this local hour (20h Brasília = 23h UTC).
    bonus_day_boundary_hour: int = 20
    bonus_test_mode_window_seconds: int = 10
    bonus_code_validity_hours: int = 72
    bonus_code_length: int = 8
    bonus_lazy_code_generation: bool = True
    bonus_config_cache_ttl: int = 60
    bonus_streak_history_limit: int = 400
    bonus_code_ensure_minutes: int = 5
    bonus_cleanup_hour: int = 3

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("bonus_day_boundary_hour")
    @classmethod
    def validate_boundary_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError("bonus_day_boundary_hour must be within 0..23")
        return v

    @field_validator("bonus_code_length")
    @classmethod
    def validate_code_length(cls, v: int) -> int:
        """Short codes collide too often to be worth retrying."""
        if v < 6:
            raise ValueError("bonus_code_length must be at least 6")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
