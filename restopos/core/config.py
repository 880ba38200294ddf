"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "restopos API"
    app_env: str = getenv("APP_ENV", "dev")
    log_level: str = getenv("LOG_LEVEL", "INFO")
    database_url: str = getenv("DATABASE_URL", "sqlite:///./restaurant.db")
    supabase_url: str = getenv("SUPABASE_URL", "")
    supabase_service_role_key: str = getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    realtime_enabled: bool = getenv("REALTIME_ENABLED", "1") == "1"
    backend_timeout: float = float(getenv("BACKEND_TIMEOUT", "15"))
    broadcast_send_timeout: float = float(getenv("BROADCAST_SEND_TIMEOUT", "10"))
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "720"))
    owner_password: str = getenv("OWNER_PASSWORD", "gokul2024")

    @property
    def managed_configured(self) -> bool:
        """Return True when both managed-service URL and credential are present."""
        return bool(self.supabase_url and self.supabase_service_role_key)


settings: Settings = Settings()
