from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "weighbridge-gate-service"
    env: str = "dev"
    log_level: str = "INFO"

    # JWT
    jwt_secret: str = "dev-secret-change-me"
    jwt_issuer: str = "weighbridge"
    jwt_audience: str = "weighbridge-staff"
    access_token_ttl_seconds: int = 60 * 60 * 12
    bcrypt_rounds: int = 12

    # First super admin, created on startup when the staff table is empty
    bootstrap_admin_username: str | None = None
    bootstrap_admin_email: str | None = None
    bootstrap_admin_password: str | None = None

    # Data
    database_url: str = "sqlite:///./weighbridge.db"

    # CORS (dev)
    cors_allow_origins: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"

    # Weighbridge limits
    max_weight_kg: float = 100_000.0

    # Terminal client
    api_base_url: str = "http://127.0.0.1:8000"
    request_timeout_seconds: float = 30.0
    cache_ttl_seconds: float = 30.0

    # Plate/FASTag detection feed
    detection_feed_url: str = "ws://127.0.0.1:8001/ws"
    detection_reconnect_seconds: float = 3.0

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_database_url(cls, v: str) -> str:
        # Some providers emit `postgres://...` which SQLAlchemy rejects.
        if isinstance(v, str) and v.startswith("postgres://"):
            return "postgresql+psycopg://" + v[len("postgres://") :]
        if isinstance(v, str) and v.startswith("postgresql://"):
            return "postgresql+psycopg://" + v[len("postgresql://") :]
        return v


settings = Settings()
