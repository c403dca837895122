"""Settings and configuration."""
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Core
    MODE: str = "dev"  # dev, prod
    DEV_MODE: bool = False

    # Store (unset -> in-process memory backends, dev only)
    REDIS_URL: Optional[str] = None
    REDIS_TIMEOUT_SECONDS: float = 2.0

    # Secrets
    SECRET_TTL_SECONDS: int = 24 * 60 * 60

    # Rate Limiting (requests per window, per client identifier)
    SHARE_RATE_LIMIT: int = 10
    RETRIEVE_RATE_LIMIT: int = 20
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Origin checks
    PUBLIC_HOST: Optional[str] = None
    PREVIEW_DOMAIN_SUFFIX: str = ".vercel.app"

    # Observability
    TRACING_ENABLED: bool = False
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None

    # Client
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",
    )

    @property
    def is_prod(self) -> bool:
        return self.MODE.lower() == "prod"

    @property
    def diagnostics_enabled(self) -> bool:
        return self.DEV_MODE and not self.is_prod


@lru_cache
def get_settings() -> Settings:
    return Settings()
