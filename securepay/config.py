"""
SecurePay Configuration.

Pydantic Settings v2 - loads from .env, environment variables.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "SecurePay Risk Engine"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # ── API ───────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8080, alias="API_PORT")
    api_prefix: str = "/api/v1"
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        alias="CORS_ORIGINS",
    )

    # ── Storage ───────────────────────────────────────────────────────────
    storage_backend: str = Field(
        default="memory", alias="STORAGE_BACKEND",
        description="'memory' or 'database'",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./securepay.db",
        alias="DATABASE_URL",
    )

    # ── Decision Engine ──────────────────────────────────────────────────
    baseline_threshold: float = Field(default=0.65, alias="BASELINE_THRESHOLD")
    threshold_floor: float = Field(default=0.35, alias="THRESHOLD_FLOOR")
    threshold_ceiling: float = Field(default=0.95, alias="THRESHOLD_CEILING")
    manual_risk_threshold: float = Field(default=0.70, alias="MANUAL_RISK_THRESHOLD")

    # History retention (most recent first, oldest evicted)
    history_limit: int = Field(default=120, alias="HISTORY_LIMIT")
    batch_history_limit: int = Field(default=200, alias="BATCH_HISTORY_LIMIT")
    batch_default_country: str = Field(default="US", alias="BATCH_DEFAULT_COUNTRY")

    # Runtime toggles (overridable at runtime through persisted settings)
    realtime_alerts: bool = Field(default=True, alias="REALTIME_ALERTS")
    auto_lock: bool = Field(default=False, alias="AUTO_LOCK")
    auto_lock_probability: float = Field(default=0.95, alias="AUTO_LOCK_PROBABILITY")

    # Role for requests without an X-Role header (viewer | analyst | admin)
    default_role: str = Field(default="analyst", alias="DEFAULT_ROLE")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    @property
    def uses_database(self) -> bool:
        return self.storage_backend.lower() == "database"


settings = Settings()
