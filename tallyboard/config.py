"""
Tallyboard settings.

Everything is read from environment variables (or a local ``.env``) by
pydantic-settings; names are case-insensitive, so ``DB_PATH`` sets ``db_path``.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMATS = ("json", "console")


class Settings(BaseSettings):
    """Service configuration. Defaults suit local development."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Record source (DuckDB)
    db_path: str = Field(default="./data/tallyboard.duckdb", description="DuckDB file, or :memory:")
    db_threads: int = Field(default=4, ge=1, description="Threads DuckDB may use per query")
    source_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Upper bound for a single fetch, procedure call or write"
    )

    # Reporting defaults
    top_n_default: int = Field(default=5, ge=0, le=100, description="Ranking length when none is requested")
    dashboard_trend_days: int = Field(
        default=30, ge=1, le=365, description="Days covered by dashboard metrics and the sales trend"
    )
    report_default_days: int = Field(
        default=30, ge=1, le=3650, description="Look-back window for reports called without dates"
    )
    trend_month_includes_year: bool = Field(
        default=True,
        description="Key monthly buckets by year and month; False merges the same month across years",
    )

    # Engagement tracking
    default_tenant_id: str = Field(
        default="default", description="Tenant recorded for /track calls that name none"
    )

    # Tenant tokens
    jwt_secret: str = Field(
        default="change-this-to-a-secure-random-string-in-production",
        description="Secret used to sign tenant access tokens",
    )
    jwt_algorithm: str = Field(default="HS256", description="Token signing algorithm")
    jwt_expiration_minutes: int = Field(default=1440, ge=1, description="Token lifetime in minutes")

    # HTTP server
    api_host: str = Field(default="0.0.0.0", description="Bind address")
    api_port: int = Field(default=8000, description="Bind port")
    api_reload: bool = Field(default=True, description="Reload on code changes (development only)")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Origins allowed to call the API and the tracking pixel, comma-separated",
    )

    # Logging
    log_level: str = Field(default="info", description="Minimum log level")
    log_format: str = Field(default="json", description="json or console")

    # Modes
    dev_mode: bool = Field(default=True, description="Development mode (console logs)")
    testing: bool = Field(default=False, description="Set by the test suite")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> List[str]:
        """Split the comma-separated origin list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
        return v


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
