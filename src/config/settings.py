"""
Storefront Analytics Service
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Record store (PostgreSQL) configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="storefront", alias="POSTGRES_DB", description="Database name")
    user: str = Field(default="storefront", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL",
        description="Full async database URL (overrides host/port, e.g. sqlite+aiosqlite:///./storefront.db)",
    )

    @property
    def async_url(self) -> str:
        """Async database URL, DATABASE_URL wins when set"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis cache configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=50, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class SecuritySettings(BaseSettings):
    """Authentication and authorization configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    jwt_secret_key: SecretStr = Field(default="jwt-secret-change-me", alias="JWT_SECRET_KEY", description="JWT secret key")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM", description="JWT algorithm")
    jwt_expiration_hours: int = Field(default=24 * 7, alias="JWT_EXPIRATION_HOURS", description="JWT expiration in hours")
    super_admin_email: Optional[str] = Field(
        default=None,
        alias="SUPER_ADMIN_EMAIL",
        description="Account email that is always promoted to admin on sign-in",
    )

    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging and metrics configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED", description="Expose Prometheus metrics")


class AnalyticsSettings(BaseSettings):
    """Aggregation engine windows, leaderboard sizes and paging limits"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    recent_purchases_limit: int = Field(default=10, description="Recent purchases on the dashboard")
    top_products_limit: int = Field(default=5, description="Product leaderboard size")
    top_accounts_limit: int = Field(default=5, description="Account leaderboard size")
    favorite_products_limit: int = Field(default=3, description="Favorite products per account")
    recent_buyers_limit: int = Field(default=5, description="Recent buyers per product")

    daily_window_days: int = Field(default=7, description="Calendar days in the daily series")
    monthly_window_months: int = Field(default=6, description="Calendar months in the monthly series")
    trending_window_days: int = Field(default=30, description="Trailing window for recent sales")

    default_page_size: int = Field(default=50, description="Default purchase listing page size")
    max_page_size: int = Field(default=500, description="Upper bound for the page size")

    summary_cache_enabled: bool = Field(default=False, description="Cache full dashboard summaries in Redis")
    summary_cache_ttl: int = Field(default=5, description="Dashboard summary cache TTL in seconds")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="storefront-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    version: str = Field(default="1.0.0", description="Application version")
    seed_sample_products: bool = Field(
        default=False, alias="SEED_SAMPLE_PRODUCTS", description="Insert the sample catalog on startup when empty"
    )

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
