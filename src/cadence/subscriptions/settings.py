"""Centralized configuration using pydantic-settings.

All configuration is loaded from environment variables and .env files.
For nested settings, use double underscore: JOBS__SCHEDULER=CLOUD_TASKS
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SchedulerBackend(str, Enum):
    """Execution backend used by the job runner."""

    INLINE = "INLINE"
    CLOUD_TASKS = "CLOUD_TASKS"
    CELERY = "CELERY"
    TEST = "TEST"


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    For nested settings, use double underscore: DATABASE__POOL_SIZE=20
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ============================================================
    # Core Application Settings
    # ============================================================

    app_name: str = Field("cadence-subscriptions", description="Application name")
    app_version: str = Field("1.0.0", description="Application version")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    debug: bool = Field(False, description="Debug mode")
    testing: bool = Field(False, description="Testing mode")
    host: str = Field("0.0.0.0", description="API bind host")
    port: int = Field(8000, description="API bind port")

    # ============================================================
    # Database Configuration
    # ============================================================

    class DatabaseSettings(BaseModel):
        """Database configuration."""

        url: str | None = Field(None, description="Full database URL")
        host: str = Field("localhost", description="Database host")
        port: int = Field(5432, description="Database port")
        database: str = Field("cadence", description="Database name")
        username: str = Field("cadence", description="Database username")
        password: str = Field("", description="Database password")

        # Connection pool
        pool_size: int = Field(10, description="Connection pool size")
        max_overflow: int = Field(20, description="Max overflow connections")
        pool_timeout: int = Field(30, description="Pool timeout in seconds")
        pool_recycle: int = Field(3600, description="Recycle connections after seconds")
        pool_pre_ping: bool = Field(True, description="Test connections before use")

        echo: bool = Field(False, description="Echo SQL statements")

    database: DatabaseSettings = DatabaseSettings()  # type: ignore[call-arg]

    # ============================================================
    # Celery & Task Queue
    # ============================================================

    class CelerySettings(BaseModel):
        """Celery configuration."""

        broker_url: str = Field("redis://localhost:6379/0", description="Broker URL")
        result_backend: str = Field("redis://localhost:6379/1", description="Result backend")
        task_soft_time_limit: int = Field(240, description="Soft time limit")
        task_time_limit: int = Field(300, description="Hard time limit")
        max_retries: int = Field(5, description="Retries for retryable job failures")
        retry_backoff_max: int = Field(3600, description="Max retry backoff in seconds")

    celery: CelerySettings = CelerySettings()  # type: ignore[call-arg]

    # ============================================================
    # Observability
    # ============================================================

    class ObservabilitySettings(BaseModel):
        """Observability configuration."""

        log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
        log_format: str = Field("json", description="Log format (json or text)")
        enable_correlation_ids: bool = Field(True, description="Enable correlation IDs")

    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]

    # ============================================================
    # Job Dispatch
    # ============================================================

    class JobsSettings(BaseModel):
        """Job runner configuration."""

        scheduler: SchedulerBackend | None = Field(
            None, description="Scheduler backend (defaults to TEST under test, INLINE otherwise)"
        )
        execute_path: str = Field("/internal/jobs/run", description="Job callback route")

    jobs: JobsSettings = JobsSettings()  # type: ignore[call-arg]

    class CloudTasksSettings(BaseModel):
        """Google Cloud Tasks push-queue configuration."""

        project_id: str = Field("", description="GCP project id")
        location: str = Field("us-central1", description="Cloud Tasks location")
        queue_prefix: str = Field("cadence", description="Prefix for queue names")
        callback_url: str = Field(
            "http://localhost:8000/internal/jobs/run", description="Job execute endpoint"
        )
        service_account_email: str = Field("", description="OIDC service account email")
        audience: str | None = Field(None, description="OIDC audience (defaults to callback URL)")
        max_dispatch_deadline_seconds: int = Field(
            1800, description="Upper bound for per-task dispatch deadline"
        )

    cloud_tasks: CloudTasksSettings = CloudTasksSettings()  # type: ignore[call-arg]

    # ============================================================
    # Commerce API
    # ============================================================

    class CommerceSettings(BaseModel):
        """Remote commerce admin API configuration."""

        api_version: str = Field("2024-10", description="Admin API version")
        base_url_template: str = Field(
            "https://{merchant_key}/admin/api/{api_version}/graphql.json",
            description="GraphQL endpoint template",
        )
        timeout: float = Field(30.0, description="Request timeout in seconds")
        verify_ssl: bool = Field(True, description="Verify TLS certificates")

    commerce: CommerceSettings = CommerceSettings()  # type: ignore[call-arg]

    # ============================================================
    # Billing Configuration
    # ============================================================

    class BillingSettings(BaseModel):
        """Recurring billing configuration."""

        trigger_interval_hours: int = Field(
            1, description="Cadence of the recurring billing trigger"
        )
        charge_lookback_days: int = Field(
            2, description="Width of the billing window ending at the local end of day"
        )
        page_size: int = Field(1000, description="Billing schedules fetched per page")
        default_timezone: str = Field("America/Toronto", description="Fallback merchant timezone")
        default_hour: int = Field(10, ge=0, le=23, description="Local billing hour")

        @model_validator(mode="after")
        def validate_lookback(self) -> "Settings.BillingSettings":
            """A missed trigger must still fall inside the next run's window."""
            if self.charge_lookback_days * 24 < self.trigger_interval_hours + 24:
                raise ValueError(
                    "charge_lookback_days must cover the trigger interval plus one day"
                )
            return self

    billing: BillingSettings = BillingSettings()  # type: ignore[call-arg]

    # ============================================================
    # Webhooks
    # ============================================================

    class WebhookSettings(BaseModel):
        """Webhook intake configuration."""

        secret: str | None = Field(None, description="Shared HMAC secret, unset disables checks")
        merchant_header: str = Field("X-Merchant-Key", description="Merchant key header")
        hmac_header: str = Field("X-Webhook-Hmac-Sha256", description="Signature header")

    webhooks: WebhookSettings = WebhookSettings()  # type: ignore[call-arg]

    # ============================================================
    # Validation & Helpers
    # ============================================================

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing or self.environment == Environment.TEST

    @property
    def scheduler_backend(self) -> SchedulerBackend:
        """Configured scheduler, falling back on the environment default."""
        if self.jobs.scheduler is not None:
            return self.jobs.scheduler
        return SchedulerBackend.TEST if self.is_testing else SchedulerBackend.INLINE


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore
    return _settings


def reset_settings() -> None:
    """Reset settings (mainly for testing)."""
    global _settings
    _settings = None


# Convenience export
settings = get_settings()
