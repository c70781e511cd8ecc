"""Application configuration with comprehensive validation."""
from typing import Optional, Literal, Dict
from functools import lru_cache
from pydantic import Field, field_validator, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# STEP TIMEOUTS
# =============================================================================
# Upper bound (seconds) for a single attempt of each pipeline step.
# Steps not listed fall back to Settings.STEP_TIMEOUT_SECONDS.
# =============================================================================

STEP_TIMEOUT_OVERRIDES: Dict[str, float] = {
    "ingest": 180.0,
    "image-generation": 600.0,
    "completeness": 60.0,
}


class Settings(BaseSettings):
    """Application settings with production-grade validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Folio Pipeline Engine"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Redis (queue + cache)
    REDIS_URL: str = "redis://localhost:6379/0"
    QUEUE_REDIS_URL: Optional[str] = None
    QUEUE_PREFIX: str = "folio:pipeline"
    CACHE_TTL_RESOLVED_ASSET: int = 86400 * 7  # 7 days

    # Retry policy
    PIPELINE_MAX_ATTEMPTS: int = Field(default=3, ge=1, le=10)
    PIPELINE_BACKOFF_BASE_SECONDS: float = Field(default=2.0, ge=0.0, le=300.0)

    # Worker pool
    WORKER_CONCURRENCY: int = Field(default=4, ge=1, le=64)
    WORKER_LEASE_SECONDS: float = Field(default=30.0, ge=5.0, le=3600.0)
    WORKER_HEARTBEAT_SECONDS: float = Field(default=10.0, ge=1.0, le=1200.0)
    WORKER_POLL_INTERVAL_SECONDS: float = Field(default=1.0, ge=0.05, le=60.0)
    REAPER_INTERVAL_SECONDS: float = Field(default=15.0, ge=1.0, le=600.0)
    STEP_TIMEOUT_SECONDS: float = Field(default=300.0, ge=1.0, le=3600.0)

    # Snowflake
    SNOWFLAKE_ACCOUNT: Optional[str] = None
    SNOWFLAKE_USER: Optional[str] = None
    SNOWFLAKE_PASSWORD: Optional[SecretStr] = None
    SNOWFLAKE_DATABASE: Optional[str] = None
    SNOWFLAKE_SCHEMA: Optional[str] = None
    SNOWFLAKE_WAREHOUSE: Optional[str] = None
    SNOWFLAKE_ROLE: Optional[str] = None

    # AWS S3
    AWS_ACCESS_KEY_ID: Optional[SecretStr] = None
    AWS_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    AWS_REGION: str = "us-east-2"
    S3_BUCKET: str = "folio-assets"
    S3_PUBLIC_BASE_URL: Optional[str] = None

    # LLM
    OPENAI_API_KEY: Optional[SecretStr] = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    DEFAULT_LLM_MODEL: str = "gpt-4o-2024-08-06"
    LLM_TIMEOUT_SECONDS: float = Field(default=60.0, ge=1.0, le=600.0)

    # Logo providers (tried in this order)
    BRANDFETCH_API_KEY: Optional[SecretStr] = None
    LOGODEV_API_KEY: Optional[SecretStr] = None
    IDEOGRAM_API_KEY: Optional[SecretStr] = None
    LOGO_PROVIDER_TIMEOUT_SECONDS: float = Field(default=10.0, ge=0.5, le=60.0)
    LOGO_GENERATION_TIMEOUT_SECONDS: float = Field(default=30.0, ge=1.0, le=120.0)

    # Image generation
    GEMINI_API_KEY: Optional[SecretStr] = None
    IMAGE_API_URL: str = "https://api.gemini.google.com/v1/images/generate"
    IMAGE_MODEL: str = "gemini-nanobanna"
    IMAGE_TIMEOUT_SECONDS: float = Field(default=120.0, ge=1.0, le=600.0)

    @field_validator("OPENAI_API_KEY")
    @classmethod
    def validate_openai_key(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is not None and not v.get_secret_value().startswith("sk-"):
            raise ValueError("Invalid OpenAI API key format")
        return v

    @model_validator(mode="after")
    def validate_worker_timing(self):
        """Heartbeats must renew a lease well before it expires."""
        if self.WORKER_HEARTBEAT_SECONDS >= self.WORKER_LEASE_SECONDS:
            raise ValueError(
                "WORKER_HEARTBEAT_SECONDS must be lower than WORKER_LEASE_SECONDS, "
                f"got {self.WORKER_HEARTBEAT_SECONDS} >= {self.WORKER_LEASE_SECONDS}"
            )
        return self

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production has required settings."""
        if self.APP_ENV == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if not self.OPENAI_API_KEY:
                raise ValueError("OPENAI_API_KEY required in production")
            if not self.SNOWFLAKE_ACCOUNT:
                raise ValueError("SNOWFLAKE_ACCOUNT required in production")
        return self

    @property
    def queue_redis_url(self) -> str:
        """Queue may live on its own Redis database; defaults to REDIS_URL."""
        return self.QUEUE_REDIS_URL or self.REDIS_URL

    def step_timeout(self, step: str) -> float:
        """Per-attempt timeout for a step kind."""
        return STEP_TIMEOUT_OVERRIDES.get(step, self.STEP_TIMEOUT_SECONDS)


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
