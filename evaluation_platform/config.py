"""Application configuration with validation."""
from typing import Optional, Literal
from functools import lru_cache
from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with production-grade validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Accelerator Evaluation Platform"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Storage
    STORAGE_BACKEND: Literal["memory", "snowflake"] = "memory"

    # Snowflake
    SNOWFLAKE_ACCOUNT: Optional[str] = None
    SNOWFLAKE_USER: Optional[str] = None
    SNOWFLAKE_PASSWORD: Optional[SecretStr] = None
    SNOWFLAKE_DATABASE: Optional[str] = None
    SNOWFLAKE_SCHEMA: Optional[str] = None
    SNOWFLAKE_WAREHOUSE: Optional[str] = None
    SNOWFLAKE_ROLE: Optional[str] = None

    # Redis
    CACHE_ENABLED: bool = True
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_SCOREBOARD: int = Field(default=60, ge=1, le=3600)
    CACHE_TTL_RANKINGS: int = Field(default=60, ge=1, le=3600)

    # Evaluation defaults (used when an application has no stored settings)
    DEFAULT_REQUIRED_EVALUATOR_PERCENTAGE: float = Field(default=75.0, ge=0, le=100)
    DEFAULT_MIN_SCORE: float = Field(default=1.0, ge=0)
    DEFAULT_MAX_SCORE: float = Field(default=10.0, gt=0)

    # Demo day raw score range
    DEMO_DAY_MIN_SCORE: int = Field(default=1, ge=0)
    DEMO_DAY_MAX_SCORE: int = Field(default=10, gt=0)

    @model_validator(mode="after")
    def validate_score_ranges(self):
        """Ensure score ranges are not inverted."""
        if self.DEFAULT_MIN_SCORE >= self.DEFAULT_MAX_SCORE:
            raise ValueError(
                f"DEFAULT_MIN_SCORE ({self.DEFAULT_MIN_SCORE}) must be below "
                f"DEFAULT_MAX_SCORE ({self.DEFAULT_MAX_SCORE})"
            )
        if self.DEMO_DAY_MIN_SCORE >= self.DEMO_DAY_MAX_SCORE:
            raise ValueError("DEMO_DAY_MIN_SCORE must be below DEMO_DAY_MAX_SCORE")
        return self

    @model_validator(mode="after")
    def validate_storage_settings(self):
        """Snowflake backend needs credentials."""
        if self.STORAGE_BACKEND == "snowflake":
            missing = [
                name for name in ("SNOWFLAKE_ACCOUNT", "SNOWFLAKE_USER", "SNOWFLAKE_PASSWORD")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Snowflake backend requires: {', '.join(missing)}")
        return self

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production is not running in debug mode."""
        if self.APP_ENV == "production" and self.DEBUG:
            raise ValueError("DEBUG must be False in production")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
