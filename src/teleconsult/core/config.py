"""
Configuration management for the Teleconsult backend.

This module provides centralized configuration using Pydantic Settings
for environment-based configuration management.
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(env_prefix="MONGO_")

    uri: str = Field(default="mongodb://localhost:27017", description="MongoDB connection URI")
    db_name: str = Field(default="teleconsult", description="MongoDB database name")
    server_selection_timeout_ms: int = Field(default=5000, description="Server selection timeout")

    @field_validator("uri")
    @classmethod
    def validate_mongo_uri(cls, v: str) -> str:
        """Validate MongoDB URI format."""
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError("MongoDB URI must start with 'mongodb://' or 'mongodb+srv://'")
        return v


class RedisSettings(BaseSettings):
    """Key-value cache settings."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    enabled: bool = Field(default=True, description="Use Redis; falls back to in-process cache when false")
    url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    socket_timeout: float = Field(default=5.0, description="Socket timeout in seconds")
    namespace: str = Field(default="teleconsult", description="Prefix applied to every key")


class DiagnosisServiceSettings(BaseSettings):
    """Outbound AI diagnosis service settings."""

    model_config = SettingsConfigDict(env_prefix="DIAGNOSIS_")

    base_url: str = Field(default="http://localhost:8001", description="Diagnosis service base URL")
    endpoint_path: str = Field(default="/diagnosis", description="Diagnosis endpoint path")
    health_path: str = Field(default="/health", description="Health endpoint path")
    request_timeout_seconds: float = Field(default=30.0, description="Per-attempt timeout")
    health_timeout_seconds: float = Field(default=5.0, description="Health check timeout")
    max_attempts: int = Field(default=3, description="Attempts per diagnosis request")
    base_backoff_ms: int = Field(default=1000, description="First retry delay")
    max_backoff_ms: int = Field(default=5000, description="Retry delay ceiling")
    cache_ttl_seconds: int = Field(default=3600, description="Diagnosis result cache TTL")

    @field_validator("max_attempts", "cache_ttl_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be positive")
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ServiceTokenSettings(BaseSettings):
    """Service-to-service JWT settings."""

    model_config = SettingsConfigDict(env_prefix="SERVICE_TOKEN_")

    secret: str = Field(
        default="change-me-service-token-secret-change-me", description="HS256 signing secret"
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    issuer: str = Field(default="teleconsult-backend", description="Token issuer")
    audience: str = Field(default="ai-diagnosis-service", description="Token audience")
    subject: str = Field(default="teleconsult-backend-service", description="Token subject")
    username: str = Field(default="teleconsult-backend", description="Service username claim")
    expires_in_seconds: int = Field(default=3600, description="Token lifetime")
    refresh_buffer_seconds: int = Field(default=300, description="Refresh when less validity remains")
    cache_key: str = Field(default="ai-service-token", description="Cache slot for the token")

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError("Service token secret must be at least 32 characters long")
        return v


class SessionSettings(BaseSettings):
    """Ephemeral session settings."""

    model_config = SettingsConfigDict(env_prefix="SESSION_")

    ttl_seconds: int = Field(default=3600, description="Intake session TTL")
    clinical_ttl_seconds: int = Field(default=86400, description="Clinical session TTL")
    temp_data_ttl_seconds: int = Field(default=3600, description="Temporary intake data TTL")

    @field_validator("ttl_seconds", "clinical_ttl_seconds", "temp_data_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v < 1:
            raise ValueError("TTL must be positive")
        return v


class ShiftSettings(BaseSettings):
    """Doctor shift resolution settings."""

    model_config = SettingsConfigDict(env_prefix="SHIFT_")

    match_cache_ttl_seconds: int = Field(default=1800, description="TTL for a resolved shift")
    fallback_cache_ttl_seconds: int = Field(default=900, description="TTL for a fallback doctor")
    morning_doctor_id: str = Field(default="687664ac2478464bb482b84a")
    evening_doctor_id: str = Field(default="687656c3e69fa2e8923dbc2c")
    morning_start_hour: int = Field(default=6, description="Fallback morning window start")
    split_hour: int = Field(default=16, description="Fallback evening window start")
    timezone: str = Field(default="Asia/Kolkata", description="Timezone used to read the clock hour")


class PaymentSettings(BaseSettings):
    """Simulated payment gateway settings."""

    model_config = SettingsConfigDict(env_prefix="PAYMENT_")

    currency: str = Field(default="INR")
    order_ttl_minutes: int = Field(default=15, description="Order expiry")
    record_ttl_seconds: int = Field(default=86400, description="Payment record cache TTL")
    pricing: Dict[str, float] = Field(
        default={"chat": 150.0, "video": 250.0, "emergency": 300.0},
        description="Price per consultation type",
    )

    @field_validator("pricing", mode="before")
    @classmethod
    def parse_pricing(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v


class ConsultationSettings(BaseSettings):
    """Consultation record settings."""

    model_config = SettingsConfigDict(env_prefix="CONSULTATION_")

    lifetime_hours: int = Field(default=24, description="Hours until a consultation expires")


class SweeperSettings(BaseSettings):
    """Consultation expiry sweeper settings."""

    model_config = SettingsConfigDict(env_prefix="SWEEPER_")

    enabled: bool = Field(default=False, description="Run the sweeper inside the API process")
    interval_seconds: int = Field(default=300, description="Seconds between sweeps")


class CORSSettings(BaseSettings):
    """CORS configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins",
    )
    allowed_methods: List[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods",
    )
    allowed_headers: List[str] = Field(default=["*"], description="Allowed HTTP headers")
    allow_credentials: bool = Field(default=True, description="Allow credentials in CORS")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed origins from string or list."""
        if isinstance(v, str):
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v.strip()]
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format (json or text)")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    app_name: str = Field(default="Teleconsult", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Debug mode")
    port: int = Field(default=8000, description="Application port")
    host: str = Field(default="0.0.0.0", description="Application host")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    diagnosis: DiagnosisServiceSettings = Field(default_factory=DiagnosisServiceSettings)
    service_token: ServiceTokenSettings = Field(default_factory=ServiceTokenSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    shift: ShiftSettings = Field(default_factory=ShiftSettings)
    payment: PaymentSettings = Field(default_factory=PaymentSettings)
    consultation: ConsultationSettings = Field(default_factory=ConsultationSettings)
    sweeper: SweeperSettings = Field(default_factory=SweeperSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate application environment."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"App environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_testing(self) -> bool:
        return self.app_env == "testing"


# Global settings instance (loaded after attempting to read .env)
_settings: Optional[Settings] = None


def _load_env_file_if_available() -> None:
    """Best-effort load of .env by searching current and parent directories.

    Sub-settings read ``os.environ`` directly, so the file has to be loaded
    into the process environment rather than only handed to pydantic.
    """
    from dotenv import load_dotenv

    cwd = Path(os.getcwd()).resolve()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / ".env"
        if candidate.exists():
            # Do not override already-set environment variables
            load_dotenv(dotenv_path=str(candidate), override=False)
            break


def get_settings() -> Settings:
    """Get application settings instance (lazy-init with .env discovery)."""
    global _settings
    if _settings is None:
        _load_env_file_if_available()
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
