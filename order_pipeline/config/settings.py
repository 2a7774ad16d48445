"""
Configuration management for the order event pipeline.

Each concern reads its own environment prefix; values may also come from
.env files loaded by load_settings().
"""

import os
from typing import Optional, Dict, Any
from enum import Enum

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Deployment environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _require_http_url(value: str) -> str:
    if not value.startswith(('http://', 'https://')):
        raise ValueError(f'URL must start with http:// or https://: {value}')
    return value.rstrip('/')


class DispatchConfig(BaseSettings):
    """Order event dispatch configuration."""

    max_notification_age_seconds: int = Field(600, description="Skip push for orders older than this")
    revenue_divisor: int = Field(10000, description="POS minor units per currency unit for revenue")
    currency: str = Field("MXN", description="Currency reported with revenue")
    default_language: str = Field("es", description="Default message language")

    @field_validator('max_notification_age_seconds', 'revenue_divisor')
    def must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('Value must be positive')
        return v

    @field_validator('currency')
    def normalize_currency(cls, v):
        if len(v) != 3:
            raise ValueError(f'Currency must be a 3-letter ISO code: {v}')
        return v.upper()

    model_config = {"env_prefix": "DISPATCH_"}


class TwilioConfig(BaseSettings):
    """Twilio SMS and WhatsApp configuration."""

    account_sid: Optional[str] = Field(None, description="Twilio account SID")
    auth_token: Optional[str] = Field(None, description="Twilio auth token")
    messaging_service_sid: Optional[str] = Field(None, description="Twilio Messaging Service SID")

    # JSON object: {"order:ready": {"es": "HX...", "en": "HX..."}}
    whatsapp_templates: Dict[str, Dict[str, str]] = Field(
        default_factory=dict,
        description="WhatsApp content template ids by message type and language"
    )

    @property
    def is_configured(self) -> bool:
        """Check if all credentials are present."""
        return bool(self.account_sid and self.auth_token and self.messaging_service_sid)

    model_config = {"env_prefix": "TWILIO_"}


class PushConfig(BaseSettings):
    """Expo push configuration."""

    enabled: bool = Field(True, description="Enable push notifications")
    url: str = Field("https://exp.host/--/api/v2/push/send", description="Expo push endpoint")
    access_token: Optional[str] = Field(None, description="Expo access token")
    timeout_seconds: float = Field(15.0, description="Request timeout")

    @field_validator('url')
    def validate_url(cls, v):
        return _require_http_url(v)

    @field_validator('timeout_seconds')
    def timeout_must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('Timeout must be positive')
        return v

    model_config = {"env_prefix": "PUSH_"}


class AnalyticsConfig(BaseSettings):
    """PostHog analytics configuration."""

    api_key: Optional[str] = Field(None, description="PostHog project API key")
    host: str = Field("https://us.i.posthog.com", description="PostHog host or reverse proxy")
    timeout_seconds: float = Field(10.0, description="Request timeout")

    @field_validator('host')
    def validate_host(cls, v):
        return _require_http_url(v)

    @field_validator('timeout_seconds')
    def timeout_must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('Timeout must be positive')
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    model_config = {"env_prefix": "POSTHOG_"}


class LedgerConfig(BaseSettings):
    """Order ledger database configuration."""

    url: Optional[str] = Field(None, description="SQLAlchemy database URL")
    pool_size: int = Field(5, description="Connection pool size")
    echo: bool = Field(False, description="Log SQL statements")

    @field_validator('pool_size')
    def pool_size_must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('Pool size must be positive')
        return v

    model_config = {"env_prefix": "LEDGER_"}


class CircuitBreakerConfig(BaseSettings):
    """Per-channel circuit breaker configuration."""

    enabled: bool = Field(True, description="Guard channels with circuit breakers")
    failure_threshold: int = Field(5, description="Consecutive failures before opening")
    timeout_seconds: int = Field(60, description="Seconds before a trial call is allowed")

    @field_validator('failure_threshold', 'timeout_seconds')
    def must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('Value must be positive')
        return v

    model_config = {"env_prefix": "CIRCUIT_"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Default log level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )

    # File logging
    enable_file_logging: bool = Field(False, description="Enable file logging")
    log_file: str = Field("logs/order_pipeline.log", description="Log file path")
    max_bytes: int = Field(10 * 1024 * 1024, description="Maximum log file size in bytes")
    backup_count: int = Field(5, description="Number of backup log files")

    # Console logging
    enable_console_logging: bool = Field(True, description="Enable console logging")
    console_level: LogLevel = Field(LogLevel.INFO, description="Console log level")

    # Structured logging
    enable_json_logging: bool = Field(False, description="Enable JSON structured logging")
    include_extra_fields: bool = Field(True, description="Include extra fields in logs")

    @field_validator('level', 'console_level', mode='before')
    def normalize_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    def to_logger_config(self) -> Dict[str, Any]:
        """Convert to the dictionary LoggerSetup expects."""
        config = self.model_dump()
        config['level'] = self.level.value
        config['console_level'] = self.console_level.value
        return config

    model_config = {"env_prefix": "LOG_"}


class Settings(BaseSettings):
    """Main application settings."""

    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    debug: bool = Field(False, description="Enable debug mode")
    app_name: str = Field("Order Pipeline", description="Application name")

    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    twilio: TwilioConfig = Field(default_factory=TwilioConfig)
    push: PushConfig = Field(default_factory=PushConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('environment', mode='before')
    def validate_environment(cls, v):
        """Validate and normalize environment."""
        if isinstance(v, str):
            try:
                return Environment(v.lower())
            except ValueError:
                raise ValueError(f'Invalid environment: {v}. Must be one of: {list(Environment)}')
        return v

    @model_validator(mode='after')
    def validate_environment_settings(self):
        """Apply environment-specific validation."""
        if self.environment == Environment.PRODUCTION:
            if self.debug:
                raise ValueError('Debug mode cannot be enabled in production')
            if not self.analytics.host.startswith('https://'):
                raise ValueError('Production environment requires HTTPS for analytics')

        return self

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary with secrets masked."""
        data = self.model_dump(mode='json')

        for section, key in (('twilio', 'auth_token'), ('push', 'access_token'), ('analytics', 'api_key')):
            if data[section].get(key):
                data[section][key] = '***'

        return data

    model_config = {
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load application settings from environment variables and .env files.

    Args:
        env_file: Optional path to .env file

    Returns:
        Configured Settings instance

    Raises:
        ValueError: If configuration is invalid
        FileNotFoundError: If the given env file does not exist
    """
    if env_file:
        if not os.path.exists(env_file):
            raise FileNotFoundError(f"Environment file not found: {env_file}")
        load_dotenv(env_file, override=True)
    else:
        for possible_env_file in [".env", ".env.local", f".env.{os.getenv('ENVIRONMENT', 'development')}"]:
            if os.path.exists(possible_env_file):
                load_dotenv(possible_env_file, override=False)

    return Settings()


def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance
    """
    if not hasattr(get_settings, '_cached_settings'):
        get_settings._cached_settings = load_settings()

    return get_settings._cached_settings


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    if hasattr(get_settings, '_cached_settings'):
        delattr(get_settings, '_cached_settings')

    return get_settings()
