"""
Configuration Management

Sectioned pydantic-settings configuration. Each concern reads its own
environment prefix; the root Settings object composes them.
"""

from pydantic import Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional, Dict, Any
from pathlib import Path

from distwatch.core.enums import Environment, LogLevel, NotificationChannel
from distwatch.core.exceptions import ConfigurationError

# Fifteen days
DEFAULT_COOLDOWN_SECONDS = 15 * 24 * 60 * 60

class SnapshotSettings(BaseSettings):
    """Snapshot locations and report output."""
    model_config = SettingsConfigDict(env_prefix="SNAPSHOT_")

    previous_dir: Path = Field(default=Path("data/previous"), description="Previous snapshot root")
    current_dir: Path = Field(default=Path("data/current"), description="Current snapshot root")
    report_path: Path = Field(default=Path("data/comparison.log"), description="Comparison report file")

class HashingSettings(BaseSettings):
    """Content digest configuration."""
    model_config = SettingsConfigDict(env_prefix="HASHING_")

    algorithms: List[str] = Field(
        default=["sha256", "md5"],
        description="Digest algorithms in preference order"
    )
    chunk_size: int = Field(default=65536, description="Read size when hashing files")

    @field_validator('algorithms')
    @classmethod
    def algorithms_not_empty(cls, v):
        if not v:
            raise ValueError('At least one digest algorithm must be configured')
        return [name.lower() for name in v]

    @field_validator('chunk_size')
    @classmethod
    def chunk_size_positive(cls, v):
        if v <= 0:
            raise ValueError('chunk_size must be positive')
        return v

class NotificationSettings(BaseSettings):
    """Cooldown gate and delivery channel configuration."""
    model_config = SettingsConfigDict(env_prefix="NOTIFY_")

    lock_path: Path = Field(default=Path("data/notification.lock"), description="Lock marker file")
    cooldown_seconds: int = Field(
        default=DEFAULT_COOLDOWN_SECONDS,
        description="Delay between first detection and notification"
    )
    channels: List[NotificationChannel] = Field(
        default=[NotificationChannel.LOG],
        description="Enabled delivery channels"
    )

    # Email
    smtp_host: str = Field(default="localhost", description="SMTP server")
    smtp_port: int = Field(default=587, description="SMTP port")
    smtp_username: Optional[str] = Field(None, description="SMTP login")
    smtp_password: Optional[SecretStr] = Field(None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Issue STARTTLS before login")
    from_email: str = Field(default="distwatch@localhost", description="Sender address")
    recipients: List[str] = Field(default_factory=list, description="Email recipients")
    subject_prefix: str = Field(default="[DistWatch]", description="Email subject prefix")

    # Webhook
    webhook_url: Optional[str] = Field(None, description="Webhook endpoint")
    webhook_timeout: int = Field(default=10, description="Webhook timeout (seconds)")

    @field_validator('cooldown_seconds')
    @classmethod
    def cooldown_not_negative(cls, v):
        if v < 0:
            raise ValueError('cooldown_seconds must not be negative')
        return v

class DownloadSettings(BaseSettings):
    """Artifact retrieval configuration."""
    model_config = SettingsConfigDict(env_prefix="DOWNLOAD_")

    url: Optional[str] = Field(None, description="Artifact URL")
    timeout: int = Field(default=900, description="Total read timeout (seconds)")
    connect_timeout: int = Field(default=60, description="Connect timeout (seconds)")
    retry_attempts: int = Field(default=3, description="Download attempts")
    retry_delay: int = Field(default=10, description="Seconds between attempts")
    min_file_size: int = Field(default=1_048_576, description="Minimum expected archive size (bytes)")
    user_agent: str = Field(
        default="DistWatch-Monitor/1.0",
        description="HTTP User-Agent header"
    )

    @field_validator('retry_attempts')
    @classmethod
    def at_least_one_attempt(cls, v):
        if v < 1:
            raise ValueError('retry_attempts must be at least 1')
        return v

class ObservabilitySettings(BaseSettings):
    """Logging configuration."""
    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_level: LogLevel = LogLevel.INFO
    log_format: str = "text"  # json or text

class Settings(BaseSettings):
    """Main application settings with all configurations."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    project_name: str = Field(default="DistWatch", description="Project name")
    version: str = Field(default="1.0.0", description="Application version")
    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    snapshot: SnapshotSettings = Field(default_factory=SnapshotSettings)
    hashing: HashingSettings = Field(default_factory=HashingSettings)
    notification: NotificationSettings = Field(default_factory=NotificationSettings)
    download: DownloadSettings = Field(default_factory=DownloadSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION

    @model_validator(mode='after')
    def validate_environment_settings(self):
        """Validate environment-specific settings."""
        if self.environment == Environment.PRODUCTION and self.debug:
            raise ValueError("Debug mode cannot be enabled in production")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary (for debugging)."""
        return {
            "project_name": self.project_name,
            "version": self.version,
            "environment": self.environment.value,
            "debug": self.debug,
            "snapshot": {
                "previous_dir": str(self.snapshot.previous_dir),
                "current_dir": str(self.snapshot.current_dir),
                "report_path": str(self.snapshot.report_path)
            },
            "notification": {
                "lock_path": str(self.notification.lock_path),
                "cooldown_seconds": self.notification.cooldown_seconds,
                "channels": [c.value for c in self.notification.channels]
            },
            "hashing": {"algorithms": self.hashing.algorithms}
        }

def load_settings(**overrides) -> Settings:
    """Build settings, converting validation failures to ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(str(e), cause=e) from e

# Global settings instance
settings = load_settings()

__all__ = [
    'DEFAULT_COOLDOWN_SECONDS',
    'SnapshotSettings',
    'HashingSettings',
    'NotificationSettings',
    'DownloadSettings',
    'ObservabilitySettings',
    'Settings',
    'load_settings',
    'settings'
]
