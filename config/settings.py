"""
RFP Intake - Configuration Management

Central configuration using Pydantic settings. Mailbox, reasoning-provider and
SMTP credentials are all optional: components built from a Settings value
degrade the matching feature instead of failing at startup.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class AnalysisQueueBackend(str, Enum):
    """Where post-ingestion analysis work items are handed off."""
    INLINE = "inline"
    ARQ = "arq"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # LLM Provider Configuration
    llm_provider: LLMProvider = Field(
        default=LLMProvider.OPENAI,
        description="LLM provider to use"
    )

    # Provider API Keys
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    google_api_key: Optional[str] = Field(default=None, description="Google API key")

    # Model Configuration
    llm_model: Optional[str] = Field(
        default=None,
        description="Model to use (defaults based on provider)"
    )
    llm_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )

    # Mailbox (IMAP) Configuration
    imap_host: str = Field(default="imap.gmail.com", description="IMAP server host")
    imap_port: int = Field(default=993, description="IMAP server port")
    imap_user: Optional[str] = Field(default=None, description="IMAP login")
    imap_password: Optional[str] = Field(default=None, description="IMAP password")
    imap_use_ssl: bool = Field(default=True, description="Connect with IMAP over TLS")
    imap_mailbox: str = Field(default="INBOX", description="Mailbox to synchronize")
    imap_timeout: int = Field(default=60, description="Socket timeout in seconds")
    sync_window_days: int = Field(
        default=5,
        ge=1,
        description="Trailing window of days searched on each sync run"
    )

    # Outbound notification (SMTP) Configuration
    smtp_host: Optional[str] = Field(default=None, description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port")
    smtp_user: Optional[str] = Field(default=None, description="SMTP login")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_from: Optional[str] = Field(default=None, description="Sender address")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS")
    vendor_emails: str = Field(
        default="",
        description="Vendor directory (comma-separated); invited when an RFP names no vendors"
    )

    # Storage Configuration
    data_dir: Path = Field(
        default=Path("./data"),
        description="Data directory for storage"
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_env: str = Field(default="development", description="API environment")
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="CORS origins (comma-separated)"
    )
    rate_limit_enabled: bool = Field(default=True, description="Enforce per-client rate limits")

    # Database Configuration
    database_url: str = Field(
        default="postgresql+asyncpg://localhost/rfp_intake",
        description="Database connection URL"
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL queries for debugging"
    )

    # Redis Configuration (Job Queue)
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL"
    )

    # Background analysis
    analysis_queue_backend: AnalysisQueueBackend = Field(
        default=AnalysisQueueBackend.INLINE,
        description="inline: asyncio consumers in the API process; arq: Redis worker"
    )
    analysis_workers: int = Field(
        default=2,
        ge=1,
        description="Concurrent in-process analysis consumers"
    )
    sync_cron_enabled: bool = Field(
        default=False,
        description="Run a scheduled inbox sync from the ARQ worker"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def vendor_directory(self) -> list[str]:
        """Known vendor addresses, normalized."""
        return [
            email.strip().lower()
            for email in self.vendor_emails.split(",")
            if email.strip()
        ]

    @property
    def active_api_key(self) -> Optional[str]:
        """Get the API key for the active provider."""
        key_map = {
            LLMProvider.OPENAI: self.openai_api_key,
            LLMProvider.ANTHROPIC: self.anthropic_api_key,
            LLMProvider.GEMINI: self.google_api_key,
        }
        return key_map.get(self.llm_provider)

    @property
    def default_model(self) -> str:
        """Get the default model for the active provider."""
        if self.llm_model:
            return self.llm_model

        defaults = {
            LLMProvider.OPENAI: "gpt-4o-mini",
            LLMProvider.ANTHROPIC: "claude-3-5-sonnet-20240620",
            LLMProvider.GEMINI: "gemini-1.5-pro",
        }
        return defaults.get(self.llm_provider, "gpt-4o-mini")

    @property
    def analysis_configured(self) -> bool:
        """True when a reasoning provider key is available."""
        return bool(self.active_api_key)

    @property
    def mailbox_configured(self) -> bool:
        return bool(self.imap_user and self.imap_password)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_from)

    # Data directories
    @property
    def attachments_dir(self) -> Path:
        """Directory for attachments pulled from vendor emails."""
        path = self.data_dir / "attachments"
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def logs_dir(self) -> Path:
        path = self.data_dir / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path


# Global settings instance
settings = Settings()
