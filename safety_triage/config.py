"""
Configuration for the safety triage and crisis routing service.

This module provides configuration dataclasses for the external
capabilities, the audit sink, the notification relay, rate limiting
and the HTTP server.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Optional, List
import yaml


@dataclass
class ModerationConfig:
    """Configuration for the external moderation capability."""
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout: float = 5.0
    max_retries: int = 1
    retry_delay: float = 0.5
    max_input_chars: int = 500


@dataclass
class AssistantConfig:
    """Configuration for the external AI generation capability."""
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout: float = 20.0
    max_retries: int = 2
    retry_delay: float = 1.0
    temperature: float = 0.3
    max_tokens: int = 400


@dataclass
class AuditConfig:
    """Configuration for the audit sink."""
    log_dir: Optional[str] = None  # None = in-memory only
    write_timeout: float = 2.0
    max_memory_events: int = 10000  # in-memory mode only; oldest dropped first


@dataclass
class NotificationConfig:
    """Configuration for the operator notification relay."""
    enabled: bool = True
    webhook_url: Optional[str] = None  # None = log-only channel
    queue_size: int = 100
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    timeout: float = 5.0


@dataclass
class RateLimitConfig:
    """Per-client request limits."""
    triage_max_requests: int = 10
    triage_window_seconds: float = 300.0
    chat_max_requests: int = 20
    chat_window_seconds: float = 600.0


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    admin_token: Optional[str] = None


def _apply_section(target, values: Optional[dict]) -> None:
    """Copy known keys from a YAML section onto a config dataclass."""
    if not values:
        return
    known = {f.name for f in fields(target)}
    for key, value in values.items():
        if key in known:
            setattr(target, key, value)


@dataclass
class RouterConfig:
    """Complete service configuration."""
    moderation: ModerationConfig = field(default_factory=ModerationConfig)
    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "RouterConfig":
        """Load configuration from YAML file."""
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        config = cls()
        for section in ("moderation", "assistant", "audit",
                        "notification", "rate_limit", "server"):
            _apply_section(getattr(config, section), data.get(section))

        return config

    @classmethod
    def from_env(cls) -> "RouterConfig":
        """Load configuration from environment variables."""
        config = cls()

        # Shared credentials for both capabilities
        api_key = os.getenv("OPENAI_API_KEY", "")
        base_url = os.getenv("OPENAI_BASE_URL")

        config.moderation.api_key = os.getenv("MODERATION_API_KEY", api_key)
        config.assistant.api_key = os.getenv("ASSISTANT_API_KEY", api_key)
        if base_url:
            config.moderation.base_url = base_url
            config.assistant.base_url = base_url

        if os.getenv("MODERATION_MODEL"):
            config.moderation.model = os.getenv("MODERATION_MODEL")
        if os.getenv("MODERATION_TIMEOUT"):
            config.moderation.timeout = float(os.getenv("MODERATION_TIMEOUT"))

        if os.getenv("ASSISTANT_MODEL"):
            config.assistant.model = os.getenv("ASSISTANT_MODEL")
        if os.getenv("ASSISTANT_TIMEOUT"):
            config.assistant.timeout = float(os.getenv("ASSISTANT_TIMEOUT"))

        if os.getenv("AUDIT_LOG_DIR"):
            config.audit.log_dir = os.getenv("AUDIT_LOG_DIR")
        if os.getenv("AUDIT_WRITE_TIMEOUT"):
            config.audit.write_timeout = float(os.getenv("AUDIT_WRITE_TIMEOUT"))

        if os.getenv("NOTIFY_WEBHOOK_URL"):
            config.notification.webhook_url = os.getenv("NOTIFY_WEBHOOK_URL")
        if os.getenv("NOTIFY_ENABLED"):
            config.notification.enabled = os.getenv("NOTIFY_ENABLED").lower() in ("1", "true", "yes")

        if os.getenv("SERVER_HOST"):
            config.server.host = os.getenv("SERVER_HOST")
        if os.getenv("SERVER_PORT"):
            config.server.port = int(os.getenv("SERVER_PORT"))
        if os.getenv("ADMIN_TOKEN"):
            config.server.admin_token = os.getenv("ADMIN_TOKEN")

        return config
