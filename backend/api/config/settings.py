"""
Application settings.
Read once from the environment (and .env) when the app starts.
"""

import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Environment-backed configuration values."""

    def __init__(self):
        self.persistence_backend: str = os.getenv("PERSISTENCE_BACKEND", "memory").lower()
        self.supabase_url: Optional[str] = os.getenv("SUPABASE_URL")
        self.supabase_key: Optional[str] = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_KEY")

        self.jwt_secret: Optional[str] = os.getenv("JWT_SECRET")
        self.jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")

        self.redis_url: Optional[str] = os.getenv("REDIS_URL")
        self.email_queue_enabled: bool = _as_bool(os.getenv("EMAIL_QUEUE_ENABLED"))

        self.payment_webhook_secret: Optional[str] = os.getenv("PAYMENT_WEBHOOK_SECRET")

        self.allowed_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")
            if origin.strip()
        ]

        self.marketplace_rules_path: Optional[str] = os.getenv("MARKETPLACE_RULES_PATH")
        self.notification_templates_path: Optional[str] = os.getenv("NOTIFICATION_TEMPLATES_PATH")

        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_format: str = os.getenv("LOG_FORMAT", "console").lower()


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the settings instance, creating it on first use.

    Returns:
        Settings: Current configuration
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
