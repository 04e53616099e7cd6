"""Configuration module: settings, logging and the Supabase client."""

from api.config.database import get_db, SupabaseClientProvider
from api.config.logging import configure_logging
from api.config.settings import get_settings, reset_settings, Settings

__all__ = ["get_db", "SupabaseClientProvider", "configure_logging", "get_settings", "reset_settings", "Settings"]
