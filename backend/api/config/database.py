"""
Supabase client for the DAOs.
One client per process, created on first use from SUPABASE_URL and
SUPABASE_SERVICE_ROLE_KEY (falling back to SUPABASE_KEY).
"""

import logging
from typing import Optional
from supabase import Client, create_client

from api.config.settings import get_settings

logger = logging.getLogger(__name__)


class SupabaseClientProvider:
    """Holds the process-wide Supabase client."""

    _client: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Return the shared client, creating it on first call.

        Raises:
            ValueError: If the Supabase URL or key is not configured
        """
        if cls._client is None:
            settings = get_settings()
            if not settings.supabase_url or not settings.supabase_key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) must be set "
                    "when PERSISTENCE_BACKEND=supabase"
                )
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
            logger.info("Supabase client created")

        return cls._client

    @classmethod
    def reset(cls) -> None:
        """Drop the cached client so the next call reconnects with current settings."""
        cls._client = None


def get_db() -> Client:
    """Supabase client shared by every DAO."""
    return SupabaseClientProvider.get_client()
