"""Supabase client singleton for database operations."""

import logging
from functools import lru_cache
from typing import Any

from supabase import Client, create_client

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client | None:
    """Get cached Supabase client singleton for database operations.

    Uses the secret key for backend operations, which bypasses RLS
    at the PostgREST level. Authorization is checked by the API layer
    before any back-office write reaches this client.

    Returns:
        Client | None: Supabase client instance, or None when the remote
        store is not configured. Callers treat None as an unavailable remote.
    """
    settings = get_settings()
    if not settings.is_remote_configured:
        logger.warning("Supabase is not configured. Records will be kept in local storage only.")
        return None
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Performs a simple query to verify database connectivity.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client = get_supabase_client()
        if client is None:
            return {"healthy": False, "error": "Supabase is not configured"}
        client.table("Products").select("id").limit(1).execute()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
