"""
Database client configuration.
Uses Supabase for PostgreSQL + Auth + Storage.

The client is created once by the application lifespan (see ``gateway.main``)
and must answer a lightweight query before the server accepts traffic.
"""

import logging

from supabase import create_client, Client

from gateway.config import Settings
from gateway.errors import DatabaseConnectError

logger = logging.getLogger(__name__)

# Table queried to prove the connection works; it is the upload ledger, so a
# missing migration is caught at startup too.
HEALTHCHECK_TABLE = "uploads"


def create_supabase_client(settings: Settings, use_service_key: bool = True) -> Client:
    """
    Build a Supabase client from settings without touching the network.

    With ``use_service_key`` the service-role key is preferred (bypasses RLS).
    Otherwise the anon key is used, which is what user-level auth calls need.
    """
    if not settings.supabase_url or not settings.supabase_key:
        raise DatabaseConnectError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

    key = settings.database_key if use_service_key else settings.supabase_key
    return create_client(settings.supabase_url, key)


def connect_db(settings: Settings) -> Client:
    """
    Create the shared Supabase client and verify it can reach the database.

    Raises:
        DatabaseConnectError: if credentials are missing or the query fails.
    """
    try:
        client = create_supabase_client(settings)
    except DatabaseConnectError:
        raise
    except Exception as e:
        raise DatabaseConnectError(f"Failed to create database client: {str(e)}") from e

    try:
        client.table(HEALTHCHECK_TABLE).select("id").limit(1).execute()
    except Exception as e:
        raise DatabaseConnectError(f"Database connection failed: {str(e)}") from e

    logger.info(f"Connected to database at {settings.supabase_url}")
    return client


def close_db(client: Client) -> None:
    """Release the HTTP connections held by the database client."""
    try:
        client.postgrest.session.close()
    except Exception as e:
        logger.warning(f"Failed to close database client cleanly: {e}")
    else:
        logger.info("Database client closed")
