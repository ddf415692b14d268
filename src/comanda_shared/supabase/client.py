"""
Supabase client factory.

The transport timeout is fixed at client construction time; individual
gateway calls cannot override it.
"""

from __future__ import annotations

import logging

from supabase import Client, ClientOptions, create_client

from comanda_shared.config import AppConfig

logger = logging.getLogger(__name__)

CLIENT_INFO_HEADER = "chefcomanda-backoffice"


def create_supabase_client(config: AppConfig) -> Client:
    """Build the platform client used by the gateway and storage helpers."""
    if not config.supabase_url or not config.supabase_key:
        raise RuntimeError("Supabase credentials missing; set SUPABASE_URL and a key")

    options = ClientOptions(
        postgrest_client_timeout=config.supabase_timeout_seconds,
        storage_client_timeout=config.supabase_timeout_seconds,
        headers={"X-Client-Info": CLIENT_INFO_HEADER},
        auto_refresh_token=False,
        persist_session=False,
    )
    logger.info(
        "Creating Supabase client",
        extra={"supabase_url": config.supabase_url, "timeout": config.supabase_timeout_seconds},
    )
    return create_client(config.supabase_url, config.supabase_key, options=options)


def check_connection(client: Client) -> bool:
    """Reachability check against a small table."""
    try:
        client.table("restaurantes").select("id").limit(1).execute()
        return True
    except Exception as exc:
        logger.error("Supabase connection check failed: %s", exc)
        return False


def get_connection_status(client: Client) -> str:
    return "connected" if check_connection(client) else "disconnected"
