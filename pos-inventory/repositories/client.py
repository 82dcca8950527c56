"""
Store construction.

This module contains *only* connection setup: it creates the Supabase async
client from Settings and builds the InventoryStore selected by STORE_BACKEND.
There is no module-level client; callers own the store they create and pass it
to the services that need it.
"""

from __future__ import annotations

import logging

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import AsyncClient, acreate_client  # type: ignore[import-not-found]

from config.settings import Settings
from repositories.inventory_store import InventoryStore
from repositories.memory_store import InMemoryInventoryStore
from repositories.supabase_store import SupabaseInventoryStore

logger = logging.getLogger(__name__)


async def create_supabase_client(settings: Settings) -> AsyncClient:
    """Create the official Supabase async client from Settings."""

    if not settings.supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )
    if not settings.supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )
    return await acreate_client(settings.supabase_url, settings.supabase_key)


async def create_store(settings: Settings) -> InventoryStore:
    """Build the InventoryStore for the configured backend."""

    if settings.store_backend == "supabase":
        client = await create_supabase_client(settings)
        logger.info("Using Supabase inventory store", extra={"supabase_url": settings.supabase_url})
        return SupabaseInventoryStore(client)

    logger.info("Using in-memory inventory store")
    return InMemoryInventoryStore()


__all__ = ["create_store", "create_supabase_client"]
