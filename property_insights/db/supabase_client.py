"""Helper to create an async Supabase client when credentials are provided."""

from __future__ import annotations

from typing import Optional

from ..config import StoreSettings
from ..utils.logging import get_logger

LOGGER = get_logger("db.supabase")


async def create_supabase_client(settings: StoreSettings):
    url = settings.supabase_url
    key = settings.supabase_key
    if not url or not key:
        LOGGER.info("Supabase credentials not configured; skipping client creation")
        return None
    from supabase import acreate_client

    return await acreate_client(url, key)
