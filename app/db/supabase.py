"""Supabase access.

``get_supabase()`` returns the lazily created, process-wide client used for
the ``posts``, ``clicks`` and ``profiles`` tables and for Auth.
``storage_bucket()`` narrows it to one Storage bucket for asset uploads.
"""

from __future__ import annotations

from typing import Any

from supabase import Client, create_client

from app.core.config import settings

_client: Client | None = None


def get_supabase() -> Client:
    """Return the singleton Supabase client, creating it on first call."""
    global _client
    if _client is None:
        _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    return _client


def storage_bucket(name: str | None = None) -> Any:
    """Storage file API for *name* (defaults to ``SUPABASE_STORAGE_BUCKET``)."""
    return get_supabase().storage.from_(name or settings.SUPABASE_STORAGE_BUCKET)
