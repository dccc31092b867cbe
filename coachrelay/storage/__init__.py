"""Storage backend selection helpers."""

from __future__ import annotations

from coachrelay.config.settings import settings
from coachrelay.storage.directory import InMemoryStore
from coachrelay.storage.supabase_store import SupabaseStore


def create_store():
    backend = settings.storage_backend.strip().lower()
    if backend == "memory":
        return InMemoryStore()
    return SupabaseStore(
        url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
    )
