"""Supabase-backed candidate directory and identity provider."""

from __future__ import annotations

from typing import Any

from supabase import Client, create_client

from coachrelay.config.settings import settings
from coachrelay.core.errors import DirectoryLoadError
from coachrelay.core.models import ChatRecord, EndpointCandidate
from coachrelay.storage.directory import CandidateDirectory, IdentityProvider
from coachrelay.util.logger import get_logger

_log = get_logger("storage.supabase")


def _rows(response: Any) -> list[dict[str, Any]]:
    data = getattr(response, "data", None)
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    return []


class SupabaseStore(CandidateDirectory, IdentityProvider):
    """Reads ``webhooks`` and ``chats`` with a service-role client.

    The client is blocking; callers run these methods off the event loop.
    """

    def __init__(
        self,
        *,
        url: str = "",
        service_role_key: str = "",
        client: Client | None = None,
        webhooks_table: str | None = None,
        chats_table: str | None = None,
    ) -> None:
        if client is None:
            if not url.strip() or not service_role_key.strip():
                raise RuntimeError("supabase url or service role key is empty")
            client = create_client(url, service_role_key)
        self.client = client
        self.webhooks_table = webhooks_table or settings.webhooks_table
        self.chats_table = chats_table or settings.chats_table

    def list_active_candidates(self) -> list[EndpointCandidate]:
        try:
            response = (
                self.client.table(self.webhooks_table)
                .select("id, name, url, priority")
                .eq("is_active", True)
                .order("priority", desc=False)
                .execute()
            )
        except Exception as exc:
            raise DirectoryLoadError(f"webhook query failed: {exc}") from exc

        candidates: list[EndpointCandidate] = []
        for row in _rows(response):
            try:
                candidates.append(EndpointCandidate.model_validate(row))
            except ValueError as exc:
                _log.warning("skip malformed webhook row id=%s error=%s", row.get("id"), exc)
        return candidates

    def get_chat(self, chat_id: str) -> ChatRecord | None:
        response = (
            self.client.table(self.chats_table)
            .select("id, user_id")
            .eq("id", chat_id)
            .limit(1)
            .execute()
        )
        rows = _rows(response)
        if not rows:
            return None
        return ChatRecord.model_validate(rows[0])

    def get_user_id(self, access_token: str) -> str | None:
        try:
            response = self.client.auth.get_user(access_token)
        except Exception as exc:
            # expired and forged tokens surface as auth api errors
            _log.warning("token exchange failed error_type=%s", type(exc).__name__)
            return None
        user = getattr(response, "user", None) if response is not None else None
        user_id = getattr(user, "id", None)
        if not user_id:
            return None
        return str(user_id).lower()
