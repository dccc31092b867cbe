"""Collaborator abstractions for the relay: candidate directory and identity."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from coachrelay.core.models import ChatRecord, EndpointCandidate


class CandidateDirectory(ABC):
    @abstractmethod
    def list_active_candidates(self) -> list[EndpointCandidate]:
        """Active candidates ordered by ascending priority. Raise on query failure."""
        pass

    @abstractmethod
    def get_chat(self, chat_id: str) -> ChatRecord | None:
        pass


class IdentityProvider(ABC):
    @abstractmethod
    def get_user_id(self, access_token: str) -> str | None:
        """Resolve a bearer token to a user id, or None when the token is rejected."""
        pass


class InMemoryStore(CandidateDirectory, IdentityProvider):
    """Process-local directory, chats and token map for local runs and tests."""

    def __init__(
        self,
        *,
        candidates: list[EndpointCandidate] | None = None,
        chats: list[ChatRecord] | None = None,
        tokens: dict[str, str] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._candidates = list(candidates or [])
        self._chats = {chat.id: chat for chat in chats or []}
        self._tokens = dict(tokens or {})

    def list_active_candidates(self) -> list[EndpointCandidate]:
        with self._lock:
            active = [c for c in self._candidates if c.is_active]
        return sorted(active, key=lambda c: c.priority)

    def get_chat(self, chat_id: str) -> ChatRecord | None:
        with self._lock:
            return self._chats.get(chat_id)

    def get_user_id(self, access_token: str) -> str | None:
        with self._lock:
            return self._tokens.get(access_token)
