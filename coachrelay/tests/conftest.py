from __future__ import annotations

import pytest

from coachrelay.core.models import ChatRecord, EndpointCandidate
from coachrelay.core.relay import RelayService
from coachrelay.storage.directory import InMemoryStore

USER_ID = "6f1c2b1e-3d4a-4c5b-9e8f-0a1b2c3d4e5f"
OTHER_USER_ID = "0b7e9c1d-2f3a-4b5c-8d9e-1f2a3b4c5d6e"
CHAT_ID = "a3d5c7e9-1b2c-4d3e-8f4a-5b6c7d8e9f0a"
FOREIGN_CHAT_ID = "c1e3a5b7-9d8f-4e6c-a2b4-d6f8e0a2c4e6"
TOKEN = "header.payload.signature"


class FakeUpstream:
    """Scripted stand-in for UpstreamClient keyed by candidate URL."""

    def __init__(self, responses: dict[str, object] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, dict]] = []
        self.closed = False

    async def post_json(self, url: str, payload: dict) -> tuple[int, str]:
        self.calls.append((url, payload))
        outcome = self.responses.get(url, (500, ""))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True

    @property
    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


class BrokenDirectory(InMemoryStore):
    def list_active_candidates(self) -> list[EndpointCandidate]:
        raise RuntimeError("relation \"webhooks\" does not exist")


def candidate(cid: str, priority: int, *, active: bool = True) -> EndpointCandidate:
    return EndpointCandidate(
        id=cid,
        name=f"Webhook {cid}",
        url=f"https://hooks.example.com/{cid}",
        priority=priority,
        is_active=active,
    )


def payload(**overrides) -> dict:
    body = {"message": "How many sets for hypertrophy?", "user_id": USER_ID}
    body.update(overrides)
    return body


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(
        candidates=[candidate("primary", 1), candidate("secondary", 2)],
        chats=[
            ChatRecord(id=CHAT_ID, user_id=USER_ID),
            ChatRecord(id=FOREIGN_CHAT_ID, user_id=OTHER_USER_ID),
        ],
        tokens={TOKEN: USER_ID},
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def service(store: InMemoryStore, upstream: FakeUpstream) -> RelayService:
    return RelayService(directory=store, identity=store, upstream=upstream)
