"""Relay runtime context."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import time
from uuid import uuid4

from coachrelay.util.logger import logger

RECEIVED = "RECEIVED"
AUTHENTICATING = "AUTHENTICATING"
VALIDATING = "VALIDATING"
AUTHORIZING = "AUTHORIZING"
LOADING_CANDIDATES = "LOADING_CANDIDATES"
ATTEMPTING = "ATTEMPTING"
SUCCEEDED = "SUCCEEDED"
EXHAUSTED = "EXHAUSTED"


@dataclass(slots=True)
class RelayContext:
    request_id: str = field(default_factory=lambda: str(uuid4()))
    state: str = RECEIVED
    started_at: float = field(default_factory=time)
    caller_id: str = ""
    used_fallback: bool = False
    attempted: list[str] = field(default_factory=list)
    last_error: Exception | None = None

    def transition(self, state: str, attempt_index: int | None = None) -> None:
        label = state if attempt_index is None else f"{state}({attempt_index})"
        logger.debug("relay state request_id=%s %s -> %s", self.request_id, self.state, label)
        self.state = label

    def elapsed_ms(self) -> int:
        return int((time() - self.started_at) * 1000)
