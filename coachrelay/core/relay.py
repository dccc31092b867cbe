"""Webhook failover relay.

One call to ``RelayService.relay`` authenticates the caller, validates the
payload, checks conversation ownership, loads the active webhook candidates
and tries them strictly in priority order. The first candidate that answers
2xx with a usable body wins; every failure is logged and the next candidate
is tried immediately. When the directory cannot be read or has no active
rows a single fallback candidate is used instead.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

from pydantic import ValidationError

from coachrelay.adapters.webhook.upstream import UpstreamClient
from coachrelay.config.settings import settings
from coachrelay.core import context as states
from coachrelay.core.context import RelayContext
from coachrelay.core.errors import (
    AuthenticationError,
    AuthorizationError,
    CandidateDeliveryError,
    ExhaustionError,
    NotFoundError,
    PayloadValidationError,
)
from coachrelay.core.models import UUID_PATTERN, EndpointCandidate, RelayPayload, fallback_candidate
from coachrelay.core.normalize import EmptyUpstreamBody, normalize_upstream_body
from coachrelay.observability.logging import log_event
from coachrelay.storage.directory import CandidateDirectory, IdentityProvider
from coachrelay.util.logger import logger

UUID_RE = re.compile(UUID_PATTERN)


def _bearer_token(authorization: str | None) -> str:
    parts = (authorization or "").strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("missing_or_malformed_authorization_header")
    token = parts[1].strip()
    if not token:
        raise AuthenticationError("empty_bearer_token")
    return token


def _validation_issues(exc: ValidationError) -> list[dict[str, Any]]:
    # input values are left out so message text never lands in the logs
    return [{"loc": list(err.get("loc", ())), "type": err.get("type"), "msg": err.get("msg")} for err in exc.errors()]


class RelayService:
    def __init__(
        self,
        *,
        directory: CandidateDirectory,
        identity: IdentityProvider,
        upstream: UpstreamClient,
        default_system_prompt: str | None = None,
    ) -> None:
        self.directory = directory
        self.identity = identity
        self.upstream = upstream
        self.default_system_prompt = default_system_prompt or settings.default_system_prompt

    async def relay(self, *, authorization: str | None, body: bytes, ctx: RelayContext) -> Any:
        caller_id = await self.authenticate(authorization, ctx)
        payload = self.parse_payload(body, ctx)
        await self.authorize(payload, caller_id, ctx)
        candidates = await self.load_candidates(ctx)
        logger.info(
            "relay processing request_id=%s user=%s candidates=%d",
            ctx.request_id,
            payload.user_id,
            len(candidates),
        )
        return await self.deliver(candidates, payload, ctx)

    async def authenticate(self, authorization: str | None, ctx: RelayContext) -> str:
        ctx.transition(states.AUTHENTICATING)
        try:
            token = _bearer_token(authorization)
        except AuthenticationError as exc:
            logger.warning("relay auth rejected request_id=%s reason=%s", ctx.request_id, exc)
            raise
        user_id = await asyncio.to_thread(self.identity.get_user_id, token)
        if not user_id:
            logger.warning("relay auth rejected request_id=%s reason=token_not_accepted", ctx.request_id)
            raise AuthenticationError("token_not_accepted")
        ctx.caller_id = str(user_id).lower()
        return ctx.caller_id

    def parse_payload(self, body: bytes, ctx: RelayContext) -> RelayPayload:
        ctx.transition(states.VALIDATING)
        if 0 < settings.max_request_body_bytes < len(body):
            logger.warning(
                "relay payload rejected request_id=%s reason=body_too_large size=%d max=%d",
                ctx.request_id,
                len(body),
                settings.max_request_body_bytes,
            )
            raise PayloadValidationError("body_too_large")
        try:
            data = json.loads(body.decode("utf-8") if body else "")
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("relay payload rejected request_id=%s reason=invalid_json error=%s", ctx.request_id, exc)
            raise PayloadValidationError("invalid_json") from exc
        if not isinstance(data, dict):
            logger.warning("relay payload rejected request_id=%s reason=not_an_object", ctx.request_id)
            raise PayloadValidationError("not_an_object")
        try:
            return RelayPayload.model_validate(data)
        except ValidationError as exc:
            issues = _validation_issues(exc)
            logger.warning("relay payload rejected request_id=%s issues=%s", ctx.request_id, issues)
            claimed = data.get("user_id")
            if isinstance(claimed, str) and UUID_RE.match(claimed.strip()) and claimed.strip().lower() != ctx.caller_id:
                logger.warning("relay user mismatch on invalid payload request_id=%s", ctx.request_id)
                raise AuthorizationError("user_mismatch") from exc
            raise PayloadValidationError("schema_violation") from exc

    async def authorize(self, payload: RelayPayload, caller_id: str, ctx: RelayContext) -> None:
        ctx.transition(states.AUTHORIZING)
        if caller_id != payload.user_id:
            logger.warning(
                "relay user mismatch request_id=%s token_user=%s payload_user=%s",
                ctx.request_id,
                caller_id,
                payload.user_id,
            )
            raise AuthorizationError("user_mismatch")
        if payload.chat_id is None:
            return

        try:
            chat = await asyncio.to_thread(self.directory.get_chat, payload.chat_id)
        except Exception as exc:
            logger.warning(
                "relay chat lookup failed request_id=%s chat_id=%s error=%s",
                ctx.request_id,
                payload.chat_id,
                exc,
            )
            raise NotFoundError("chat_lookup_failed") from exc
        if chat is None:
            logger.warning("relay chat not found request_id=%s chat_id=%s", ctx.request_id, payload.chat_id)
            raise NotFoundError("chat_not_found")
        if chat.user_id != payload.user_id:
            logger.warning(
                "relay chat ownership mismatch request_id=%s chat_id=%s owner=%s",
                ctx.request_id,
                payload.chat_id,
                chat.user_id,
            )
            raise AuthorizationError("chat_ownership_mismatch")

    async def load_candidates(self, ctx: RelayContext) -> list[EndpointCandidate]:
        ctx.transition(states.LOADING_CANDIDATES)
        reason = ""
        try:
            loaded = await asyncio.wait_for(
                asyncio.to_thread(self.directory.list_active_candidates),
                timeout=settings.directory_timeout_seconds,
            )
        except asyncio.TimeoutError:
            reason = "directory_timeout"
            logger.error("relay directory query timed out request_id=%s", ctx.request_id)
        except Exception as exc:
            reason = "directory_error"
            logger.error("relay directory query failed request_id=%s error=%s", ctx.request_id, exc)
        else:
            active = [c for c in loaded if c.is_active]
            if active:
                # stable: equal priorities keep directory order
                return sorted(active, key=lambda c: c.priority)
            reason = "directory_empty"
            logger.warning("relay no active webhooks request_id=%s; using fallback", ctx.request_id)

        ctx.used_fallback = True
        log_event("directory_fallback", request_id=ctx.request_id, reason=reason)
        return [fallback_candidate()]

    async def attempt(self, candidate: EndpointCandidate, upstream_body: dict[str, Any]) -> Any:
        try:
            status, text = await self.upstream.post_json(candidate.url, upstream_body)
        except (RuntimeError, ValueError) as exc:
            raise CandidateDeliveryError(candidate.id, str(exc)) from exc
        if not 200 <= status < 300:
            raise CandidateDeliveryError(candidate.id, f"HTTP {status}")
        try:
            return normalize_upstream_body(text)
        except EmptyUpstreamBody as exc:
            raise CandidateDeliveryError(candidate.id, str(exc)) from exc

    async def deliver(self, candidates: list[EndpointCandidate], payload: RelayPayload, ctx: RelayContext) -> Any:
        upstream_body = payload.upstream_body(self.default_system_prompt)
        for index, candidate in enumerate(candidates):
            ctx.transition(states.ATTEMPTING, index)
            ctx.attempted.append(candidate.id)
            logger.info(
                "relay invoking webhook request_id=%s webhook=%s priority=%s",
                ctx.request_id,
                candidate.id,
                candidate.priority,
            )
            try:
                result = await self.attempt(candidate, upstream_body)
            except CandidateDeliveryError as exc:
                ctx.last_error = exc
                logger.error("relay webhook failed request_id=%s webhook=%s reason=%s", ctx.request_id, candidate.id, exc.reason)
                continue
            except Exception as exc:
                ctx.last_error = CandidateDeliveryError(candidate.id, f"{type(exc).__name__}: {exc}")
                logger.exception("relay webhook crashed request_id=%s webhook=%s", ctx.request_id, candidate.id)
                continue

            ctx.transition(states.SUCCEEDED)
            log_event(
                "relay_succeeded",
                request_id=ctx.request_id,
                webhook=candidate.id,
                attempts=len(ctx.attempted),
                fallback=ctx.used_fallback,
                elapsed_ms=ctx.elapsed_ms(),
            )
            return result

        ctx.transition(states.EXHAUSTED)
        log_event(
            "relay_exhausted",
            request_id=ctx.request_id,
            attempts=len(ctx.attempted),
            last_error=str(ctx.last_error) if ctx.last_error else "",
            elapsed_ms=ctx.elapsed_ms(),
        )
        raise ExhaustionError(ctx.request_id, ctx.last_error)
