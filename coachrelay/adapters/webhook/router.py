"""Chat relay route."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from coachrelay.core.context import RelayContext
from coachrelay.core.errors import ExhaustionError, RelayError
from coachrelay.core.relay import RelayService
from coachrelay.util.logger import logger


router = APIRouter()


def relay_error_response(exc: RelayError, request_id: str) -> JSONResponse:
    content: dict[str, str] = {"error": exc.public_message}
    if exc.status_code >= 500:
        content["request_id"] = request_id
    return JSONResponse(status_code=exc.status_code, content=content)


def internal_error_response(request_id: str) -> JSONResponse:
    return relay_error_response(RelayError(), request_id)


@router.post("/chat-proxy")
async def chat_proxy(request: Request) -> JSONResponse:
    service: RelayService = request.app.state.relay_service
    ctx = RelayContext()
    body = await request.body()
    try:
        result = await service.relay(
            authorization=request.headers.get("authorization"),
            body=body,
            ctx=ctx,
        )
    except ExhaustionError as exc:
        logger.error(
            "relay all webhooks failed request_id=%s attempted=%s last_error=%s",
            ctx.request_id,
            ctx.attempted,
            exc.last_error,
        )
        return relay_error_response(exc, ctx.request_id)
    except RelayError as exc:
        logger.info("relay rejected request_id=%s status=%s state=%s", ctx.request_id, exc.status_code, ctx.state)
        return relay_error_response(exc, ctx.request_id)
    except Exception:
        logger.exception("relay fatal error request_id=%s state=%s", ctx.request_id, ctx.state)
        return internal_error_response(ctx.request_id)
    return JSONResponse(status_code=200, content=result)
