"""FastAPI app entry."""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import Response

from coachrelay.adapters.webhook.router import internal_error_response, router as relay_router
from coachrelay.adapters.webhook.upstream import UpstreamClient
from coachrelay.config.settings import settings
from coachrelay.core.relay import RelayService
from coachrelay.storage import create_store
from coachrelay.util.logger import logger


def cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": settings.cors_allow_headers,
        "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    }


def _with_cors(response: Response) -> Response:
    for key, value in cors_headers().items():
        response.headers[key] = value
    return response


async def boundary_middleware(request: Request, call_next):
    if request.method.upper() == "OPTIONS":
        logger.debug("preflight path=%s", request.url.path)
        return Response(status_code=204, headers=cors_headers())

    try:
        response = await call_next(request)
    except Exception:
        request_id = str(uuid4())
        logger.exception("gateway unhandled exception request_id=%s path=%s", request_id, request.url.path)
        return _with_cors(internal_error_response(request_id))
    return _with_cors(response)


def create_app(service: RelayService | None = None) -> FastAPI:
    """Build the app. Without ``service`` the store and HTTP client are created at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.relay_service is None:
            try:
                store = create_store()
            except Exception as exc:  # pragma: no cover
                logger.error("store init on startup failed: %s", exc)
                raise
            app.state.relay_service = RelayService(directory=store, identity=store, upstream=UpstreamClient())
            logger.info("relay service ready backend=%s", settings.storage_backend)
        yield
        if app.state.relay_service is not None:
            await app.state.relay_service.upstream.aclose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.relay_service = service
    app.include_router(relay_router)
    app.middleware("http")(boundary_middleware)

    @app.get("/health")
    def health() -> dict:
        logger.info("health check")
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("coachrelay.core.gateway:app", host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    run()
