"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from corpsebeats.core.config.models import AppConfig
from corpsebeats.core.errors import CorpseBeatsError
from corpsebeats.core.gateway import InferenceGateway
from corpsebeats.core.server.routes import router

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def validation_message(exc: RequestValidationError) -> str:
    """Collapse pydantic's error list into one caller-facing sentence."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Request body must be valid JSON"
    if first.get("type") == "missing" and tuple(first.get("loc", ())) == ("body",):
        return "Request body is required"
    message = str(first.get("msg", "Invalid request"))
    if message.startswith(_VALUE_ERROR_PREFIX):
        message = message[len(_VALUE_ERROR_PREFIX) :]
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    if first.get("type") != "value_error" and field:
        return f"{field}: {message}"
    return message


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = validation_message(exc)
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


async def _handle_corpsebeats_error(request: Request, exc: CorpseBeatsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.user_message})


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "An unexpected error occurred"})


def create_app(config: AppConfig | None = None, gateway: InferenceGateway | None = None) -> FastAPI:
    """Build the HTTP app.

    Args:
        config: Application config (defaults when omitted)
        gateway: Pre-built gateway; when omitted one is created from config on
            first use, and closed on shutdown

    Example:
        >>> app = create_app(load_app_config("corpsebeats.yaml"))
        >>> uvicorn.run(app, host="127.0.0.1", port=8000)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if app.state.owns_gateway and app.state.gateway is not None:
            await app.state.gateway.aclose()

    app = FastAPI(title="Corpse Beats", version="0.1.0", lifespan=lifespan)
    app.state.config = config or AppConfig()
    app.state.gateway = gateway
    app.state.owns_gateway = False

    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(CorpseBeatsError, _handle_corpsebeats_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)

    app.include_router(router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
