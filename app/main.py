"""FastAPI entrypoint for the todos service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import load_config
from app.errors import ErrorResponse, McpError, error_response
from app.mcp import register_mcp_handlers

AUTH_HEADER = "Authorization"
AUTH_EXEMPT_PATHS = {"/health"}

LOGGER = logging.getLogger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = load_config()
        logging.basicConfig(
            level=config.log_level,
            format="[%(levelname)s] %(name)s: %(message)s",
        )
        app.state.config = config
        app.state.library_path = config.library_path
        LOGGER.info("Serving tasks from %s", config.library_path)
        yield

    app = FastAPI(title="Todos API", lifespan=lifespan)

    @app.middleware("http")
    async def enforce_service_token(request: Request, call_next):
        if request.url.path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        service_token = getattr(config, "service_token", None)
        if service_token and request.headers.get(AUTH_HEADER) != service_token:
            error = ErrorResponse(
                code="AUTH_FORBIDDEN",
                message="Invalid service token.",
                details={"header": AUTH_HEADER},
            )
            return JSONResponse(
                status_code=error.status_code, content=error_response(error)
            )

        return await call_next(request)

    @app.exception_handler(McpError)
    def handle_mcp_error(request: Request, exc: McpError) -> JSONResponse:
        if exc.error.status_code >= 500:
            LOGGER.error("%s: %s %s", exc.error.code, exc.error.message, exc.error.details)
        return JSONResponse(
            status_code=exc.error.status_code, content=error_response(exc.error)
        )

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    register_mcp_handlers(app)
    return app


app = create_app()
