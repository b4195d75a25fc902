"""HTTP surface: one POST endpoint, CORS pre-flight and a health check."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lumen_assistant.app import AssistantApp
from lumen_assistant.config import AppConfig
from lumen_assistant.errors import AssistantError, InternalError
from lumen_assistant.log import get_logger

logger = get_logger(__name__)


def cors_headers_for(origin: Optional[str], allowed_origins: list[str], allowed_headers: list[str]) -> dict[str, str]:
    """Build the CORS headers for one request.

    Access-Control-Allow-Origin carries a single origin, so with an explicit
    allow-list the request's Origin is echoed back only when it is listed.
    """
    headers = {"Access-Control-Allow-Headers": ", ".join(allowed_headers)}
    if "*" in allowed_origins:
        headers["Access-Control-Allow-Origin"] = "*"
    else:
        headers["Vary"] = "Origin"
        if origin and origin in allowed_origins:
            headers["Access-Control-Allow-Origin"] = origin
    return headers


def create_app(config: AppConfig, assistant: Optional[AssistantApp] = None) -> FastAPI:
    assistant = assistant or AssistantApp(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await assistant.start()
        try:
            yield
        finally:
            await assistant.stop()

    app = FastAPI(title="lumen-assistant", lifespan=lifespan)
    app.state.assistant = assistant

    @app.middleware("http")
    async def cors(request: Request, call_next: Any) -> Any:
        cors_headers = cors_headers_for(
            request.headers.get("origin"), config.server.cors_allow_origins, config.server.cors_allow_headers
        )
        if request.method == "OPTIONS":
            return JSONResponse({"ok": True}, headers=cors_headers)
        response = await call_next(request)
        response.headers.update(cors_headers)
        return response

    @app.exception_handler(AssistantError)
    async def assistant_error_handler(request: Request, exc: AssistantError) -> JSONResponse:
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        database_ok = await assistant.db.ping()
        return {"status": "ok" if database_ok else "degraded", "database": database_ok}

    @app.post(config.server.path)
    async def assistant_endpoint(request: Request) -> dict[str, Any]:
        body = await request.body()
        try:
            return await assistant.gateway.handle(request.headers.get("authorization"), body)
        except AssistantError:
            raise
        except Exception as e:
            error_id = str(uuid.uuid4())
            logger.exception("request_failed", error_id=error_id, error=type(e).__name__)
            raise InternalError(error_id) from e

    return app
