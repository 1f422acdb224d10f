from __future__ import annotations

import sys
import time
from uuid import uuid4

import orjson
from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from mutabaah_api.core.config import Settings
from mutabaah_api.db import SessionLocal
from mutabaah_api.progression import ProgressionError
from mutabaah_api.routers import (
    auth,
    catalog,
    checkins,
    leaderboard,
    ops,
    progress,
    quiz,
)

REQUEST_ID_HEADER = "X-Request-Id"


def _csv(value: str | None) -> list[str]:
    return [part.strip() for part in str(value or "").split(",") if part.strip()]


def _access_log(request: Request, *, status: int, started: float, level: str = "info") -> None:
    line = {
        "level": level,
        "request_id": getattr(request.state, "request_id", None),
        "method": request.method,
        "path": request.url.path,
        "status": int(status),
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
    }
    sys.stdout.write(orjson.dumps(line).decode("utf-8") + "\n")
    sys.stdout.flush()


def _tag(request: Request, resp: Response) -> Response:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        resp.headers[REQUEST_ID_HEADER] = str(request_id)
    return resp


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    if settings.trust_proxy_headers:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")
    app.add_middleware(
        TrustedHostMiddleware, allowed_hosts=_csv(settings.allowed_hosts) or ["*"]
    )
    origins = _csv(settings.cors_allowed_origins)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "PUT", "POST", "PATCH"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        started = time.perf_counter()
        request.state.request_id = (
            request.headers.get("x-request-id") or f"req_{uuid4().hex}"
        )
        try:
            response = await call_next(request)
        except Exception:
            if settings.log_json:
                _access_log(request, status=500, started=started, level="error")
            raise
        if settings.log_json:
            _access_log(request, status=response.status_code, started=started)
        return _tag(request, response)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def _http_error(request: Request, exc: HTTPException):
        return _tag(request, await http_exception_handler(request, exc))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return _tag(request, await request_validation_exception_handler(request, exc))

    @app.exception_handler(ProgressionError)
    async def _progression_error(request: Request, exc: ProgressionError):
        body = {"detail": exc.code, "message": str(exc)}
        return _tag(request, JSONResponse(status_code=int(exc.status_code), content=body))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        _ = exc
        body = {"detail": "Internal Server Error"}
        return _tag(request, JSONResponse(status_code=500, content=body))


def create_app(*, settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(
        title="Mutaba'ah API",
        version="0.1.0",
        openapi_url="/api/openapi.json",
        docs_url="/docs",
    )
    _install_middleware(app, settings)
    _install_error_handlers(app)

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {
            "status": "ok",
            "timezone": settings.timezone,
            "challenge_start": settings.challenge_start.isoformat(),
            "challenge_end": settings.challenge_end.isoformat(),
        }

    @app.get("/api/ready")
    def ready() -> dict[str, object]:
        try:
            with SessionLocal() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            return {"status": "fail", "db": {"ok": False, "error": str(exc)[:400]}}
        return {"status": "ok", "db": {"ok": True, "error": None}}

    for module in (auth, catalog, checkins, quiz, progress, leaderboard, ops):
        app.include_router(module.router)
    return app


app = create_app()
