"""
Aplicación principal FastAPI - API REST de subestaciones y redes MT.

Grupos de endpoints:

    /auth
        - POST /login: Obtener token JWT

    /healthz
        - GET: Health check del servicio

    /subestacoes
        - GET: Listar subestaciones (con redes)
        - GET /{id}: Obtener subestación
        - POST: Crear subestación (reconcilia redes por código)
        - PUT /{id}: Actualizar subestación (reconcilia redes por código)
        - DELETE /{id}: Eliminar subestación

    /redesmt
        - GET: Listar redes MT
        - GET /{id}: Obtener red MT
        - POST: Crear red MT
        - PUT /{id}: Reemplazar red MT
        - DELETE /{id}: Eliminar red MT

Autenticación:
    /subestacoes y /redesmt requieren Authorization: Bearer <jwt_token>.

Logging:
    - structlog (consola + JSONL)
    - Eventos: request.start, request.end, api.error, ...

Ejecución:
    uvicorn backend.app:app --reload --port 8000
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from time import perf_counter
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sinapsis.clients import close_pg_pool
from sinapsis.error_handling import ErrorCode
from sinapsis.logging_config import configure_logging
from sinapsis.settings import AppSettings, load_settings

from backend.auth import AuthGateMiddleware, TokenService
from backend.routers.auth import router as auth_router
from backend.routers.redes_mt import router as redes_mt_router
from backend.routers.subestacoes import router as subestacoes_router

api_logger = structlog.get_logger("sinapsis.api")


# =============================================================================
# REQUEST ID MIDDLEWARE (Observability)
# =============================================================================

class RequestIdMiddleware(BaseHTTPMiddleware):
    """Adds unique request_id to each request for tracing/debugging."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        request.state.request_id = request_id

        api_logger.info(
            "request.start",
            method=request.method,
            path=str(request.url.path),
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        api_logger.info(
            "request.end",
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
            duration_ms=round((perf_counter() - start) * 1000, 2),
        )
        return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Errores de validación del body/parámetros → 400 (no 422)."""
    api_logger.info("api.validation_error", path=str(request.url.path), errors=len(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "code": ErrorCode.VALIDATION_ERROR,
                "message": "Datos inválidos",
                "errors": jsonable_encoder(exc.errors()),
            }
        },
    )


# =============================================================================
# APP FACTORY
# =============================================================================

def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """
    Construye la aplicación FastAPI.

    Args:
        settings: Configuración a usar; si es None se carga desde el entorno.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        api_logger.info("app.startup", settings=repr(settings.masked()))
        yield
        close_pg_pool()

    app = FastAPI(title="Sinapsis Grid API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.token_service = TokenService.from_settings(settings.auth)

    # Middleware order: the last added runs first (RequestId → AuthGate → CORS → routes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials="*" not in settings.cors_allow_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(AuthGateMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(auth_router)         # /auth/login
    app.include_router(subestacoes_router)  # /subestacoes/*
    app.include_router(redes_mt_router)     # /redesmt/*

    @app.get("/healthz", tags=["health"])
    async def healthz() -> Dict[str, Any]:
        return {"status": "ok"}

    return app


def _build_default_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings.log_level)
    return create_app(settings)


app = _build_default_app()
