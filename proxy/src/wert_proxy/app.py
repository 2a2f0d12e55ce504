# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import ProviderConfig, ServerConfig, get_server_cfg
from .models import ErrorResponse, HealthResponse, NotFoundResponse, ServiceInfoResponse
from .ratelimit import SlidingWindowLimiter
from .routes import INTERNAL_ERROR, router
from .service import SessionService
from .transport import SessionTransport
from .validation import AMOUNT_REQUIRED

logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = ["GET /", "GET /health", "POST /api/create-session"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown paths and unsupported methods on known paths look the same to callers
    if exc.status_code in (404, 405):
        return JSONResponse(
            status_code=404,
            content=NotFoundResponse(availableEndpoints=AVAILABLE_ENDPOINTS).model_dump(),
        )
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    headers = dict(getattr(exc, "headers", None) or {})
    req_id = getattr(request.state, "req_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=detail).model_dump(exclude_none=True),
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # malformed JSON fails before any dependency runs, so the id may not exist yet
    req_id = getattr(request.state, "req_id", None) or uuid.uuid4().hex
    logger.info(f"[{req_id}] [VALIDATION] {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error=AMOUNT_REQUIRED).model_dump(exclude_none=True),
        headers={"X-Request-ID": req_id},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=ErrorResponse(error=INTERNAL_ERROR).model_dump(exclude_none=True))


def build_app(
    provider_cfg: Optional[ProviderConfig] = None,
    server_cfg: Optional[ServerConfig] = None,
    transport: Optional[SessionTransport] = None,
) -> FastAPI:
    """Assemble the service. Raises ConfigError when mandatory settings are absent."""
    provider_cfg = provider_cfg or ProviderConfig.from_env()
    server_cfg = server_cfg or ServerConfig.from_env()

    app = FastAPI(
        title="Wert Session Proxy",
        description="Validates purchase amounts and creates Wert on-ramp sessions",
        version=__version__,
    )
    app.state.session_service = SessionService(provider_cfg, transport)
    app.state.rate_limiter = SlidingWindowLimiter(
        server_cfg.rate_limit_max, server_cfg.rate_limit_window_s, maxsize=server_cfg.rate_limit_max_keys
    )

    # Wire runtime config via dependency
    app.dependency_overrides[get_server_cfg] = lambda: server_cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_cfg.cors_origins,
        allow_origin_regex=server_cfg.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    @app.get("/", response_model=ServiceInfoResponse)
    async def service_info(cfg: ServerConfig = Depends(get_server_cfg)) -> ServiceInfoResponse:
        return ServiceInfoResponse(
            message="Wert.io Bitcoin session service",
            environment=cfg.environment,
            timestamp=_now_iso(),
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(timestamp=_now_iso())

    app.include_router(router)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.info(
        f"Session proxy initialized: provider={provider_cfg.api_url} partner={provider_cfg.partner_id} "
        f"wallet={provider_cfg.wallet_address} api_key=configured "
        f"transport={app.state.session_service.transport.name} env={server_cfg.environment} "
        f"rate_limit={server_cfg.rate_limit_max}/{server_cfg.rate_limit_window_s:.0f}s"
    )
    return app
