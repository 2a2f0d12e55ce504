# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from .errors import AmountError
from .models import (
    CreateSessionResponse,
    ErrorResponse,
    PurchaseRequest,
    SessionFailure,
)
from .ratelimit import RateLimitDecision, rate_limit_session_creation
from .service import SessionService
from .validation import validate_amount

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"

router = APIRouter(prefix="/api", tags=["sessions"])


def get_session_service(request: Request) -> SessionService:
    return request.app.state.session_service


def get_request_id(request: Request) -> str:
    # resolved before the rate limiter; error handlers read request.state.req_id
    request.state.req_id = uuid.uuid4().hex
    return request.state.req_id


def _error_response(
    status_code: int,
    error: str,
    headers: Dict[str, str],
    *,
    details: Optional[Any] = None,
    upstream_status: Optional[int] = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, details=details, upstreamStatus=upstream_status)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True), headers=headers)


@router.post(
    "/create-session",
    response_model=CreateSessionResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_session(
    request: Request,
    body: Optional[PurchaseRequest] = Body(None),
    req_id: str = Depends(get_request_id),
    limit: RateLimitDecision = Depends(rate_limit_session_creation),
    service: SessionService = Depends(get_session_service),
):
    headers = {"X-Request-ID": req_id, **limit.headers()}
    purchase = body or PurchaseRequest()
    logger.info(
        f"[{req_id}] [SESSION] create-session origin={request.headers.get('origin')} "
        f"amount={purchase.currency_amount!r} phone={'yes' if purchase.phone else 'no'} "
        f"email={'yes' if purchase.email else 'no'}"
    )
    try:
        amount = validate_amount(purchase.currency_amount)
        result = await service.create_session(amount, purchase.phone, req_id=req_id)
    except AmountError as e:
        logger.info(f"[{req_id}] [SESSION] rejected: {e.reason}")
        return _error_response(400, e.reason, headers)
    except Exception:
        logger.exception(f"[{req_id}] [SESSION] unexpected failure")
        return _error_response(500, INTERNAL_ERROR, headers)

    if isinstance(result, SessionFailure):
        logger.info(f"[{req_id}] [SESSION] failed ({result.kind.value}, {result.status_code}): {result.error}")
        return _error_response(
            result.status_code,
            result.error,
            headers,
            details=result.raw_body,
            upstream_status=result.upstream_status,
        )

    logger.info(f"[{req_id}] [SESSION] created session for amount={result.amount}")
    payload = CreateSessionResponse(
        sessionId=result.session_id,
        partnerId=result.partner_id,
        walletAddress=result.wallet_address,
        amount=result.amount,
        timestamp=result.timestamp,
    )
    return JSONResponse(status_code=200, content=payload.model_dump(), headers=headers)
