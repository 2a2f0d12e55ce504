# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Collapse every provider outcome into a SessionResult."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .config import ProviderConfig
from .errors import (
    FailureKind,
    UpstreamConnectError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from .models import SessionFailure, SessionResult, SessionSuccess
from .transport import UpstreamReply

logger = logging.getLogger(__name__)

MISSING_SESSION_ID = "invalid response: missing session id"
GENERIC_TRANSPORT_ERROR = UpstreamTransportError.message

_STATUS_MESSAGES = {
    400: "invalid request data",
    401: "unauthorized: invalid api key",
    429: "rate limit exceeded",
    500: "upstream server error",
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def default_message_for_status(status: int) -> str:
    return _STATUS_MESSAGES.get(status, f"upstream error ({status})")


def _provider_message(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value
        # {"error": {"message": "..."}}
        if isinstance(value, dict):
            nested = value.get("message")
            if isinstance(nested, str) and nested.strip():
                return nested
    return None


def _session_id(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    sid = body.get("sessionId")
    if isinstance(sid, str) and sid.strip():
        return sid
    return None


def _caller_status(upstream_status: int) -> int:
    # A non-200 that is not an HTTP error (3xx, 204, ...) must not reach the
    # caller as a success-class status
    return upstream_status if 400 <= upstream_status <= 599 else 502


def interpret_reply(reply: UpstreamReply, amount: float, cfg: ProviderConfig) -> SessionResult:
    if reply.status_code == 200:
        sid = _session_id(reply.body)
        if sid is None:
            logger.error(f"[INTERPRET] 200 without sessionId; body={reply.text[:500]!r}")
            return SessionFailure(
                status_code=500,
                error=MISSING_SESSION_ID,
                kind=FailureKind.upstream_malformed,
                raw_body=reply.body if reply.body is not None else reply.text,
                upstream_status=200,
            )
        return SessionSuccess(
            session_id=sid,
            partner_id=cfg.partner_id,
            wallet_address=cfg.wallet_address,
            amount=amount,
            timestamp=_utc_now_iso(),
        )

    status = _caller_status(reply.status_code)
    if reply.body is None:
        logger.error(f"[INTERPRET] upstream {reply.status_code} with non-JSON body: {reply.text[:500]!r}")
        return SessionFailure(
            status_code=status,
            error=default_message_for_status(reply.status_code),
            kind=FailureKind.upstream_malformed,
            raw_body=reply.text or None,
            upstream_status=reply.status_code,
        )

    message = _provider_message(reply.body)
    logger.warning(f"[INTERPRET] upstream rejected request ({reply.status_code}): {message or reply.body!r}")
    return SessionFailure(
        status_code=status,
        error=message or default_message_for_status(reply.status_code),
        kind=FailureKind.upstream_rejection,
        raw_body=reply.body,
        upstream_status=reply.status_code,
    )


def interpret_transport_error(exc: Exception) -> SessionFailure:
    if isinstance(exc, (UpstreamTimeoutError, UpstreamConnectError)):
        message = exc.message
    else:
        message = GENERIC_TRANSPORT_ERROR
    logger.error(f"[INTERPRET] transport failure: {type(exc).__name__}: {exc}")
    return SessionFailure(status_code=500, error=message, kind=FailureKind.transport_failure)
