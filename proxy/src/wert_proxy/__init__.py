# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Wert Session Proxy

Validates purchase amounts and forwards session-creation requests to the Wert
on-ramp, normalizing every upstream outcome into one success/error shape.

Usage:
    from wert_proxy import build_app

    app = build_app()  # reads WERT_API_KEY, WERT_PARTNER_ID, WALLET_ADDRESS
"""

__version__ = "0.1.0"

from .app import AVAILABLE_ENDPOINTS, build_app
from .builder import build_session_request, encode_session_request
from .config import ProviderConfig, ServerConfig, get_server_cfg
from .errors import (
    AmountError,
    ConfigError,
    FailureKind,
    TransportUnavailableError,
    UpstreamConnectError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from .interpreter import interpret_reply, interpret_transport_error
from .models import (
    PurchaseRequest,
    SessionFailure,
    SessionRequest,
    SessionResult,
    SessionSuccess,
)
from .ratelimit import RateLimitDecision, SlidingWindowLimiter
from .routes import router
from .service import SessionService
from .transport import (
    FallbackTransport,
    HttpxTransport,
    SessionTransport,
    SocketTransport,
    UpstreamReply,
    build_transport,
)
from .upstream import invoke_provider
from .validation import validate_amount

__all__ = [
    "build_app",
    "router",
    "AVAILABLE_ENDPOINTS",
    "ProviderConfig",
    "ServerConfig",
    "get_server_cfg",
    "PurchaseRequest",
    "SessionRequest",
    "SessionResult",
    "SessionSuccess",
    "SessionFailure",
    "validate_amount",
    "build_session_request",
    "encode_session_request",
    "invoke_provider",
    "interpret_reply",
    "interpret_transport_error",
    "SessionService",
    "SessionTransport",
    "HttpxTransport",
    "SocketTransport",
    "FallbackTransport",
    "UpstreamReply",
    "build_transport",
    "SlidingWindowLimiter",
    "RateLimitDecision",
    "AmountError",
    "ConfigError",
    "FailureKind",
    "TransportUnavailableError",
    "UpstreamConnectError",
    "UpstreamTimeoutError",
    "UpstreamTransportError",
]
