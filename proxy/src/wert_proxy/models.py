# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import FailureKind


# -------------------------------
# Caller-facing
# -------------------------------


class PurchaseRequest(BaseModel):
    # checked by validate_amount
    currency_amount: Any = None
    phone: Optional[Any] = None
    email: Optional[Any] = None


class CreateSessionResponse(BaseModel):
    success: Literal[True] = True
    sessionId: str
    partnerId: str
    walletAddress: str
    amount: float
    timestamp: str


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str
    details: Optional[Any] = None
    upstreamStatus: Optional[int] = None


class NotFoundResponse(BaseModel):
    success: Literal[False] = False
    error: str = "Endpoint not found"
    availableEndpoints: List[str]


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str


class ServiceInfoResponse(BaseModel):
    success: bool = True
    message: str
    status: str = "running"
    environment: str
    timestamp: str


# -------------------------------
# Provider-facing
# -------------------------------


class SessionRequest(BaseModel):
    """Outbound body for the provider's create-session endpoint."""

    model_config = ConfigDict(frozen=True)

    flow_type: Literal["simple_full_restrict"] = "simple_full_restrict"
    currency: Literal["USD"] = "USD"
    currency_amount: float
    commodity: Literal["BTC"] = "BTC"
    network: Literal["bitcoin"] = "bitcoin"
    wallet_address: str
    phone: Optional[str] = None


class SessionSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1)
    partner_id: str
    wallet_address: str
    amount: float
    timestamp: str


class SessionFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: int
    error: str
    kind: FailureKind
    raw_body: Optional[Any] = None
    upstream_status: Optional[int] = None


SessionResult = Union[SessionSuccess, SessionFailure]
