# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
from typing import Any, Optional

from .config import ProviderConfig
from .models import SessionRequest
from .validation import normalize_phone


def build_session_request(amount: float, phone: Optional[Any], cfg: ProviderConfig) -> SessionRequest:
    """Map a validated amount onto the provider's create-session payload.

    The wallet always comes from configuration, never from the caller. Phone is
    forwarded only when non-empty; email is never forwarded.
    """
    return SessionRequest(
        currency_amount=float(amount),
        wallet_address=cfg.wallet_address,
        phone=normalize_phone(phone),
    )


def encode_session_request(req: SessionRequest) -> bytes:
    payload = req.model_dump(exclude_none=True)
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
