# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import math
from typing import Any, Optional

from .errors import AmountError

MIN_AMOUNT = 25
MAX_AMOUNT = 10_000

AMOUNT_REQUIRED = "amount required, minimum 25"
AMOUNT_TOO_LARGE = "amount exceeds maximum 10,000"


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise AmountError(msg)


def _coerce_number(raw: Any) -> Optional[float]:
    # bool is an int subclass; true/false are not amounts
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def validate_amount(raw: Any) -> float:
    """Check a purchase amount against the business bounds.

    Returns the amount as a float, raises AmountError with the caller-facing
    reason otherwise. Numeric strings are accepted.
    """
    value = _coerce_number(raw)
    _require(value is not None and value >= MIN_AMOUNT, AMOUNT_REQUIRED)
    _require(value <= MAX_AMOUNT, AMOUNT_TOO_LARGE)
    return value


def normalize_phone(raw: Any) -> Optional[str]:
    if raw is None or isinstance(raw, bool):
        return None
    phone = str(raw).strip()
    return phone or None
