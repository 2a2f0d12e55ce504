# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
import math
import time
from collections import deque
from typing import Callable, Deque, Dict, NamedTuple

from cachetools import TTLCache
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = "Too many session creation requests, please try again later."


class RateLimitDecision(NamedTuple):
    allowed: bool
    limit: int
    remaining: int
    retry_after_s: int

    def headers(self) -> Dict[str, str]:
        out = {"X-RateLimit-Limit": str(self.limit), "X-RateLimit-Remaining": str(self.remaining)}
        if not self.allowed:
            out["Retry-After"] = str(self.retry_after_s)
        return out


class SlidingWindowLimiter:
    """Per-caller hit counter over a rolling window.

    Each key maps to the timestamps of its accepted hits inside the window.
    The TTLCache entry expires one window after the key's last hit, so idle
    callers are evicted without a sweeper. No awaits between read and write:
    safe to share across tasks on one event loop.

    At most `maxsize` callers are tracked. When more distinct keys are active
    inside one window, the least recently used histories are dropped and those
    callers start from a fresh count; size it above the expected number of
    concurrent client addresses (RATE_LIMIT_MAX_KEYS).
    """

    def __init__(
        self,
        max_hits: int,
        window_s: float,
        *,
        maxsize: int = 100_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_hits <= 0 or window_s <= 0:
            raise ValueError("max_hits and window_s must be positive")
        self.max_hits = max_hits
        self.window_s = window_s
        self._clock = clock
        self.hits: TTLCache[str, Deque[float]] = TTLCache(maxsize=maxsize, ttl=window_s, timer=clock)

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        stamps = self.hits.get(key) or deque()
        while stamps and now - stamps[0] >= self.window_s:
            stamps.popleft()

        if len(stamps) >= self.max_hits:
            retry_after = math.ceil(self.window_s - (now - stamps[0]))
            self.hits[key] = stamps
            return RateLimitDecision(False, self.max_hits, 0, max(retry_after, 1))

        stamps.append(now)
        self.hits[key] = stamps
        return RateLimitDecision(True, self.max_hits, self.max_hits - len(stamps), 0)


def _caller_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def rate_limit_session_creation(request: Request) -> RateLimitDecision:
    limiter: SlidingWindowLimiter = request.app.state.rate_limiter
    key = _caller_key(request)
    decision = limiter.hit(key)
    if not decision.allowed:
        logger.warning(f"[RATELIMIT] {key} exceeded {decision.limit} per {limiter.window_s:.0f}s")
        raise HTTPException(status_code=429, detail=TOO_MANY_REQUESTS, headers=decision.headers())
    return decision
