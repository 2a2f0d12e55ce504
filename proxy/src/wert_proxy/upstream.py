# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio
import logging
from typing import Dict

from . import __version__
from .builder import encode_session_request
from .config import ProviderConfig
from .models import SessionRequest
from .transport import SessionTransport, UpstreamReply

logger = logging.getLogger(__name__)


def provider_headers(cfg: ProviderConfig) -> Dict[str, str]:
    return {
        "X-Api-Key": cfg.api_key,
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": f"wert-session-proxy/{__version__}",
    }


def _consume_result(task: "asyncio.Future[UpstreamReply]") -> None:
    # The caller may be gone; keep the outcome from surfacing as "never retrieved"
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"[UPSTREAM] detached call finished with {task.exception()!r}")


async def invoke_provider(
    session_request: SessionRequest,
    cfg: ProviderConfig,
    transport: SessionTransport,
    *,
    req_id: str = "-",
) -> UpstreamReply:
    """POST the session request to the provider once.

    The call is shielded from cancellation of the calling task: if the client
    disconnects, the upstream request still runs to completion or to
    `cfg.timeout_s`. Raises UpstreamTransportError subclasses on network
    failure; HTTP error statuses are returned, not raised.
    """
    body = encode_session_request(session_request)
    logger.info(f"[{req_id}] [UPSTREAM] POST {cfg.api_url} via {transport.name} ({len(body)} bytes)")
    task = asyncio.ensure_future(
        transport.send(cfg.api_url, provider_headers(cfg), body, cfg.timeout_s)
    )
    task.add_done_callback(_consume_result)
    reply = await asyncio.shield(task)
    logger.info(f"[{req_id}] [UPSTREAM] status {reply.status_code}")
    return reply
