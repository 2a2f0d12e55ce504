# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
from typing import Any, Optional

from .builder import build_session_request
from .config import ProviderConfig
from .errors import TransportUnavailableError, UpstreamTransportError
from .interpreter import interpret_reply, interpret_transport_error
from .models import SessionResult
from .transport import SessionTransport, build_transport
from .upstream import invoke_provider

logger = logging.getLogger(__name__)


class SessionService:
    """Build, send and interpret one provider session request per call.

    Holds only immutable configuration and the transport strategy, so one
    instance serves all concurrent requests.
    """

    def __init__(self, cfg: ProviderConfig, transport: Optional[SessionTransport] = None) -> None:
        self.cfg = cfg
        self.transport = transport or build_transport(cfg)

    async def create_session(
        self, amount: float, phone: Optional[Any] = None, *, req_id: str = "-"
    ) -> SessionResult:
        session_request = build_session_request(amount, phone, self.cfg)
        try:
            reply = await invoke_provider(session_request, self.cfg, self.transport, req_id=req_id)
        except (UpstreamTransportError, TransportUnavailableError) as e:
            return interpret_transport_error(e)
        return interpret_reply(reply, amount, self.cfg)
