# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from enum import Enum


class ConfigError(RuntimeError):
    pass


class AmountError(ValueError):
    """Caller-supplied purchase amount is outside the accepted bounds."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UpstreamTransportError(RuntimeError):
    """The request never produced an HTTP response from the provider."""

    message = "upstream request failed"


class UpstreamConnectError(UpstreamTransportError):
    message = "unable to connect to provider"


class UpstreamTimeoutError(UpstreamTransportError):
    message = "request to provider timed out"


class TransportUnavailableError(RuntimeError):
    """The transport mechanism itself cannot run in this environment.

    Raised before any bytes hit the network, so the same request may be
    performed by another transport.
    """


class FailureKind(str, Enum):
    client_validation = "client_validation"
    upstream_rejection = "upstream_rejection"
    upstream_malformed = "upstream_malformed"
    transport_failure = "transport_failure"
    internal = "internal"
