# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Interchangeable HTTP transports for the provider call.

Every transport returns the same UpstreamReply for the same upstream response
and raises the same Upstream*Error family for network failures, so callers
never need to know which one is active.
"""
from __future__ import annotations

import abc
import asyncio
import contextlib
import json
import logging
import ssl
from typing import Any, Dict, NamedTuple, Optional
from urllib.parse import urlsplit

import httpx

from .config import ProviderConfig
from .errors import (
    TransportUnavailableError,
    UpstreamConnectError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)

logger = logging.getLogger(__name__)

_MAX_HEADER_LINES = 100


class UpstreamReply(NamedTuple):
    status_code: int
    body: Any  # parsed JSON, None when the payload is empty or not JSON
    text: str


def parse_json_body(text: str) -> Any:
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


class SessionTransport(abc.ABC):
    name: str = "abstract"

    @abc.abstractmethod
    async def send(
        self, url: str, headers: Dict[str, str], body: bytes, timeout: float
    ) -> UpstreamReply:
        """POST `body` to `url` and return the provider's reply."""


class HttpxTransport(SessionTransport):
    name = "httpx"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        # Injected transport (ASGITransport, MockTransport) bypasses the network
        self._transport = transport

    async def send(
        self, url: str, headers: Dict[str, str], body: bytes, timeout: float
    ) -> UpstreamReply:
        try:
            client = httpx.AsyncClient(timeout=timeout, transport=self._transport)
        except OSError as e:
            # e.g. no readable CA bundle, so TLS cannot be set up at all
            raise TransportUnavailableError(f"httpx client unavailable: {e}") from e

        async with client:
            try:
                # httpx timeouts are per phase; bound the whole exchange as well
                resp = await asyncio.wait_for(client.post(url, content=body, headers=headers), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise UpstreamTimeoutError(f"no response within {timeout}s") from e
            except httpx.TimeoutException as e:
                raise UpstreamTimeoutError(str(e) or "timeout") from e
            except httpx.ConnectError as e:
                raise UpstreamConnectError(str(e) or "connect failed") from e
            except httpx.TransportError as e:
                raise UpstreamTransportError(str(e) or type(e).__name__) from e
        return UpstreamReply(resp.status_code, parse_json_body(resp.text), resp.text)


class SocketTransport(SessionTransport):
    """HTTP/1.1 over asyncio streams, with the stdlib ssl module for HTTPS."""

    name = "socket"

    def __init__(self, ssl_context: Optional[ssl.SSLContext] = None) -> None:
        self._ssl_context = ssl_context

    async def send(
        self, url: str, headers: Dict[str, str], body: bytes, timeout: float
    ) -> UpstreamReply:
        try:
            return await asyncio.wait_for(self._exchange(url, headers, body), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError(f"no response within {timeout}s") from e

    async def _exchange(self, url: str, headers: Dict[str, str], body: bytes) -> UpstreamReply:
        target = urlsplit(url)
        secure = target.scheme == "https"
        host = target.hostname or ""
        port = target.port or (443 if secure else 80)
        path = (target.path or "/") + (f"?{target.query}" if target.query else "")
        default_port = port == (443 if secure else 80)
        host_header = host if default_port else f"{host}:{port}"

        ctx: Optional[ssl.SSLContext] = None
        if secure:
            ctx = self._ssl_context or ssl.create_default_context()

        try:
            reader, writer = await asyncio.open_connection(
                host, port, ssl=ctx, server_hostname=host if ctx else None
            )
        except ssl.SSLError as e:
            raise UpstreamTransportError(f"TLS handshake failed: {e}") from e
        except TimeoutError as e:
            raise UpstreamTimeoutError(str(e) or "connect timed out") from e
        except OSError as e:
            # refused, unreachable, DNS resolution (socket.gaierror)
            raise UpstreamConnectError(str(e) or "connect failed") from e

        lines = [
            f"POST {path} HTTP/1.1",
            f"Host: {host_header}",
            "Connection: close",
            "Accept-Encoding: identity",
            f"Content-Length: {len(body)}",
        ]
        lines += [f"{k}: {v}" for k, v in headers.items() if k.lower() != "content-length"]
        head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

        try:
            writer.write(head + body)
            await writer.drain()
            return await _read_response(reader)
        except asyncio.IncompleteReadError as e:
            raise UpstreamTransportError("connection closed before full response") from e
        except (OSError, ValueError) as e:
            raise UpstreamTransportError(str(e) or type(e).__name__) from e
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()


async def _read_response(reader: asyncio.StreamReader) -> UpstreamReply:
    status_line = (await reader.readline()).decode("latin-1").strip()
    parts = status_line.split(None, 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
        raise UpstreamTransportError(f"malformed status line: {status_line!r}")
    status = int(parts[1])

    headers: Dict[str, str] = {}
    for _ in range(_MAX_HEADER_LINES):
        line = (await reader.readline()).decode("latin-1")
        if line in ("\r\n", "\n", ""):
            break
        if ":" in line:
            k, v = line.split(":", 1)
            headers[k.strip().lower()] = v.strip()
    else:
        raise UpstreamTransportError("too many response headers")

    if "chunked" in headers.get("transfer-encoding", "").lower():
        raw = await _read_chunked(reader)
    elif "content-length" in headers:
        raw = await reader.readexactly(int(headers["content-length"]))
    else:
        raw = await reader.read()

    try:
        text = raw.decode(_charset(headers.get("content-type", "")), errors="replace")
    except LookupError:
        # unknown or non-text charset label
        text = raw.decode("utf-8", errors="replace")
    return UpstreamReply(status, parse_json_body(text), text)


async def _read_chunked(reader: asyncio.StreamReader) -> bytes:
    chunks = []
    while True:
        size_line = (await reader.readline()).decode("latin-1").split(";", 1)[0].strip()
        size = int(size_line, 16)
        if size == 0:
            # trailers
            while (await reader.readline()) not in (b"\r\n", b"\n", b""):
                pass
            return b"".join(chunks)
        chunks.append(await reader.readexactly(size))
        await reader.readline()


def _charset(content_type: str) -> str:
    for param in content_type.split(";")[1:]:
        k, _, v = param.partition("=")
        if k.strip().lower() == "charset" and v.strip():
            return v.strip().strip('"')
    return "utf-8"


class FallbackTransport(SessionTransport):
    """Primary transport, replaced by the secondary once it proves unusable.

    Only TransportUnavailableError triggers the switch; network errors from
    the primary propagate unchanged and are never replayed.
    """

    def __init__(self, primary: SessionTransport, secondary: SessionTransport) -> None:
        self.primary = primary
        self.secondary = secondary
        self._primary_usable = True

    @property
    def name(self) -> str:  # type: ignore[override]
        return self.primary.name if self._primary_usable else self.secondary.name

    async def send(
        self, url: str, headers: Dict[str, str], body: bytes, timeout: float
    ) -> UpstreamReply:
        if self._primary_usable:
            try:
                return await self.primary.send(url, headers, body, timeout)
            except TransportUnavailableError as e:
                logger.warning(
                    f"[TRANSPORT] {self.primary.name} unavailable ({e}); switching to {self.secondary.name}"
                )
                self._primary_usable = False
        return await self.secondary.send(url, headers, body, timeout)


def build_transport(cfg: ProviderConfig) -> SessionTransport:
    if cfg.transport == "httpx":
        return HttpxTransport()
    if cfg.transport == "socket":
        return SocketTransport()
    return FallbackTransport(HttpxTransport(), SocketTransport())
