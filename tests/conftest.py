# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
import os
import sys
from typing import Callable, List, Optional

import httpx
import pytest


def _add_project_paths_to_syspath() -> None:
    root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    for path in (root, os.path.join(root, "proxy", "src")):
        if path not in sys.path:
            sys.path.insert(0, path)


_add_project_paths_to_syspath()


# Import after adding to syspath
from fastapi import FastAPI
from fastapi.testclient import TestClient

from wert_proxy import HttpxTransport, ProviderConfig, ServerConfig, build_app

TEST_API_KEY = "test-api-key"
TEST_PARTNER_ID = "01TESTPARTNER"
TEST_WALLET = "bc1qtestwallet000000000000000000000000000"
TEST_API_URL = "https://partner.wert.test/api/external/hpp/create-session"


@pytest.fixture
def test_env(monkeypatch) -> None:
    """Set up test environment variables."""
    monkeypatch.setenv("WERT_API_KEY", TEST_API_KEY)
    monkeypatch.setenv("WERT_PARTNER_ID", TEST_PARTNER_ID)
    monkeypatch.setenv("WALLET_ADDRESS", TEST_WALLET)
    monkeypatch.setenv("WERT_API_URL", TEST_API_URL)


@pytest.fixture
def provider_cfg() -> ProviderConfig:
    return ProviderConfig(
        api_key=TEST_API_KEY,
        partner_id=TEST_PARTNER_ID,
        wallet_address=TEST_WALLET,
        api_url=TEST_API_URL,
        timeout_s=5.0,
    )


@pytest.fixture
def server_cfg() -> ServerConfig:
    return ServerConfig(environment="test")


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays a canned reply."""

    def __init__(self, reply: Callable[[httpx.Request], httpx.Response]) -> None:
        self.reply = reply
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)


@pytest.fixture
def make_client(provider_cfg: ProviderConfig, server_cfg: ServerConfig) -> Callable[..., TestClient]:
    """Build a TestClient whose provider calls go to the given httpx transport."""

    def _make(
        transport: httpx.AsyncBaseTransport, provider_overrides: Optional[dict] = None, **server_overrides
    ) -> TestClient:
        pcfg = provider_cfg.model_copy(update=provider_overrides) if provider_overrides else provider_cfg
        scfg = server_cfg.model_copy(update=server_overrides) if server_overrides else server_cfg
        app: FastAPI = build_app(pcfg, scfg, HttpxTransport(transport))
        return TestClient(app)

    return _make


@pytest.fixture
def sample_purchase() -> dict:
    return {"currency_amount": 100, "phone": "+15555550100", "email": "buyer@example.com"}
