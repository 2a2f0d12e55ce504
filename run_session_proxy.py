#!/usr/bin/env python3
# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""
Standalone runner for the Wert Session Proxy.

Env:
  - WERT_API_KEY, WERT_PARTNER_ID, WALLET_ADDRESS (required, no defaults)
  - WERT_API_URL (default: https://partner.wert.io/api/external/hpp/create-session)
  - PROVIDER_TIMEOUT_S (default: 30)
  - PROVIDER_TRANSPORT (auto | httpx | socket, default: auto)
  - HOST (default: 0.0.0.0), PORT (default: 3000)
  - LOG_LEVEL (default: INFO)
"""

import logging
import os
import sys

# Add package source to Python path
repo_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.join(repo_root, 'proxy', 'src'))

# Load .env BEFORE building the app so config is read from it
from dotenv import load_dotenv  # type: ignore
load_dotenv()

from wert_proxy import ConfigError, ServerConfig, build_app


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("session_proxy")


def main() -> int:
    import uvicorn

    try:
        server_cfg = ServerConfig.from_env()
        app = build_app(server_cfg=server_cfg)
    except ConfigError as e:
        logger.critical(f"Refusing to start: {e}")
        return 1

    logger.info(f"Listening on {server_cfg.host}:{server_cfg.port}")
    uvicorn.run(app, host=server_cfg.host, port=server_cfg.port, log_level="info")
    logger.info("Session proxy stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
