# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Process-wide configuration.

Env (provider):
  - WERT_API_KEY (required)
  - WERT_PARTNER_ID (required)
  - WALLET_ADDRESS (required)
  - WERT_API_URL (default: https://partner.wert.io/api/external/hpp/create-session)
  - PROVIDER_TIMEOUT_S (default: 30)
  - PROVIDER_TRANSPORT (auto | httpx | socket, default: auto)

Env (server):
  - HOST (default: 0.0.0.0), PORT (default: 3000), APP_ENV (default: production)
  - CORS_ALLOWED_ORIGINS (comma-separated), CORS_ORIGIN_REGEX
  - RATE_LIMIT_MAX (default: 50), RATE_LIMIT_WINDOW_S (default: 900)
  - RATE_LIMIT_MAX_KEYS (default: 100000), callers tracked at once
"""
from __future__ import annotations

import os
from typing import List, Literal, Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

DEFAULT_API_URL = "https://partner.wert.io/api/external/hpp/create-session"
DEFAULT_CORS_ORIGIN_REGEX = (
    r"https?://(localhost|127\.0\.0\.1)(:\d+)?"
    r"|https://([a-z0-9-]+\.)*(netlify\.app|netlify\.com|vercel\.app|railway\.app)"
)

_REQUIRED_PROVIDER_ENV = {
    "api_key": "WERT_API_KEY",
    "partner_id": "WERT_PARTNER_ID",
    "wallet_address": "WALLET_ADDRESS",
}


class ProviderConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = Field(..., min_length=1, repr=False)
    partner_id: str = Field(..., min_length=1)
    wallet_address: str = Field(..., min_length=1)
    api_url: str = DEFAULT_API_URL
    timeout_s: float = Field(30.0, gt=0)
    transport: Literal["auto", "httpx", "socket"] = "auto"

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise ValueError("api_url must be an absolute http(s) URL")
        return v

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ProviderConfig":
        """Load provider settings; refuse to build without the mandatory secrets."""
        env = os.environ if env is None else env
        missing = [name for name in _REQUIRED_PROVIDER_ENV.values() if not (env.get(name) or "").strip()]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")
        try:
            return cls(
                **{field: env[name].strip() for field, name in _REQUIRED_PROVIDER_ENV.items()},
                api_url=env.get("WERT_API_URL") or DEFAULT_API_URL,
                timeout_s=float(env.get("PROVIDER_TIMEOUT_S", "30")),
                transport=(env.get("PROVIDER_TRANSPORT") or "auto").lower(),
            )
        except (ValidationError, ValueError) as e:
            raise ConfigError(f"Invalid provider configuration: {e}") from e


class ServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(3000, gt=0, lt=65536)
    environment: str = "production"
    cors_origins: List[str] = Field(default_factory=list)
    cors_origin_regex: Optional[str] = DEFAULT_CORS_ORIGIN_REGEX
    rate_limit_max: int = Field(50, gt=0)
    rate_limit_window_s: float = Field(900.0, gt=0)
    rate_limit_max_keys: int = Field(100_000, gt=0)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        env = os.environ if env is None else env
        origins = [o.strip() for o in (env.get("CORS_ALLOWED_ORIGINS") or "").split(",") if o.strip()]
        try:
            return cls(
                host=env.get("HOST", "0.0.0.0"),
                port=int(env.get("PORT", "3000")),
                environment=env.get("APP_ENV", "production"),
                cors_origins=origins,
                cors_origin_regex=env.get("CORS_ORIGIN_REGEX", DEFAULT_CORS_ORIGIN_REGEX) or None,
                rate_limit_max=int(env.get("RATE_LIMIT_MAX", "50")),
                rate_limit_window_s=float(env.get("RATE_LIMIT_WINDOW_S", "900")),
                rate_limit_max_keys=int(env.get("RATE_LIMIT_MAX_KEYS", "100000")),
            )
        except (ValidationError, ValueError) as e:
            raise ConfigError(f"Invalid server configuration: {e}") from e


def get_server_cfg() -> ServerConfig:
    return ServerConfig.from_env()
