"""
letlog.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, payments keys).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LETLOG_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "letlog-gateway"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Session tokens
    jwt_alg: str = "HS256"
    jwt_issuer: str = "letlog"
    jwt_audience: str = "letlog-web"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    access_token_ttl_seconds: int = 60 * 60
    refresh_token_ttl_seconds: int = 14 * 24 * 60 * 60
    # Access tokens this close to expiry are reissued on the next request.
    session_refresh_margin_seconds: int = 5 * 60

    access_cookie_name: str = "letlog-access-token"
    refresh_cookie_name: str = "letlog-refresh-token"
    cookie_secure: bool = False

    # What to do when the auth backend cannot be reached at all.
    auth_unavailable_policy: Literal["anonymous", "reject"] = "anonymous"

    # Optional JSON file replacing the built-in route policy table.
    route_policy_file: str | None = None

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./letlog.db"

    # Rate limiting
    rate_limit_sweep_seconds: float = 5 * 60
    checkout_rate_limit: int = 5
    checkout_rate_window_seconds: int = 60

    # Payments provider
    payments_secret_key: str = Field(default="", repr=False)
    payments_webhook_secret: str = Field(default="", repr=False)
    basic_price_id: str | None = None
    premium_price_id: str | None = None
    trial_period_days: int = 14


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every layer reads configuration from here; route policy data itself lives in
# `letlog.access.policy` and is only optionally overridden by a file.
