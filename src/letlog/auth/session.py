"""
letlog.auth.session

Cookie-based session resolution.

Responsibilities:
- Read session credentials (access + refresh token cookies) from a request.
- Resolve zero or one `Principal`, refreshing tokens that are close to expiry.
- Describe the cookie writes a response must carry (refresh or clear), and
  apply them to any Starlette response, redirects included.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from starlette.responses import Response

from letlog.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, issue_token
from letlog.auth.models import Principal
from letlog.settings import Settings


class AuthUnavailableError(Exception):
    """
    Raised by an auth backend that cannot reach its credential authority.
    Distinct from "no user": the caller decides how to degrade.
    """


@dataclass(frozen=True, slots=True)
class SessionCredentials:
    access_token: str | None = None
    refresh_token: str | None = None

    @property
    def empty(self) -> bool:
        return not self.access_token and not self.refresh_token


@dataclass(frozen=True, slots=True)
class CookieUpdate:
    # value=None means "delete this cookie".
    name: str
    value: str | None
    max_age: int | None = None


@dataclass(frozen=True, slots=True)
class SessionResult:
    principal: Principal | None
    cookies: tuple[CookieUpdate, ...] = ()


class AuthBackend(Protocol):
    async def get_user(self, credentials: SessionCredentials) -> SessionResult: ...


def jwt_config(settings: Settings) -> JwtConfig:
    return JwtConfig(
        alg=settings.jwt_alg,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        secret=settings.jwt_secret,
    )


def credentials_from_cookies(cookies: Mapping[str, str], settings: Settings) -> SessionCredentials:
    return SessionCredentials(
        access_token=cookies.get(settings.access_cookie_name) or None,
        refresh_token=cookies.get(settings.refresh_cookie_name) or None,
    )


def issue_session_cookies(
    principal: Principal, settings: Settings, *, include_refresh: bool = True
) -> tuple[CookieUpdate, ...]:
    cfg = jwt_config(settings)
    updates = [
        CookieUpdate(
            name=settings.access_cookie_name,
            value=issue_token(
                cfg=cfg,
                subject=principal.subject,
                email=principal.email,
                token_type="access",
                ttl=timedelta(seconds=settings.access_token_ttl_seconds),
            ),
            max_age=settings.access_token_ttl_seconds,
        )
    ]
    if include_refresh:
        updates.append(
            CookieUpdate(
                name=settings.refresh_cookie_name,
                value=issue_token(
                    cfg=cfg,
                    subject=principal.subject,
                    email=principal.email,
                    token_type="refresh",
                    ttl=timedelta(seconds=settings.refresh_token_ttl_seconds),
                ),
                max_age=settings.refresh_token_ttl_seconds,
            )
        )
    return tuple(updates)


def clear_session_cookies(settings: Settings) -> tuple[CookieUpdate, ...]:
    return (
        CookieUpdate(name=settings.access_cookie_name, value=None),
        CookieUpdate(name=settings.refresh_cookie_name, value=None),
    )


def apply_cookies(response: Response, updates: tuple[CookieUpdate, ...], settings: Settings) -> None:
    for update in updates:
        if update.value is None:
            response.delete_cookie(
                update.name,
                path="/",
                secure=settings.cookie_secure,
                httponly=True,
                samesite="lax",
            )
        else:
            response.set_cookie(
                update.name,
                update.value,
                max_age=update.max_age,
                path="/",
                secure=settings.cookie_secure,
                httponly=True,
                samesite="lax",
            )


class JwtCookieAuthBackend:
    """
    Validates this service's own session tokens.

    - valid access token: principal; reissued when within the refresh margin
    - otherwise a valid refresh token: principal with a fresh token pair
    - nothing valid: anonymous, and any stale cookies are cleared
    """

    def __init__(self, *, settings: Settings) -> None:
        self._settings = settings
        self._cfg = jwt_config(settings)

    async def get_user(self, credentials: SessionCredentials) -> SessionResult:
        if credentials.empty:
            return SessionResult(principal=None)

        if credentials.access_token:
            try:
                payload = decode_and_validate(
                    cfg=self._cfg, token=credentials.access_token, token_type="access"
                )
            except JwtValidationError:
                payload = None
            if payload is not None:
                principal = _principal_from(payload)
                remaining = int(payload["exp"]) - time.time()
                if remaining < self._settings.session_refresh_margin_seconds:
                    cookies = issue_session_cookies(principal, self._settings, include_refresh=False)
                    return SessionResult(principal=principal, cookies=cookies)
                return SessionResult(principal=principal)

        if credentials.refresh_token:
            try:
                payload = decode_and_validate(
                    cfg=self._cfg, token=credentials.refresh_token, token_type="refresh"
                )
            except JwtValidationError:
                payload = None
            if payload is not None:
                principal = _principal_from(payload)
                return SessionResult(
                    principal=principal, cookies=issue_session_cookies(principal, self._settings)
                )

        return SessionResult(principal=None, cookies=clear_session_cookies(self._settings))


def _principal_from(payload: dict) -> Principal:
    email = payload.get("email")
    return Principal(subject=str(payload["sub"]), email=str(email) if email else None)


# --- Module Notes -----------------------------------------------------------
# A remote auth service can replace `JwtCookieAuthBackend` by implementing
# `AuthBackend`; transport failures must surface as `AuthUnavailableError`.
