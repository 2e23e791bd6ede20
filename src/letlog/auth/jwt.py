"""
letlog.auth.jwt

Session token issuing and validation.

Responsibilities:
- Issue access and refresh tokens for a principal.
- Decode tokens with strict claim requirements (iss/aud/exp/iat/sub/typ).

Note:
- Tokens are HS256 and verified locally; no remote auth service is involved.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import jwt
from jwt import InvalidTokenError

TokenType = Literal["access", "refresh"]


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    token_type: TokenType,
    ttl: timedelta,
    email: str | None = None,
    now: datetime | None = None,
) -> str:
    now = now or datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject,
        "typ": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str, token_type: TokenType) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={"require": ["exp", "iat", "iss", "aud", "sub"]},
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e

    # A refresh token must never be accepted where an access token is expected.
    if payload.get("typ") != token_type:
        raise JwtValidationError(f"Expected {token_type} token")
    if not str(payload.get("sub", "")):
        raise JwtValidationError("Invalid token subject")
    return payload


# --- Module Notes -----------------------------------------------------------
# Tokens are issued by:
# - `auth.session` when refreshing a near-expiry or expired session
# - `api/routers/dev_auth.py` (dev convenience sign-in)
