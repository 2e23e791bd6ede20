"""
letlog.auth.deps

FastAPI dependency functions exposing the session resolved by the access
middleware to route handlers.
"""

from __future__ import annotations

from fastapi import HTTPException, Request
from starlette.status import HTTP_401_UNAUTHORIZED

from letlog.auth.models import Identity, Principal


def optional_principal(request: Request) -> Principal | None:
    # Set by `access.middleware.AccessControlMiddleware` on every gated request.
    return getattr(request.state, "principal", None)


def get_principal(request: Request) -> Principal:
    principal = optional_principal(request)
    if principal is None:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return principal


def optional_identity(request: Request) -> Identity | None:
    return getattr(request.state, "identity", None)


# --- Module Notes -----------------------------------------------------------
# `identity` is only populated when the middleware needed the role for its
# decision (auth pages and protected routes).
