"""
letlog.access.middleware

Edge middleware enforcing the route policy on every gated request.

Responsibilities:
- Skip static assets and images.
- Turn gate outcomes into responses (307 redirect, 503, or pass-through).
- Mirror session cookie refreshes onto every response, redirects included.
- Publish the principal/identity on `request.state` for handlers.
"""

from __future__ import annotations

import re
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.status import HTTP_307_TEMPORARY_REDIRECT, HTTP_503_SERVICE_UNAVAILABLE

from letlog.access.decisions import Redirect
from letlog.access.gate import AccessGate
from letlog.auth.session import apply_cookies, credentials_from_cookies
from letlog.observability.logging import get_logger
from letlog.settings import Settings

log = get_logger(__name__)

_UNGATED_PREFIXES = ("/_next/static", "/_next/image", "/favicon.ico")
_UNGATED_SUFFIX = re.compile(r"\.(?:svg|png|jpg|jpeg|gif|webp)$")


def is_gated(path: str) -> bool:
    if any(path == p or path.startswith(p + "/") for p in _UNGATED_PREFIXES):
        return False
    return _UNGATED_SUFFIX.search(path) is None


def redirect_url(request: Request, redirect: Redirect) -> str:
    # Same origin; the query carries only the redirect/error parameter.
    return str(request.url.replace(path=redirect.path, query=urlencode(redirect.params)))


class AccessControlMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not is_gated(path):
            return await call_next(request)

        # Built on startup in `api.app.create_app`.
        gate: AccessGate = request.app.state.access_gate
        outcome = await gate.evaluate(
            path=path,
            credentials=credentials_from_cookies(request.cookies, self._settings),
        )

        if outcome.unavailable:
            response: Response = JSONResponse(
                {"error": "Authentication service unavailable"},
                status_code=HTTP_503_SERVICE_UNAVAILABLE,
            )
        elif isinstance(outcome.decision, Redirect):
            log.info(
                "access_redirect",
                reason=outcome.decision.reason,
                to=outcome.decision.path,
                role=outcome.identity.role.value if outcome.identity else None,
            )
            response = RedirectResponse(
                redirect_url(request, outcome.decision),
                status_code=HTTP_307_TEMPORARY_REDIRECT,
            )
        else:
            request.state.principal = outcome.session.principal
            request.state.identity = outcome.identity
            response = await call_next(request)

        # A handler that wrote a session cookie itself (sign-in, sign-out) wins.
        written = _cookies_written(response)
        pending = tuple(u for u in outcome.cookies if u.name not in written)
        apply_cookies(response, pending, self._settings)
        return response


def _cookies_written(response: Response) -> set[str]:
    return {
        header.split("=", 1)[0].strip() for header in response.headers.getlist("set-cookie")
    }


# --- Module Notes -----------------------------------------------------------
# API routes under `/api` and `/v1` are not in the policy table, so they pass
# through here with `request.state.principal` set and enforce auth themselves.
