"""
letlog.ratelimit.deps

FastAPI wiring for the rate limiter.

Responsibilities:
- Hand the app-scoped limiter to call sites.
- Provide a dependency factory that admits or rejects a request before the
  handler body runs.
- Render rejections as HTTP 429 with a fixed JSON body.
"""

from __future__ import annotations

import math

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_429_TOO_MANY_REQUESTS

from letlog.ratelimit.client import client_identifier
from letlog.ratelimit.limiter import FixedWindowRateLimiter, RateLimitResult

TOO_MANY_REQUESTS = "Too many requests. Please try again later."


class RateLimitExceeded(Exception):
    def __init__(self, result: RateLimitResult) -> None:
        super().__init__(TOO_MANY_REQUESTS)
        self.result = result


def limiter_from_app(request: Request) -> FixedWindowRateLimiter:
    # Created in `api.app.create_app` and started/stopped with the app lifecycle.
    return request.app.state.rate_limiter


def admit(
    request: Request,
    limiter: FixedWindowRateLimiter,
    scope: str,
    *,
    limit: int,
    window_seconds: int,
) -> RateLimitResult:
    key = f"{scope}:{client_identifier(request.headers)}"
    result = limiter.check(key, limit=limit, window_seconds=window_seconds)
    if not result.success:
        raise RateLimitExceeded(result)
    return result


def rate_limited(scope: str, *, limit: int, window_seconds: int):
    def _dep(
        request: Request,
        limiter: FixedWindowRateLimiter = Depends(limiter_from_app),
    ) -> RateLimitResult:
        return admit(request, limiter, scope, limit=limit, window_seconds=window_seconds)

    return _dep


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
    retry_after = max(0, math.ceil(exc.result.reset_at - limiter.now()))
    return JSONResponse(
        {"error": TOO_MANY_REQUESTS},
        status_code=HTTP_429_TOO_MANY_REQUESTS,
        headers={"X-RateLimit-Remaining": "0", "Retry-After": str(retry_after)},
    )
