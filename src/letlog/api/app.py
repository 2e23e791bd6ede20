"""
letlog.api.app

FastAPI app factory for the LetLog gateway.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own the lifecycle of shared components: DB engine, access gate, rate
  limiter sweep task, payments client.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from letlog.access.gate import AccessGate
from letlog.access.middleware import AccessControlMiddleware
from letlog.access.policy import load_policy
from letlog.api.routers.billing import router as billing_router
from letlog.api.routers.dev_auth import router as dev_auth_router
from letlog.api.routers.health import router as health_router
from letlog.api.routers.pages import router as pages_router
from letlog.api.routers.session import router as session_router
from letlog.api.routers.webhooks import router as webhooks_router
from letlog.auth.profiles import SqlProfileStore
from letlog.auth.session import AuthBackend, JwtCookieAuthBackend
from letlog.billing.gateway import StripeCheckoutGateway
from letlog.db.init_db import init_db
from letlog.db.session import create_engine, create_sessionmaker
from letlog.observability.logging import configure_logging, get_logger
from letlog.observability.middleware import RequestContextMiddleware
from letlog.ratelimit.deps import RateLimitExceeded, rate_limit_exceeded_handler
from letlog.ratelimit.limiter import FixedWindowRateLimiter
from letlog.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, auth_backend: AuthBackend | None = None) -> FastAPI:
    configure_logging(service_name=settings.service_name, env=settings.env, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            await init_db(engine)

        app.state.access_gate = AccessGate(
            policy=app.state.route_policy,
            auth_backend=auth_backend or JwtCookieAuthBackend(settings=settings),
            profile_store=SqlProfileStore(app.state.sessionmaker),
            unavailable_policy=settings.auth_unavailable_policy,
        )
        app.state.checkout_gateway = StripeCheckoutGateway(settings=settings)

        app.state.rate_limiter.start()
        try:
            yield
        finally:
            await app.state.rate_limiter.stop()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="LetLog Gateway",
        version="0.1.0",
        docs_url="/docs" if settings.env != "prod" else None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    # Loaded once; a broken policy file fails app creation, not the first request.
    app.state.route_policy = load_policy(settings.route_policy_file)
    app.state.rate_limiter = FixedWindowRateLimiter(
        sweep_interval_seconds=settings.rate_limit_sweep_seconds
    )

    # Last added runs first: request context wraps access control.
    app.add_middleware(AccessControlMiddleware, settings=settings)
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(session_router)
    app.include_router(billing_router)
    app.include_router(webhooks_router)
    app.include_router(pages_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Nothing here is module-global: two apps built in one process (as the tests do)
# share no limiter buckets, gates or engines.
