"""
letlog.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, DB sessions and the payments gateway.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from letlog.billing.gateway import CheckoutGateway
from letlog.settings import Settings


def settings_dep(request: Request) -> Settings:
    # The settings the app was built with, not a fresh env read.
    return request.app.state.settings


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def checkout_gateway(request: Request) -> CheckoutGateway:
    return request.app.state.checkout_gateway
