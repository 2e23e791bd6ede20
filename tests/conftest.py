"""
tests.conftest

Shared fixtures: a test-mode app with its own SQLite file, run through its
lifespan, and an httpx client bound to it in-process.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from letlog.api.app import create_app
from letlog.settings import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'letlog.db'}",
        basic_price_id="price_basic",
        premium_price_id="price_premium",
        payments_secret_key="sk_test_dummy",
        payments_webhook_secret="whsec_test",
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not run the lifespan; drive it here.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def sign_in(client: httpx.AsyncClient):
    async def _sign_in(
        subject: str, *, role: str | None = None, email: str | None = None
    ) -> httpx.Response:
        body: dict[str, str] = {"subject": subject}
        if role is not None:
            body["role"] = role
        if email is not None:
            body["email"] = email
        r = await client.post("/v1/dev/session", json=body)
        assert r.status_code == 200, r.text
        return r

    return _sign_in
