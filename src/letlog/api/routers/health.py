"""
letlog.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Liveness probe (`/healthz`).
- Readiness probe (`/readyz`) with DB connectivity validation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from letlog.api.deps import db_session

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    # The role lookup behind access control needs the DB.
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}
