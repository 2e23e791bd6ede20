from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_404_NOT_FOUND

from letlog.api.deps import db_session, settings_dep
from letlog.auth.models import Principal, Role, default_role
from letlog.auth.session import apply_cookies, issue_session_cookies
from letlog.db.repositories.profiles import ProfileRepo
from letlog.settings import Settings

router = APIRouter(prefix="/v1/dev", tags=["dev"])


class DevSessionRequest(BaseModel):
    subject: str = Field(min_length=1, max_length=64)
    email: str | None = Field(default=None, max_length=320)
    full_name: str | None = Field(default=None, max_length=256)
    # Omitted: keep whatever the profile already stores.
    role: Role | None = None


@router.post("/session")
async def start_dev_session(
    body: DevSessionRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> JSONResponse:
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")

    profile = await ProfileRepo(session).upsert(
        profile_id=body.subject,
        email=body.email,
        full_name=body.full_name,
        role=body.role,
    )
    await session.commit()

    principal = Principal(subject=body.subject, email=body.email)
    response = JSONResponse(
        {"subject": principal.subject, "role": default_role(profile.role).value}
    )
    apply_cookies(response, issue_session_cookies(principal, settings), settings)
    return response
