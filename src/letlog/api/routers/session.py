"""
letlog.api.routers.session

Session endpoints shared by every role.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from letlog.api.deps import settings_dep
from letlog.auth.deps import get_principal
from letlog.auth.models import Principal
from letlog.auth.session import apply_cookies, clear_session_cookies
from letlog.settings import Settings

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me")
async def whoami(principal: Principal = Depends(get_principal)) -> dict[str, str | None]:
    return {"subject": principal.subject, "email": principal.email}


@router.post("/signout")
async def sign_out(settings: Settings = Depends(settings_dep)) -> JSONResponse:
    # Signing out without a session is not an error.
    response = JSONResponse({"status": "signed_out"})
    apply_cookies(response, clear_session_cookies(settings), settings)
    return response
