"""
letlog.api.routers.pages

Landing endpoints for the gated sections.

Responsibilities:
- Give every policy destination (role homes, login, each section) a response,
  so redirects issued by the access middleware land somewhere real.
- Echo the `error` / `redirect` query the middleware attached.
- Describe the navigation visible to the caller's role.

Rendering the actual pages happens in the web tier; these endpoints return JSON.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends

from letlog.auth.deps import optional_identity
from letlog.auth.models import Identity, Role

router = APIRouter(tags=["pages"])

_ALL = frozenset(Role)


@dataclass(frozen=True, slots=True)
class NavItem:
    href: str
    label: str
    roles: frozenset[Role]


NAVIGATION: tuple[NavItem, ...] = (
    NavItem("/dashboard", "Dashboard", _ALL),
    NavItem("/properties", "Properties", frozenset({Role.landlord})),
    NavItem("/tenancies", "Tenancies", frozenset({Role.landlord})),
    NavItem("/issues", "Issues", frozenset({Role.landlord, Role.tenant})),
    NavItem("/tenders", "Tenders", frozenset({Role.landlord, Role.contractor})),
    NavItem("/quotes", "My Quotes", frozenset({Role.contractor})),
    NavItem("/compliance", "Compliance", frozenset({Role.landlord})),
    NavItem("/reviews", "Reviews", _ALL),
    NavItem("/calendar", "Calendar", _ALL),
    NavItem("/settings", "Settings", _ALL),
)


def navigation_for(role: Role) -> list[dict[str, str]]:
    return [{"href": i.href, "label": i.label} for i in NAVIGATION if role in i.roles]


def _section(page: str):
    async def view(
        error: str | None = None,
        identity: Identity | None = Depends(optional_identity),
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"page": page}
        if identity is not None:
            body["role"] = identity.role.value
            body["nav"] = navigation_for(identity.role)
        if error:
            body["error"] = error
        return body

    view.__name__ = f"{page}_page"
    return view


for _page in (
    "dashboard",
    "properties",
    "tenancies",
    "compliance",
    "quotes",
    "tenders",
    "issues",
    "calendar",
    "settings",
    "reviews",
):
    router.add_api_route(f"/{_page}", _section(_page), methods=["GET"])


@router.get("/invite/{token}")
async def invite_page(
    token: str, identity: Identity | None = Depends(optional_identity)
) -> dict[str, Any]:
    body: dict[str, Any] = {"page": "invite", "token": token}
    if identity is not None:
        body["role"] = identity.role.value
    return body


@router.get("/login")
async def login_page(redirect: str | None = None) -> dict[str, Any]:
    # Only same-site paths are honoured as a post-login destination.
    if not redirect or not redirect.startswith("/") or redirect.startswith("//"):
        redirect = "/dashboard"
    return {"page": "login", "redirect": redirect}


@router.get("/signup")
async def signup_page() -> dict[str, Any]:
    return {"page": "signup", "roles": [r.value for r in Role]}


# --- Module Notes -----------------------------------------------------------
# NAVIGATION mirrors the route policy table; a section hidden here is also
# refused by the middleware.
