"""
letlog.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`).
- Define the closed set of roles and the default-role policy.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Role(enum.StrEnum):
    landlord = "landlord"
    tenant = "tenant"
    contractor = "contractor"


DEFAULT_ROLE = Role.landlord


def default_role(stored: str | Role | None) -> Role:
    """
    Map a stored role value onto a Role.

    Missing, empty, and unrecognised values all become `DEFAULT_ROLE`. This is
    the only place that policy is applied.
    """

    if not stored:
        return DEFAULT_ROLE
    try:
        return Role(stored)
    except ValueError:
        return DEFAULT_ROLE


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity, resolved per request and never persisted here.
    """

    subject: str
    email: str | None = None


@dataclass(frozen=True, slots=True)
class Identity:
    # A principal together with the role it was resolved to for this request.
    principal: Principal
    role: Role


# --- Module Notes -----------------------------------------------------------
# Keep these models minimal; they flow through middleware, routers and tests.
