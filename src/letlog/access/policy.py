"""
letlog.access.policy

Route policy table.

Responsibilities:
- Represent access rules as typed, immutable data (one variant per rule kind).
- Provide the built-in LetLog table and role home pages.
- Optionally load a replacement table from a JSON file at startup.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from letlog.auth.models import Role

GENERIC_DENIAL = "You do not have access to this page"


def exclusive_reason(role: Role) -> str:
    return f"This page is for {role.value}s only"


@dataclass(frozen=True, slots=True)
class AuthPageRule:
    # Anonymous-only pages; signed-in callers are sent to their home page.
    prefix: str


@dataclass(frozen=True, slots=True)
class ProtectedRule:
    prefix: str


@dataclass(frozen=True, slots=True)
class ExclusiveRoleRule:
    prefix: str
    role: Role
    reason: str = ""

    def __post_init__(self) -> None:
        if not self.reason:
            object.__setattr__(self, "reason", exclusive_reason(self.role))


@dataclass(frozen=True, slots=True)
class RoleListRule:
    prefix: str
    roles: frozenset[Role]


RouteRule = AuthPageRule | ProtectedRule | ExclusiveRoleRule | RoleListRule


@dataclass(frozen=True, slots=True)
class RoutePolicy:
    rules: tuple[RouteRule, ...]
    role_homes: Mapping[Role, str] = field(default_factory=dict)
    login_path: str = "/login"

    def __post_init__(self) -> None:
        # Read-only copy: the policy is shared by every request.
        object.__setattr__(self, "role_homes", MappingProxyType(dict(self.role_homes)))

    def home_for(self, role: Role) -> str:
        return self.role_homes.get(role, "/dashboard")


DEFAULT_POLICY = RoutePolicy(
    rules=(
        ExclusiveRoleRule("/properties", Role.landlord),
        ExclusiveRoleRule("/tenancies", Role.landlord),
        ExclusiveRoleRule("/compliance", Role.landlord),
        ExclusiveRoleRule("/invite", Role.landlord),
        ExclusiveRoleRule("/quotes", Role.contractor),
        # Landlords post tenders, contractors browse them.
        RoleListRule("/tenders", frozenset({Role.landlord, Role.contractor})),
        RoleListRule("/issues", frozenset({Role.landlord, Role.tenant})),
        ProtectedRule("/dashboard"),
        ProtectedRule("/calendar"),
        ProtectedRule("/settings"),
        ProtectedRule("/reviews"),
        AuthPageRule("/login"),
        AuthPageRule("/signup"),
    ),
    role_homes={
        Role.landlord: "/dashboard",
        Role.tenant: "/dashboard",
        Role.contractor: "/tenders",
    },
    login_path="/login",
)


# --- File format ---------------------------------------------------------------

_Prefix = Annotated[str, Field(pattern=r"^/")]


class _AuthEntry(BaseModel):
    kind: Literal["auth"]
    prefix: _Prefix


class _ProtectedEntry(BaseModel):
    kind: Literal["protected"]
    prefix: _Prefix


class _ExclusiveEntry(BaseModel):
    kind: Literal["exclusive"]
    prefix: _Prefix
    role: Role
    reason: str | None = None


class _RolesEntry(BaseModel):
    kind: Literal["roles"]
    prefix: _Prefix
    roles: list[Role] = Field(min_length=1)


class PolicyFile(BaseModel):
    login_path: _Prefix = "/login"
    role_homes: dict[Role, _Prefix]
    rules: list[
        Annotated[
            _AuthEntry | _ProtectedEntry | _ExclusiveEntry | _RolesEntry,
            Field(discriminator="kind"),
        ]
    ]

    def to_policy(self) -> RoutePolicy:
        rules: list[RouteRule] = []
        for entry in self.rules:
            match entry:
                case _AuthEntry():
                    rules.append(AuthPageRule(entry.prefix))
                case _ProtectedEntry():
                    rules.append(ProtectedRule(entry.prefix))
                case _ExclusiveEntry():
                    rules.append(ExclusiveRoleRule(entry.prefix, entry.role, entry.reason or ""))
                case _RolesEntry():
                    rules.append(RoleListRule(entry.prefix, frozenset(entry.roles)))
        return RoutePolicy(
            rules=tuple(rules), role_homes=dict(self.role_homes), login_path=self.login_path
        )


def load_policy(path: str | None) -> RoutePolicy:
    if not path:
        return DEFAULT_POLICY
    return PolicyFile.model_validate_json(Path(path).read_text(encoding="utf-8")).to_policy()


# --- Module Notes -----------------------------------------------------------
# The table is data: adding a section means adding a rule, not touching the
# middleware. Exclusive and role-list rules are never configured for the same prefix.
