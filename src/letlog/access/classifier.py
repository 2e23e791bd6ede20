"""
letlog.access.classifier

Pure route classification against a `RoutePolicy`.
"""

from __future__ import annotations

from dataclasses import dataclass

from letlog.access.policy import (
    AuthPageRule,
    ExclusiveRoleRule,
    RoleListRule,
    RoutePolicy,
    RouteRule,
)
from letlog.auth.models import Role


@dataclass(frozen=True, slots=True)
class RouteClassification:
    is_protected: bool = False
    is_auth_page: bool = False
    exclusive_role: Role | None = None
    exclusive_reason: str | None = None
    allowed_roles: frozenset[Role] | None = None


UNRESTRICTED = RouteClassification()


def path_matches(path: str, prefix: str) -> bool:
    # Segment-boundary match: "/issues2" is not under "/issues".
    return path == prefix or path.startswith(prefix + "/")


def classify(path: str, policy: RoutePolicy) -> RouteClassification:
    matched: list[RouteRule] = [r for r in policy.rules if path_matches(path, r.prefix)]
    if not matched:
        return UNRESTRICTED

    is_auth_page = False
    is_protected = False
    exclusive: ExclusiveRoleRule | None = None
    allowed: frozenset[Role] | None = None
    for rule in matched:
        if isinstance(rule, AuthPageRule):
            is_auth_page = True
            continue
        is_protected = True
        if isinstance(rule, ExclusiveRoleRule) and exclusive is None:
            exclusive = rule
        elif isinstance(rule, RoleListRule) and allowed is None:
            allowed = rule.roles

    return RouteClassification(
        is_protected=is_protected,
        is_auth_page=is_auth_page,
        exclusive_role=exclusive.role if exclusive else None,
        exclusive_reason=exclusive.reason if exclusive else None,
        allowed_roles=allowed,
    )
