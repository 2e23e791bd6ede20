"""
letlog.access.decisions

Access decision engine.

Responsibilities:
- Combine a route classification with the caller's identity (or none) into
  exactly one outcome: allow, or a redirect with its query parameters.
- Never raise for policy outcomes; denials are redirects, not 401/403.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from letlog.access.classifier import RouteClassification
from letlog.access.policy import GENERIC_DENIAL, RoutePolicy
from letlog.auth.models import Identity


@dataclass(frozen=True, slots=True)
class Allow:
    pass


@dataclass(frozen=True, slots=True)
class Redirect:
    path: str
    params: dict[str, str] = field(default_factory=dict)
    # Short machine-readable label for logs.
    reason: str = ""


AccessDecision = Allow | Redirect

ALLOW = Allow()


def needs_role(classification: RouteClassification) -> bool:
    return classification.is_protected or classification.is_auth_page


def decide(
    *,
    path: str,
    classification: RouteClassification,
    identity: Identity | None,
    policy: RoutePolicy,
) -> AccessDecision:
    if identity is None:
        if classification.is_protected:
            return Redirect(policy.login_path, {"redirect": path}, reason="login_required")
        return ALLOW

    home = policy.home_for(identity.role)

    if classification.is_auth_page:
        return Redirect(home, reason="already_signed_in")

    if classification.is_protected:
        if (
            classification.exclusive_role is not None
            and identity.role != classification.exclusive_role
        ):
            message = classification.exclusive_reason or GENERIC_DENIAL
            return Redirect(home, {"error": message}, reason="role_exclusive")
        if (
            classification.allowed_roles is not None
            and identity.role not in classification.allowed_roles
        ):
            return Redirect(home, {"error": GENERIC_DENIAL}, reason="role_not_allowed")

    return ALLOW


# --- Module Notes -----------------------------------------------------------
# Exclusive checks run before allow-list checks only because the table never
# sets both on one prefix; order does not resolve conflicts.
