"""
letlog.access.gate

Per-request access evaluation.

Responsibilities:
- Resolve the session before any branching (always, even for unrestricted paths).
- Look up the role only when the decision depends on it.
- Apply the configured policy for an unreachable auth backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from letlog.access.classifier import classify
from letlog.access.decisions import AccessDecision, decide, needs_role
from letlog.access.policy import RoutePolicy
from letlog.auth.models import Identity
from letlog.auth.profiles import ProfileStore, resolve_role
from letlog.auth.session import (
    AuthBackend,
    AuthUnavailableError,
    CookieUpdate,
    SessionCredentials,
    SessionResult,
)
from letlog.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class GateOutcome:
    decision: AccessDecision | None
    session: SessionResult
    identity: Identity | None = None
    # True when the auth backend was unreachable and policy says reject.
    unavailable: bool = False

    @property
    def cookies(self) -> tuple[CookieUpdate, ...]:
        return self.session.cookies


class AccessGate:
    def __init__(
        self,
        *,
        policy: RoutePolicy,
        auth_backend: AuthBackend,
        profile_store: ProfileStore,
        unavailable_policy: Literal["anonymous", "reject"] = "anonymous",
    ) -> None:
        self.policy = policy
        self._auth = auth_backend
        self._profiles = profile_store
        self._unavailable_policy = unavailable_policy

    async def evaluate(self, *, path: str, credentials: SessionCredentials) -> GateOutcome:
        try:
            session = await self._auth.get_user(credentials)
        except AuthUnavailableError as e:
            log.warning("auth_unavailable", error=str(e), policy=self._unavailable_policy)
            if self._unavailable_policy == "reject":
                return GateOutcome(decision=None, session=SessionResult(None), unavailable=True)
            session = SessionResult(principal=None)

        classification = classify(path, self.policy)
        identity: Identity | None = None
        if session.principal is not None and needs_role(classification):
            identity = await resolve_role(self._profiles, session.principal)

        decision = decide(
            path=path,
            classification=classification,
            identity=identity,
            policy=self.policy,
        )
        return GateOutcome(decision=decision, session=session, identity=identity)


# --- Module Notes -----------------------------------------------------------
# The gate holds no per-request state; one instance serves the whole process.
