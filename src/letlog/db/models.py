"""
letlog.db.models

Persistence schema owned by the gateway.

Responsibilities:
- Define the `Profile` row that carries a principal's role, billing customer
  and subscription state.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from letlog.auth.models import Role
from letlog.db.base import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class Profile(Base):
    __tablename__ = "profiles"

    # Same value as the session token subject.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(256), nullable=True)

    # Nullable on purpose: a missing role resolves to the default role at read time.
    role: Mapped[Role | None] = mapped_column(Enum(Role), nullable=True)

    stripe_customer_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    # Written only by the payments webhook.
    subscription_plan: Mapped[str | None] = mapped_column(String(32), nullable=True)
    subscription_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    subscription_period_end: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


# --- Module Notes -----------------------------------------------------------
# Properties, tenancies, issues and the rest of the CRUD schema belong to the
# application tier and are not modelled here.
