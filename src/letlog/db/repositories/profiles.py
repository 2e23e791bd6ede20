"""
letlog.db.repositories.profiles

Repository for `Profile` rows.

Responsibilities:
- Read a profile's role and billing customer id.
- Create/update profiles (dev sign-in) and record provider customer ids.
- Record subscription state pushed by the payments webhook.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from letlog.auth.models import Role
from letlog.db.models import Profile


class ProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, profile_id: str) -> Profile | None:
        return await self._session.get(Profile, profile_id)

    async def role_of(self, profile_id: str) -> Role | None:
        stmt = select(Profile.role).where(Profile.id == profile_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def upsert(
        self,
        *,
        profile_id: str,
        email: str | None = None,
        full_name: str | None = None,
        role: Role | None = None,
    ) -> Profile:
        profile = await self._session.get(Profile, profile_id)
        if profile is None:
            profile = Profile(id=profile_id)
            self._session.add(profile)
        if email is not None:
            profile.email = email
        if full_name is not None:
            profile.full_name = full_name
        if role is not None:
            profile.role = role
        await self._session.flush()
        return profile

    async def set_stripe_customer_id(self, *, profile_id: str, customer_id: str) -> None:
        profile = await self._session.get(Profile, profile_id, with_for_update=True)
        if profile is None:
            profile = Profile(id=profile_id)
            self._session.add(profile)
        profile.stripe_customer_id = customer_id
        await self._session.flush()

    async def get_by_stripe_customer(self, customer_id: str) -> Profile | None:
        stmt = select(Profile).where(Profile.stripe_customer_id == customer_id)
        return (await self._session.execute(stmt)).scalars().first()

    async def record_subscription(
        self,
        *,
        profile_id: str,
        customer_id: str | None,
        subscription_id: str | None,
        plan: str,
        status: str,
        period_end: datetime | None,
    ) -> bool:
        profile = await self._session.get(Profile, profile_id)
        if profile is None:
            return False
        if customer_id:
            profile.stripe_customer_id = customer_id
        if subscription_id:
            profile.stripe_subscription_id = subscription_id
        profile.subscription_plan = plan
        profile.subscription_status = status
        profile.subscription_period_end = period_end
        await self._session.flush()
        return True

    async def update_subscription_for_customer(
        self,
        *,
        customer_id: str,
        plan: str,
        status: str,
        period_end: datetime | None,
    ) -> bool:
        profile = await self.get_by_stripe_customer(customer_id)
        if profile is None:
            return False
        return await self.record_subscription(
            profile_id=profile.id,
            customer_id=None,
            subscription_id=None,
            plan=plan,
            status=status,
            period_end=period_end,
        )
