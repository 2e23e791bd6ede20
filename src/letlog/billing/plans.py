"""
letlog.billing.plans

Pricing tiers. Landlords pay for basic or premium; tenants and contractors
use free tiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from letlog.settings import Settings

UNLIMITED = -1


@dataclass(frozen=True, slots=True)
class Plan:
    id: str
    name: str
    description: str
    monthly_price_gbp: Decimal
    price_id: str | None
    max_properties: int
    max_tenancies: int
    features: tuple[str, ...] = ()

    @property
    def purchasable(self) -> bool:
        return self.price_id is not None


def plan_catalog(settings: Settings) -> dict[str, Plan]:
    plans = (
        Plan(
            id="free",
            name="Tenant",
            description="Free for tenants",
            monthly_price_gbp=Decimal("0"),
            price_id=None,
            max_properties=0,
            max_tenancies=0,
            features=(
                "Report maintenance issues",
                "Access tenancy documents",
                "Track repair progress",
                "Leave reviews",
            ),
        ),
        Plan(
            id="contractor",
            name="Contractor",
            description="For tradespeople",
            monthly_price_gbp=Decimal("0"),
            price_id=None,
            max_properties=0,
            max_tenancies=0,
            features=(
                "Browse available jobs",
                "Submit quotes",
                "Build your reputation",
                "Verified badge (coming soon)",
            ),
        ),
        Plan(
            id="basic",
            name="Basic",
            description="For landlords with 1-3 properties",
            monthly_price_gbp=Decimal("4.99"),
            price_id=settings.basic_price_id,
            max_properties=3,
            max_tenancies=UNLIMITED,
            features=(
                "Up to 3 properties",
                "Unlimited tenancies",
                "Document storage",
                "Compliance reminders",
                "Issue tracking",
                "Email support",
            ),
        ),
        Plan(
            id="premium",
            name="Premium",
            description="For landlords with larger portfolios",
            monthly_price_gbp=Decimal("9.99"),
            price_id=settings.premium_price_id,
            max_properties=UNLIMITED,
            max_tenancies=UNLIMITED,
            features=(
                "Unlimited properties",
                "Unlimited tenancies",
                "Document storage",
                "Compliance reminders",
                "Issue tracking",
                "Contractor marketplace",
                "Priority support",
                "Analytics dashboard",
            ),
        ),
    )
    return {p.id: p for p in plans}


def get_plan(settings: Settings, plan_id: str | None) -> Plan | None:
    if not plan_id:
        return None
    return plan_catalog(settings).get(plan_id)


def paid_plans(settings: Settings) -> list[Plan]:
    return [p for p in plan_catalog(settings).values() if p.monthly_price_gbp > 0]


def plan_for_price(settings: Settings, price_id: str | None) -> str:
    """Map a provider price back to a plan id; unknown prices count as basic."""
    if price_id and price_id == settings.premium_price_id:
        return "premium"
    return "basic"
