"""
letlog.billing.gateway

Client boundary for the payments provider (Stripe).

Responsibilities:
- Create provider customers, subscription checkout sessions and billing
  portal sessions.
- Read back a subscription's price, status and period end for webhook sync.
- Go through the official `stripe` SDK (`StripeClient`, async methods).
- Surface provider failures as `PaymentsError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

import stripe

from letlog.settings import Settings


class PaymentsError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    customer_id: str
    price_id: str
    plan_id: str
    user_id: str
    success_url: str
    cancel_url: str
    trial_period_days: int


@dataclass(frozen=True, slots=True)
class SubscriptionSnapshot:
    id: str
    customer_id: str | None
    price_id: str | None
    status: str
    # Naive UTC, like the rest of the schema.
    current_period_end: datetime | None


class CheckoutGateway(Protocol):
    async def create_customer(self, *, email: str | None, user_id: str) -> str: ...

    async def create_checkout_session(self, req: CheckoutRequest) -> str: ...

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str: ...

    async def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot: ...


def _from_epoch(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=UTC).replace(tzinfo=None)


def subscription_snapshot(sub: Any) -> SubscriptionSnapshot:
    """Flatten a provider subscription object (or its webhook payload)."""
    items = (sub.get("items") or {}).get("data") or []
    first = items[0] if items else {}
    price = first.get("price") or {}
    # Newer API versions report the period end per item instead of per subscription.
    period_end = sub.get("current_period_end") or first.get("current_period_end")
    customer = sub.get("customer")
    if customer is not None and not isinstance(customer, str):
        customer = customer.get("id")
    return SubscriptionSnapshot(
        id=str(sub["id"]),
        customer_id=customer,
        price_id=price.get("id"),
        status=str(sub.get("status") or ""),
        current_period_end=_from_epoch(period_end),
    )


class StripeCheckoutGateway:
    def __init__(self, *, settings: Settings, client: stripe.StripeClient | None = None) -> None:
        self._settings = settings
        self._client = client

    def _stripe(self) -> stripe.StripeClient:
        if self._client is None:
            if not self._settings.payments_secret_key:
                raise PaymentsError("Payments secret key is not configured")
            self._client = stripe.StripeClient(self._settings.payments_secret_key)
        return self._client

    async def create_customer(self, *, email: str | None, user_id: str) -> str:
        params: dict[str, Any] = {"metadata": {"letlog_user_id": user_id}}
        if email:
            params["email"] = email
        try:
            customer = await self._stripe().v1.customers.create_async(params=params)
        except stripe.StripeError as e:
            raise PaymentsError(e.user_message or str(e)) from e
        return str(customer.id)

    async def create_checkout_session(self, req: CheckoutRequest) -> str:
        metadata = {"letlog_user_id": req.user_id, "plan_id": req.plan_id}
        params: dict[str, Any] = {
            "customer": req.customer_id,
            "mode": "subscription",
            "line_items": [{"price": req.price_id, "quantity": 1}],
            "success_url": req.success_url,
            "cancel_url": req.cancel_url,
            "metadata": metadata,
            "subscription_data": {
                "trial_period_days": req.trial_period_days,
                "metadata": metadata,
            },
        }
        try:
            session = await self._stripe().v1.checkout.sessions.create_async(params=params)
        except stripe.StripeError as e:
            raise PaymentsError(e.user_message or str(e)) from e
        return str(session.url)

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        params = {"customer": customer_id, "return_url": return_url}
        try:
            session = await self._stripe().v1.billing_portal.sessions.create_async(params=params)
        except stripe.StripeError as e:
            raise PaymentsError(e.user_message or str(e)) from e
        return str(session.url)

    async def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        try:
            sub = await self._stripe().v1.subscriptions.retrieve_async(subscription_id)
        except stripe.StripeError as e:
            raise PaymentsError(e.user_message or str(e)) from e
        return subscription_snapshot(sub)


# --- Module Notes -----------------------------------------------------------
# The SDK client is built on first use so an app without a secret key still
# starts; tests swap the whole gateway through `api.deps.checkout_gateway` or
# hand `StripeCheckoutGateway` a stand-in client.
