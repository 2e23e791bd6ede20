"""
letlog.billing.webhooks

Payments provider webhook verification and subscription sync.

Responsibilities:
- Verify the `Stripe-Signature` header and parse the event with the SDK.
- Apply checkout completion and subscription update/deletion events to the
  profile's subscription columns.
- Ignore (but log) event types the gateway does not track.
"""

from __future__ import annotations

from typing import Any

import stripe

from letlog.billing.gateway import CheckoutGateway, subscription_snapshot
from letlog.billing.plans import plan_for_price
from letlog.db.repositories.profiles import ProfileRepo
from letlog.observability.logging import get_logger
from letlog.settings import Settings

log = get_logger(__name__)

TRACKED_STATUSES = frozenset({"active", "past_due", "canceled"})


class WebhookSignatureError(Exception):
    pass


def construct_event(*, payload: bytes, signature: str | None, secret: str) -> stripe.Event:
    if not signature:
        raise WebhookSignatureError("Missing signature header")
    try:
        return stripe.Webhook.construct_event(payload=payload, sig_header=signature, secret=secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise WebhookSignatureError(str(e)) from e


def subscription_status(raw: str | None) -> str:
    # Trial, incomplete and unpaid states are all reported as inactive.
    return raw if raw in TRACKED_STATUSES else "inactive"


class SubscriptionSync:
    def __init__(
        self, *, profiles: ProfileRepo, gateway: CheckoutGateway, settings: Settings
    ) -> None:
        self._profiles = profiles
        self._gateway = gateway
        self._settings = settings

    async def apply(self, event: Any) -> bool:
        """Returns False for event types that are not tracked."""
        kind = event["type"]
        obj = event["data"]["object"]
        if kind == "checkout.session.completed":
            await self._checkout_completed(obj)
        elif kind == "customer.subscription.updated":
            await self._subscription_updated(obj)
        elif kind == "customer.subscription.deleted":
            await self._subscription_deleted(obj)
        else:
            log.info("webhook_event_ignored", event_type=kind)
            return False
        return True

    async def _checkout_completed(self, session: Any) -> None:
        user_id = (session.get("metadata") or {}).get("letlog_user_id")
        subscription_id = session.get("subscription")
        if not user_id:
            log.error("webhook_checkout_without_user", session_id=session.get("id"))
            return
        if not subscription_id:
            log.warning("webhook_checkout_without_subscription", subscription_owner=user_id)
            return

        sub = await self._gateway.retrieve_subscription(str(subscription_id))
        found = await self._profiles.record_subscription(
            profile_id=user_id,
            customer_id=session.get("customer"),
            subscription_id=sub.id,
            plan=plan_for_price(self._settings, sub.price_id),
            status="active",
            period_end=sub.current_period_end,
        )
        if not found:
            log.warning("webhook_profile_missing", subscription_owner=user_id)

    async def _subscription_updated(self, payload: Any) -> None:
        sub = subscription_snapshot(payload)
        if not sub.customer_id:
            return
        found = await self._profiles.update_subscription_for_customer(
            customer_id=sub.customer_id,
            plan=plan_for_price(self._settings, sub.price_id),
            status=subscription_status(sub.status),
            period_end=sub.current_period_end,
        )
        if not found:
            log.warning("webhook_customer_unknown", customer_id=sub.customer_id)

    async def _subscription_deleted(self, payload: Any) -> None:
        sub = subscription_snapshot(payload)
        if not sub.customer_id:
            return
        found = await self._profiles.update_subscription_for_customer(
            customer_id=sub.customer_id, plan="free", status="canceled", period_end=None
        )
        if not found:
            log.warning("webhook_customer_unknown", customer_id=sub.customer_id)


# --- Module Notes -----------------------------------------------------------
# Stripe redelivers an event until it gets a 2xx; every handler here writes
# absolute state so a redelivery is harmless.
