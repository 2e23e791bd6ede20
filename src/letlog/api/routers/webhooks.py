"""
letlog.api.routers.webhooks

Inbound payments provider events.

Responsibilities:
- Reject unsigned or forged deliveries before touching the database.
- Hand verified events to `SubscriptionSync` and commit its writes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from letlog.api.deps import checkout_gateway, db_session, settings_dep
from letlog.billing.gateway import CheckoutGateway, PaymentsError
from letlog.billing.webhooks import SubscriptionSync, WebhookSignatureError, construct_event
from letlog.db.repositories.profiles import ProfileRepo
from letlog.observability.logging import get_logger
from letlog.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["billing"])


@router.post("/webhook")
async def receive_event(
    request: Request,
    settings: Settings = Depends(settings_dep),
    session: AsyncSession = Depends(db_session),
    gateway: CheckoutGateway = Depends(checkout_gateway),
) -> dict[str, bool]:
    if not settings.payments_webhook_secret:
        log.error("webhook_secret_missing")
        raise HTTPException(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook secret not configured"
        )

    payload = await request.body()
    try:
        event = construct_event(
            payload=payload,
            signature=request.headers.get("stripe-signature"),
            secret=settings.payments_webhook_secret,
        )
    except WebhookSignatureError as e:
        log.warning("webhook_signature_rejected", error=str(e))
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Invalid signature") from e

    sync = SubscriptionSync(profiles=ProfileRepo(session), gateway=gateway, settings=settings)
    try:
        handled = await sync.apply(event)
    except PaymentsError as e:
        # Non-2xx makes the provider redeliver later.
        log.error("webhook_handler_failed", event_type=event["type"], error=str(e))
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail="Webhook handler failed") from e
    if handled:
        await session.commit()
        log.info("webhook_event_applied", event_type=event["type"], event_id=event["id"])
    return {"received": True}
