"""
letlog.api.routers.billing

Subscription checkout, billing portal and the public price list.

Responsibilities:
- List the paid plans with their prices and features.
- Admit a bounded number of attempts per client per window before doing any work.
- Resolve or create the caller's payments customer and store it on the profile.
- Create checkout / portal sessions and return their URLs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_502_BAD_GATEWAY

from letlog.api.deps import checkout_gateway, db_session, settings_dep
from letlog.auth.deps import get_principal
from letlog.auth.models import Principal
from letlog.billing.gateway import CheckoutGateway, CheckoutRequest, PaymentsError
from letlog.billing.plans import UNLIMITED, Plan, get_plan, paid_plans
from letlog.db.repositories.profiles import ProfileRepo
from letlog.observability.logging import get_logger
from letlog.ratelimit.deps import admit, limiter_from_app, rate_limited
from letlog.ratelimit.limiter import FixedWindowRateLimiter, RateLimitResult
from letlog.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["billing"])


class CheckoutBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str = Field(alias="planId", min_length=1, max_length=32)


class SessionUrlResponse(BaseModel):
    url: str


class PlanOut(BaseModel):
    id: str
    name: str
    description: str
    monthly_price_gbp: str
    max_properties: int | None
    max_tenancies: int | None
    features: list[str]
    purchasable: bool

    @classmethod
    def from_plan(cls, plan: Plan) -> PlanOut:
        return cls(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            monthly_price_gbp=str(plan.monthly_price_gbp),
            # None means unlimited.
            max_properties=None if plan.max_properties == UNLIMITED else plan.max_properties,
            max_tenancies=None if plan.max_tenancies == UNLIMITED else plan.max_tenancies,
            features=list(plan.features),
            purchasable=plan.purchasable,
        )


def checkout_admission(
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(limiter_from_app),
    settings: Settings = Depends(settings_dep),
) -> RateLimitResult:
    return admit(
        request,
        limiter,
        "checkout",
        limit=settings.checkout_rate_limit,
        window_seconds=settings.checkout_rate_window_seconds,
    )


@router.get("/plans", response_model=list[PlanOut])
async def list_paid_plans(settings: Settings = Depends(settings_dep)) -> list[PlanOut]:
    return [PlanOut.from_plan(p) for p in paid_plans(settings)]


@router.post(
    "/stripe/checkout",
    response_model=SessionUrlResponse,
    dependencies=[Depends(checkout_admission)],
)
async def create_checkout(
    request: Request,
    body: CheckoutBody,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    gateway: CheckoutGateway = Depends(checkout_gateway),
) -> SessionUrlResponse:
    plan = get_plan(settings, body.plan_id)
    if plan is None or not plan.purchasable:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Invalid plan")

    profiles = ProfileRepo(session)
    profile = await profiles.get(principal.subject)
    customer_id = profile.stripe_customer_id if profile else None
    origin = str(request.base_url).rstrip("/")

    try:
        if not customer_id:
            customer_id = await gateway.create_customer(
                email=principal.email, user_id=principal.subject
            )
            await profiles.set_stripe_customer_id(
                profile_id=principal.subject, customer_id=customer_id
            )
            await session.commit()

        url = await gateway.create_checkout_session(
            CheckoutRequest(
                customer_id=customer_id,
                price_id=str(plan.price_id),
                plan_id=plan.id,
                user_id=principal.subject,
                success_url=f"{origin}/dashboard?checkout=success",
                cancel_url=f"{origin}/pricing?checkout=cancelled",
                trial_period_days=settings.trial_period_days,
            )
        )
    except PaymentsError as e:
        log.error("checkout_failed", subject=principal.subject, plan=plan.id, error=str(e))
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    log.info("checkout_created", subject=principal.subject, plan=plan.id)
    return SessionUrlResponse(url=url)


@router.post(
    "/stripe/portal",
    response_model=SessionUrlResponse,
    dependencies=[Depends(rate_limited("portal", limit=10, window_seconds=60))],
)
async def create_portal(
    request: Request,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    gateway: CheckoutGateway = Depends(checkout_gateway),
) -> SessionUrlResponse:
    profile = await ProfileRepo(session).get(principal.subject)
    if profile is None or not profile.stripe_customer_id:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="No subscription found")

    return_url = f"{str(request.base_url).rstrip('/')}/settings"
    try:
        url = await gateway.create_portal_session(
            customer_id=profile.stripe_customer_id, return_url=return_url
        )
    except PaymentsError as e:
        log.error("portal_failed", subject=principal.subject, error=str(e))
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    return SessionUrlResponse(url=url)


# --- Module Notes -----------------------------------------------------------
# Rate-limit dependencies are route-level so they resolve before the principal,
# the DB session and the body-driven work; a rejected call has no side effects.
