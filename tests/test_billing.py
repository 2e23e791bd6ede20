from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
import stripe

from letlog.api.deps import checkout_gateway
from letlog.billing.gateway import (
    CheckoutRequest,
    PaymentsError,
    StripeCheckoutGateway,
    SubscriptionSnapshot,
)
from letlog.billing.plans import get_plan, paid_plans, plan_for_price
from letlog.db.repositories.profiles import ProfileRepo
from letlog.settings import Settings


class FakeGateway:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.customers: list[str] = []
        self.sessions: list[CheckoutRequest] = []

    async def create_customer(self, *, email: str | None, user_id: str) -> str:
        self.customers.append(user_id)
        return f"cus_{user_id}"

    async def create_checkout_session(self, req: CheckoutRequest) -> str:
        if self.fail:
            raise PaymentsError("card network down")
        self.sessions.append(req)
        return f"https://pay.example/session/{len(self.sessions)}"

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        return f"https://pay.example/portal/{customer_id}"

    async def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        return SubscriptionSnapshot(
            id=subscription_id,
            customer_id=None,
            price_id=None,
            status="active",
            current_period_end=None,
        )


@pytest.fixture
def gateway(app) -> FakeGateway:
    fake = FakeGateway()
    app.dependency_overrides[checkout_gateway] = lambda: fake
    return fake


@pytest.mark.asyncio
async def test_checkout_requires_session(client: httpx.AsyncClient, gateway: FakeGateway) -> None:
    r = await client.post("/api/stripe/checkout", json={"planId": "basic"})
    assert r.status_code == 401
    assert gateway.customers == []


@pytest.mark.asyncio
async def test_checkout_rejects_unknown_or_free_plan(client: httpx.AsyncClient, sign_in, gateway) -> None:
    await sign_in("landlord-1", role="landlord")
    for plan in ("gold", "free", "contractor"):
        r = await client.post("/api/stripe/checkout", json={"planId": plan})
        assert r.status_code == 400
        assert r.json()["detail"] == "Invalid plan"


@pytest.mark.asyncio
async def test_checkout_creates_customer_once(app, client: httpx.AsyncClient, sign_in, gateway) -> None:
    await sign_in("landlord-2", role="landlord", email="l2@example.com")

    r = await client.post("/api/stripe/checkout", json={"planId": "premium"})
    assert r.status_code == 200
    assert r.json() == {"url": "https://pay.example/session/1"}

    r = await client.post("/api/stripe/checkout", json={"planId": "basic"})
    assert r.status_code == 200

    assert gateway.customers == ["landlord-2"]
    first, second = gateway.sessions
    assert first.price_id == "price_premium"
    assert second.price_id == "price_basic"
    assert first.customer_id == "cus_landlord-2"
    assert first.trial_period_days == 14
    assert first.success_url == "http://test/dashboard?checkout=success"

    async with app.state.sessionmaker() as session:
        profile = await ProfileRepo(session).get("landlord-2")
    assert profile is not None
    assert profile.stripe_customer_id == "cus_landlord-2"


@pytest.mark.asyncio
async def test_checkout_provider_failure_is_bad_gateway(client: httpx.AsyncClient, sign_in, gateway) -> None:
    gateway.fail = True
    await sign_in("landlord-3", role="landlord")
    r = await client.post("/api/stripe/checkout", json={"planId": "basic"})
    assert r.status_code == 502


@pytest.mark.asyncio
async def test_checkout_is_rate_limited_before_any_work(
    client: httpx.AsyncClient, gateway: FakeGateway
) -> None:
    headers = {"x-forwarded-for": "203.0.113.50"}
    for _ in range(5):
        r = await client.post("/api/stripe/checkout", json={"planId": "basic"}, headers=headers)
        assert r.status_code == 401

    r = await client.post("/api/stripe/checkout", json={"planId": "basic"}, headers=headers)
    assert r.status_code == 429
    assert r.json() == {"error": "Too many requests. Please try again later."}
    assert r.headers["x-ratelimit-remaining"] == "0"
    assert 0 <= int(r.headers["retry-after"]) <= 60

    # Another client still has its own budget.
    r = await client.post(
        "/api/stripe/checkout", json={"planId": "basic"}, headers={"x-forwarded-for": "203.0.113.51"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_portal_needs_existing_customer(client: httpx.AsyncClient, sign_in, gateway) -> None:
    await sign_in("landlord-4", role="landlord")
    r = await client.post("/api/stripe/portal")
    assert r.status_code == 400

    await client.post("/api/stripe/checkout", json={"planId": "basic"})
    r = await client.post("/api/stripe/portal")
    assert r.status_code == 200
    assert r.json() == {"url": "https://pay.example/portal/cus_landlord-4"}


def test_plan_catalog_price_ids_come_from_settings() -> None:
    settings = Settings(env="test", basic_price_id="price_b")
    assert get_plan(settings, "basic").price_id == "price_b"
    assert get_plan(settings, "premium").price_id is None
    assert get_plan(settings, "free").price_id is None
    assert get_plan(settings, None) is None


class _Recorder:
    def __init__(self, result: Any = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.calls.append((args, kwargs))
        if self.error is not None:
            raise self.error
        return self.result


def _sdk_client(**overrides: _Recorder) -> SimpleNamespace:
    calls = {
        "customers": _Recorder(SimpleNamespace(id="cus_1")),
        "checkout": _Recorder(SimpleNamespace(url="https://checkout.example/s/1")),
        "portal": _Recorder(SimpleNamespace(url="https://billing.example/p/1")),
        "subscriptions": _Recorder(
            {
                "id": "sub_1",
                "customer": "cus_1",
                "status": "trialing",
                "items": {
                    "data": [{"price": {"id": "price_premium"}, "current_period_end": 1767225600}]
                },
            }
        ),
    }
    calls.update(overrides)
    v1 = SimpleNamespace(
        customers=SimpleNamespace(create_async=calls["customers"]),
        checkout=SimpleNamespace(sessions=SimpleNamespace(create_async=calls["checkout"])),
        billing_portal=SimpleNamespace(sessions=SimpleNamespace(create_async=calls["portal"])),
        subscriptions=SimpleNamespace(retrieve_async=calls["subscriptions"]),
    )
    return SimpleNamespace(v1=v1, calls=calls)


@pytest.mark.asyncio
async def test_stripe_gateway_sends_subscription_checkout_params() -> None:
    client = _sdk_client()
    gw = StripeCheckoutGateway(settings=Settings(env="test"), client=client)

    assert await gw.create_customer(email="a@example.com", user_id="u1") == "cus_1"
    url = await gw.create_checkout_session(
        CheckoutRequest(
            customer_id="cus_1",
            price_id="price_basic",
            plan_id="basic",
            user_id="u1",
            success_url="https://app/ok",
            cancel_url="https://app/cancel",
            trial_period_days=14,
        )
    )
    assert url == "https://checkout.example/s/1"

    _, customer_kwargs = client.calls["customers"].calls[0]
    assert customer_kwargs["params"] == {
        "email": "a@example.com",
        "metadata": {"letlog_user_id": "u1"},
    }
    _, checkout_kwargs = client.calls["checkout"].calls[0]
    params = checkout_kwargs["params"]
    assert params["mode"] == "subscription"
    assert params["line_items"] == [{"price": "price_basic", "quantity": 1}]
    assert params["subscription_data"]["trial_period_days"] == 14
    assert params["metadata"] == {"letlog_user_id": "u1", "plan_id": "basic"}


@pytest.mark.asyncio
async def test_stripe_gateway_reads_subscription_snapshot() -> None:
    client = _sdk_client()
    gw = StripeCheckoutGateway(settings=Settings(env="test"), client=client)

    sub = await gw.retrieve_subscription("sub_1")

    assert client.calls["subscriptions"].calls[0][0] == ("sub_1",)
    assert sub.id == "sub_1"
    assert sub.customer_id == "cus_1"
    assert sub.price_id == "price_premium"
    assert sub.current_period_end == datetime(2026, 1, 1)


@pytest.mark.asyncio
async def test_stripe_gateway_maps_sdk_errors() -> None:
    declined = stripe.CardError("Your card was declined.", param=None, code="card_declined")
    client = _sdk_client(customers=_Recorder(error=declined), portal=_Recorder(error=declined))
    gw = StripeCheckoutGateway(settings=Settings(env="test"), client=client)

    with pytest.raises(PaymentsError, match="declined"):
        await gw.create_customer(email=None, user_id="u1")
    with pytest.raises(PaymentsError, match="declined"):
        await gw.create_portal_session(customer_id="cus_1", return_url="https://app/settings")


@pytest.mark.asyncio
async def test_stripe_gateway_without_secret_key_fails_before_calling_out() -> None:
    gw = StripeCheckoutGateway(settings=Settings(env="test", payments_secret_key=""))
    with pytest.raises(PaymentsError, match="not configured"):
        await gw.create_customer(email=None, user_id="u1")


@pytest.mark.asyncio
async def test_plans_endpoint_lists_paid_plans_only(client: httpx.AsyncClient) -> None:
    r = await client.get("/api/plans")
    assert r.status_code == 200
    plans = {p["id"]: p for p in r.json()}

    assert set(plans) == {"basic", "premium"}
    assert plans["basic"]["monthly_price_gbp"] == "4.99"
    assert plans["basic"]["max_properties"] == 3
    assert plans["premium"]["max_properties"] is None
    assert plans["premium"]["purchasable"] is True
    assert "Contractor marketplace" in plans["premium"]["features"]


def test_contractor_plan_is_free_and_not_purchasable() -> None:
    settings = Settings(env="test", basic_price_id="price_b", premium_price_id="price_p")
    plan = get_plan(settings, "contractor")

    assert plan is not None
    assert plan.monthly_price_gbp == 0
    assert not plan.purchasable
    assert "Submit quotes" in plan.features
    assert [p.id for p in paid_plans(settings)] == ["basic", "premium"]


def test_plan_for_price() -> None:
    settings = Settings(env="test", basic_price_id="price_b", premium_price_id="price_p")
    assert plan_for_price(settings, "price_p") == "premium"
    assert plan_for_price(settings, "price_b") == "basic"
    assert plan_for_price(settings, "price_unknown") == "basic"
    assert plan_for_price(settings, None) == "basic"
