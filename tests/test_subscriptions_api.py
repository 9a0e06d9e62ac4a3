from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.api.v1.routers.payments import get_payments_config
from app.db.session import get_db
from app.main import app
from app.services.subscriptions.activator import SubscriptionActivator


def _auth(user_id, secret="test-jwt-secret", audience="authenticated"):
    now = datetime.now(tz=timezone.utc)
    token = jwt.encode(
        {"sub": user_id, "aud": audience, "iat": now, "exp": now + timedelta(hours=1)},
        secret,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session_factory, config):
    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_payments_config] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_plans_are_public_and_priced(client, plans):
    res = client.get("/api/v1/subscriptions/plans")
    assert res.status_code == 200
    body = res.json()
    assert [p["name"] for p in body] == ["Free", "Pro", "Business"]
    pro = body[1]
    assert pro["price_minor"] == 2999
    assert pro["price_display"] == "₹29.99"
    assert pro["job_limit"] == 10


def test_me_requires_token(client, profile):
    res = client.get("/api/v1/subscriptions/me")
    assert res.status_code == 401
    assert "error" in res.json()


@pytest.mark.parametrize(
    "headers",
    [
        {"Authorization": "Bearer not-a-jwt"},
        _auth("user-1", secret="wrong-secret"),
        _auth("user-1", audience="anon"),
    ],
)
def test_me_rejects_bad_tokens(client, profile, headers):
    assert client.get("/api/v1/subscriptions/me", headers=headers).status_code == 401


def test_me_without_subscription(client, profile, plans):
    res = client.get("/api/v1/subscriptions/me", headers=_auth(profile.id))
    assert res.status_code == 200
    assert res.json() is None


def test_me_and_history(client, db, config, profile, plans):
    activator = SubscriptionActivator(db, config)
    activator.activate(profile.email, "plan_pro")
    current = activator.activate(profile.email, "plan_business")

    res = client.get("/api/v1/subscriptions/me", headers=_auth(profile.id))
    assert res.status_code == 200
    assert res.json()["id"] == current.id
    assert res.json()["status"] == "active"

    history = client.get("/api/v1/subscriptions/me/history", headers=_auth(profile.id)).json()
    assert len(history) == 2
    assert sorted(h["status"] for h in history) == ["active", "cancelled"]


def test_cancel(client, db, config, profile, plans):
    SubscriptionActivator(db, config).activate(profile.email, "plan_pro")

    res = client.post("/api/v1/subscriptions/me/cancel", headers=_auth(profile.id))
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"

    again = client.post("/api/v1/subscriptions/me/cancel", headers=_auth(profile.id))
    assert again.status_code == 404
    assert again.json() == {"error": "No active subscription"}


def test_entitlements_default_to_free_plan(client, profile, plans):
    res = client.get("/api/v1/subscriptions/me/entitlements", params={"current_job_count": 1}, headers=_auth(profile.id))
    assert res.status_code == 200
    body = res.json()
    assert body["plan_name"] == "Free"
    assert body["job_limit"] == 1
    assert body["can_create_job"] is False


def test_entitlements_follow_paid_plan(client, db, config, profile, plans):
    SubscriptionActivator(db, config).activate(profile.email, "plan_pro")

    res = client.get("/api/v1/subscriptions/me/entitlements", params={"current_job_count": 3}, headers=_auth(profile.id))
    body = res.json()
    assert body["plan_id"] == "plan_pro"
    assert body["job_limit"] == 10
    assert body["can_create_job"] is True
    assert body["in_period"] is True


def test_entitlements_reject_negative_count(client, profile, plans):
    res = client.get("/api/v1/subscriptions/me/entitlements", params={"current_job_count": -1}, headers=_auth(profile.id))
    assert res.status_code == 400


def test_lapsed_subscription_grants_free_plan_only(client, db, config, profile, plans):
    started = datetime.now(tz=timezone.utc) - timedelta(days=90)
    SubscriptionActivator(db, config).activate(profile.email, "plan_business", now=started)

    me = client.get("/api/v1/subscriptions/me", headers=_auth(profile.id)).json()
    assert me["status"] == "active"
    assert me["in_period"] is False

    res = client.get("/api/v1/subscriptions/me/entitlements", params={"current_job_count": 20}, headers=_auth(profile.id))
    body = res.json()
    assert body["plan_name"] == "Free"
    assert body["job_limit"] == 1
    assert body["in_period"] is False
    assert body["can_create_job"] is False
