import base64
import json

import httpx
import pytest

from app.core.config import PaymentsConfig
from app.core.errors import ProviderError, ValidationError
from app.services.payments.base import RECEIPT_MAX_LENGTH
from app.services.payments.factory import get_payments_provider
from app.services.payments.mock import MockPayments
from app.services.payments.razorpay import RazorpayPayments


class FakeRazorpay:
    """records requests and answers from a queue of responses or exceptions."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, httpx.Response):
            return outcome
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": "order_NqX8e0lKx2bq3T",
                "entity": "order",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "status": "created",
            },
        )


def _provider(config, fake):
    return RazorpayPayments(config, client=httpx.Client(transport=httpx.MockTransport(fake)))


def test_create_order_returns_provider_order(config):
    fake = FakeRazorpay()
    order = _provider(config, fake).create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")

    assert order.id == "order_NqX8e0lKx2bq3T"
    assert order.amount == 2999
    assert order.currency == "INR"
    assert order.plan_id == "plan_pro"
    assert len(fake.requests) == 1


def test_create_order_sends_basic_auth_and_notes(config):
    fake = FakeRazorpay()
    _provider(config, fake).create_order(2999, "inr", "plan_pro", "Pro", "a@b.com", receipt="rcpt_fixed")

    request = fake.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.razorpay.test/v1/orders"
    expected = base64.b64encode(b"rzp_test_key:test_secret").decode()
    assert request.headers["authorization"] == f"Basic {expected}"
    assert json.loads(request.content) == {
        "amount": 2999,
        "currency": "INR",
        "receipt": "rcpt_fixed",
        "notes": {"planId": "plan_pro", "planName": "Pro", "userEmail": "a@b.com"},
    }


def test_generated_receipts_are_unique_and_short(config):
    fake = FakeRazorpay()
    provider = _provider(config, fake)
    first = provider.create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")
    second = provider.create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")

    assert first.receipt != second.receipt
    assert len(first.receipt) <= RECEIPT_MAX_LENGTH


@pytest.mark.parametrize(
    "amount,currency,plan_id,plan_name,email",
    [
        (0, "INR", "plan_pro", "Pro", "a@b.com"),
        (-100, "INR", "plan_pro", "Pro", "a@b.com"),
        (29.99, "INR", "plan_pro", "Pro", "a@b.com"),
        ("2999", "INR", "plan_pro", "Pro", "a@b.com"),
        (True, "INR", "plan_pro", "Pro", "a@b.com"),
        (None, "INR", "plan_pro", "Pro", "a@b.com"),
        (2999, "EUR", "plan_pro", "Pro", "a@b.com"),
        (2999, "", "plan_pro", "Pro", "a@b.com"),
        (2999, "INR", "", "Pro", "a@b.com"),
        (2999, "INR", "plan_pro", "  ", "a@b.com"),
        (2999, "INR", "plan_pro", "Pro", None),
    ],
)
def test_invalid_input_fails_before_network(config, amount, currency, plan_id, plan_name, email):
    fake = FakeRazorpay()
    with pytest.raises(ValidationError):
        _provider(config, fake).create_order(amount, currency, plan_id, plan_name, email)
    assert fake.requests == []


def test_missing_keys_fail_before_network(config):
    fake = FakeRazorpay()
    unconfigured = PaymentsConfig(key_id="", key_secret="", api_base=config.api_base)
    with pytest.raises(ProviderError, match="not configured"):
        _provider(unconfigured, fake).create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")
    assert fake.requests == []


def test_provider_rejection_carries_description_and_is_not_retried(config):
    fake = FakeRazorpay(
        httpx.Response(
            400,
            json={"error": {"code": "BAD_REQUEST_ERROR", "description": "Order amount less than minimum amount allowed"}},
        )
    )
    with pytest.raises(ProviderError) as exc_info:
        _provider(config, fake).create_order(50, "INR", "plan_pro", "Pro", "a@b.com")

    assert exc_info.value.message == "Order amount less than minimum amount allowed"
    assert len(fake.requests) == 1


def test_server_error_is_not_retried(config):
    fake = FakeRazorpay(httpx.Response(503, text="upstream unavailable"))
    with pytest.raises(ProviderError, match="Failed to create order"):
        _provider(config, fake).create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")
    assert len(fake.requests) == 1


def test_connect_failure_is_retried_once(config):
    fake = FakeRazorpay(httpx.ConnectError("connection refused"))
    order = _provider(config, fake).create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")

    assert order.id == "order_NqX8e0lKx2bq3T"
    assert len(fake.requests) == 2
    # same receipt on the retry, so razorpay sees one logical order
    first, second = (json.loads(r.content)["receipt"] for r in fake.requests)
    assert first == second


def test_second_connect_failure_surfaces_provider_error(config):
    fake = FakeRazorpay(httpx.ConnectError("refused"), httpx.ConnectTimeout("timed out"))
    with pytest.raises(ProviderError, match="Unable to reach Razorpay"):
        _provider(config, fake).create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")
    assert len(fake.requests) == 2


def test_read_timeout_is_not_retried(config):
    # the order may already exist on razorpay's side
    fake = FakeRazorpay(httpx.ReadTimeout("read timed out"))
    with pytest.raises(ProviderError):
        _provider(config, fake).create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")
    assert len(fake.requests) == 1


def test_ping_reports_status(config):
    ok = _provider(config, FakeRazorpay()).ping()
    assert ok["status"] == "ok"
    assert ok["order_id"] == "order_NqX8e0lKx2bq3T"

    failed = _provider(config, FakeRazorpay(httpx.Response(401, json={"error": {"description": "Authentication failed"}}))).ping()
    assert failed == {"status": "error", "provider": "razorpay", "error": "Authentication failed"}


def test_health_check_does_not_leak_secret(config):
    status = RazorpayPayments(config).health_check()
    assert status["status"] == "configured"
    assert "test_secret" not in json.dumps(status)

    missing = RazorpayPayments(PaymentsConfig(key_id="rzp_test_key")).health_check()
    assert missing == {"status": "misconfigured", "provider": "razorpay", "reason": "missing_key_secret"}


def test_mock_provider_validates_and_fabricates_orders(config):
    provider = MockPayments(config)
    order = provider.create_order(2999, "INR", "plan_pro", "Pro", "a@b.com")
    assert order.id.startswith("order_mock_")
    assert order.amount == 2999

    with pytest.raises(ValidationError):
        provider.create_order(0, "INR", "plan_pro", "Pro", "a@b.com")


def test_factory_picks_provider(config):
    assert isinstance(get_payments_provider(config, provider="mock"), MockPayments)
    assert isinstance(get_payments_provider(config, provider="razorpay"), RazorpayPayments)
