import hashlib
import hmac
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.core.config import PaymentsConfig
from app.core.errors import ValidationError


SUPPORTED_CURRENCIES = frozenset({"INR", "USD"})
# razorpay caps receipt length at 40 chars
RECEIPT_MAX_LENGTH = 40


@dataclass(frozen=True)
class PaymentOrder:
    id: str
    amount: int
    currency: str
    receipt: str
    plan_id: str
    plan_name: str
    payer_email: str


@dataclass(frozen=True)
class PaymentCallback:
    order_id: str
    payment_id: str
    signature: str

    def verify(self, secret: Optional[str]) -> bool:
        return verify_signature(self.order_id, self.payment_id, self.signature, secret)


def expected_signature(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(order_id: Any, payment_id: Any, signature: Any, secret: Any) -> bool:
    """Check a checkout callback signature: hex HMAC-SHA256 of ``order_id|payment_id``.

    Fails closed: a missing secret, or any missing/non-string field, is a failed
    verification rather than an exception.
    """
    if not isinstance(secret, str) or not secret:
        return False
    for value in (order_id, payment_id, signature):
        if not isinstance(value, str) or not value:
            return False
    computed = expected_signature(order_id, payment_id, secret)
    try:
        return hmac.compare_digest(computed, signature)
    except TypeError:
        # non-ascii signature text
        return False


def new_receipt() -> str:
    return f"rcpt_{uuid.uuid4().hex}"[:RECEIPT_MAX_LENGTH]


def validate_order_request(amount: Any, currency: Any, plan_id: Any, plan_name: Any, payer_email: Any) -> str:
    """validate order input before any network call; returns the normalized currency."""
    missing = [
        name
        for name, value in (
            ("amount", amount),
            ("currency", currency),
            ("planId", plan_id),
            ("planName", plan_name),
            ("userEmail", payer_email),
        )
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError("amount must be a positive integer in the smallest currency unit")
    code = str(currency).strip().upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValidationError(f"Unsupported currency: {currency}")
    return code


class PaymentsProvider:
    """base payments provider interface."""

    name = "base"

    def __init__(self, config: PaymentsConfig):
        self.config = config

    def create_order(
        self,
        amount: int,
        currency: str,
        plan_id: str,
        plan_name: str,
        payer_email: str,
        receipt: Optional[str] = None,
    ) -> PaymentOrder:  # pragma: no cover
        raise NotImplementedError

    def ping(self) -> Dict[str, Any]:  # pragma: no cover
        return {"status": "skipped", "reason": "not_implemented"}

    def close(self) -> None:
        pass

    def health_check(self) -> Dict[str, str]:
        if not self.config.key_id:
            return {"status": "misconfigured", "provider": self.name, "reason": "missing_key_id"}
        if not self.config.key_secret:
            return {"status": "misconfigured", "provider": self.name, "reason": "missing_key_secret"}
        return {"status": "configured", "provider": self.name, "key_id_prefix": self.config.key_id[:8] + "..."}
