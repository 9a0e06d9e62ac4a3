import uuid
from typing import Any, Dict, Optional

from .base import PaymentOrder, PaymentsProvider, new_receipt, validate_order_request


class MockPayments(PaymentsProvider):
    name = "mock"

    def create_order(
        self,
        amount: int,
        currency: str,
        plan_id: str,
        plan_name: str,
        payer_email: str,
        receipt: Optional[str] = None,
    ) -> PaymentOrder:
        code = validate_order_request(amount, currency, plan_id, plan_name, payer_email)
        return PaymentOrder(
            id=f"order_mock_{uuid.uuid4().hex[:14]}",
            amount=amount,
            currency=code,
            receipt=receipt or new_receipt(),
            plan_id=plan_id,
            plan_name=plan_name,
            payer_email=payer_email,
        )

    def ping(self) -> Dict[str, Any]:
        return {"status": "ok", "provider": self.name, "order_id": None}

    def health_check(self) -> Dict[str, str]:
        status = {"status": "configured", "provider": self.name, "note": "Using mock payment provider"}
        if not self.config.key_secret:
            # callbacks can never verify without a secret
            status["warning"] = "missing_key_secret"
        return status
