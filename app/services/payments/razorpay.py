import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import PaymentsConfig
from app.core.errors import ProviderError
from .base import PaymentOrder, PaymentsProvider, new_receipt, validate_order_request

logger = logging.getLogger(__name__)

# request never reached razorpay, safe to send again
_TRANSIENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


def _error_description(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Failed to create order"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("description"):
        return str(error["description"])
    return "Failed to create order"


class RazorpayPayments(PaymentsProvider):
    """Razorpay orders API over httpx, basic auth with the server-side key pair."""

    name = "razorpay"

    def __init__(self, config: PaymentsConfig, client: Optional[httpx.Client] = None):
        super().__init__(config)
        self._client = client

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.config.timeout_seconds)
        return self._client

    def _post_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.config.key_id or not self.config.key_secret:
            raise ProviderError("Razorpay keys not configured")

        url = f"{self.config.api_base}/orders"
        auth = (self.config.key_id, self.config.key_secret)
        try:
            try:
                response = self._http().post(url, json=payload, auth=auth, timeout=self.config.timeout_seconds)
            except _TRANSIENT_ERRORS as e:
                logger.warning(f"Razorpay unreachable ({e.__class__.__name__}), retrying once")
                response = self._http().post(url, json=payload, auth=auth, timeout=self.config.timeout_seconds)
        except httpx.HTTPError as e:
            logger.warning(f"Razorpay request failed: {e}")
            raise ProviderError("Unable to reach Razorpay right now. Please retry.") from e

        if response.is_error:
            description = _error_description(response)
            logger.warning(f"Razorpay rejected order request ({response.status_code}): {description}")
            raise ProviderError(description)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("Razorpay returned an unreadable response") from e

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
        payload = {
            "amount": amount,
            "currency": code,
            "receipt": receipt or new_receipt(),
            "notes": {
                "planId": plan_id,
                "planName": plan_name,
                "userEmail": payer_email,
            },
        }
        data = self._post_order(payload)
        if not data.get("id"):
            raise ProviderError("Razorpay did not return an order id")

        order = PaymentOrder(
            id=str(data["id"]),
            amount=int(data.get("amount", amount)),
            currency=str(data.get("currency", code)),
            receipt=str(data.get("receipt", payload["receipt"])),
            plan_id=plan_id,
            plan_name=plan_name,
            payer_email=payer_email,
        )
        logger.info(f"Razorpay order created: {order.id} ({order.amount} {order.currency}, plan {plan_id})")
        return order

    def ping(self) -> Dict[str, Any]:
        """create a 1 rupee test order to confirm keys and connectivity."""
        try:
            data = self._post_order({"amount": 100, "currency": "INR", "receipt": new_receipt()})
        except ProviderError as e:
            return {"status": "error", "provider": self.name, "error": e.message}
        return {"status": "ok", "provider": self.name, "order_id": data.get("id")}

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
