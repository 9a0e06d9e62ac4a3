from typing import Optional

from app.core.config import PaymentsConfig, settings
from .base import PaymentsProvider
from .mock import MockPayments
from .razorpay import RazorpayPayments


def get_payments_provider(config: Optional[PaymentsConfig] = None, provider: Optional[str] = None) -> PaymentsProvider:
    config = config or settings.payments_config()
    name = (provider or settings.PAYMENTS_PROVIDER or "razorpay").lower()
    if name == "mock":
        return MockPayments(config)
    return RazorpayPayments(config)
