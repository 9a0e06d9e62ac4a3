import logging
from datetime import datetime, timezone
from typing import Iterator

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import PaymentsConfig, settings
from app.core.errors import ProviderError
from app.core.security import require_admin
from app.db.session import get_db
from app import models
from app.schemas.payments import (
    CreateOrderRequest,
    OrderOut,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from app.services.payments.base import PaymentCallback, PaymentsProvider
from app.services.payments.factory import get_payments_provider
from app.services.subscriptions.activator import SubscriptionActivator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments/razorpay", tags=["payments"])


def get_payments_config() -> PaymentsConfig:
    return settings.payments_config()


def get_provider(config: PaymentsConfig = Depends(get_payments_config)) -> Iterator[PaymentsProvider]:
    provider = get_payments_provider(config)
    try:
        yield provider
    finally:
        provider.close()


@router.post("/orders", response_model=OrderOut)
def create_order(payload: CreateOrderRequest, provider: PaymentsProvider = Depends(get_provider)):
    order = provider.create_order(
        amount=payload.amount,
        currency=payload.currency,
        plan_id=payload.plan_id,
        plan_name=payload.plan_name,
        payer_email=str(payload.user_email),
    )
    return OrderOut(
        id=order.id,
        amount=order.amount,
        currency=order.currency,
        receipt=order.receipt,
        key_id=provider.config.key_id or None,
    )


@router.post("/verify", response_model=VerifyPaymentResponse)
def verify_payment(
    payload: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    config: PaymentsConfig = Depends(get_payments_config),
):
    """verify the checkout signature, then activate the paid plan."""
    if not config.key_secret:
        logger.error("Razorpay secret key not configured, rejecting payment callback")
        raise ProviderError("Payment verification is not configured")

    callback = PaymentCallback(
        order_id=payload.razorpay_order_id,
        payment_id=payload.razorpay_payment_id,
        signature=payload.razorpay_signature,
    )
    if not callback.verify(config.key_secret):
        logger.warning(f"Signature mismatch for order {callback.order_id}, payment {callback.payment_id}")
        raise ProviderError("Payment signature verification failed")

    subscription = SubscriptionActivator(db, config).activate(
        str(payload.user_email),
        payload.plan_id,
        callback=callback,
    )
    logger.info(
        f"Payment verified: order {callback.order_id}, payment {callback.payment_id}, "
        f"user {subscription.user_id}, plan {subscription.plan_id}"
    )
    return VerifyPaymentResponse(
        user_id=subscription.user_id,
        plan_id=subscription.plan_id,
        subscription_id=subscription.id,
    )


@router.get("/test")
def test_connection(
    _: models.Profile = Depends(require_admin),
    provider: PaymentsProvider = Depends(get_provider),
):
    """create a test order to check keys and connectivity."""
    result = provider.ping()
    result["key_configured"] = bool(provider.config.key_id)
    result["timestamp"] = datetime.now(tz=timezone.utc).isoformat()
    return result
