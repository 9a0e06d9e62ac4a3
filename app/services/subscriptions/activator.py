"""Subscription activation after a verified payment.

Supersession and insertion run in one database transaction, and the partial
unique index on ``user_subscriptions`` rejects a second active row, so a user
never ends up with two active subscriptions (or, after a crash, zero).
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import models
from app.core.config import PaymentsConfig
from app.core.errors import (
    PlanNotFoundError,
    SubscriptionActivationError,
    UserNotFoundError,
    ValidationError,
)
from app.models.models import now as utcnow
from app.services.payments.base import PaymentCallback

logger = logging.getLogger(__name__)


class SubscriptionActivator:
    def __init__(self, db: Session, config: PaymentsConfig):
        self.db = db
        self.config = config

    def _find_users(self, email: str) -> List[models.Profile]:
        # lock the profile row so concurrent activations for one user run one after another
        stmt = (
            select(models.Profile)
            .where(func.lower(models.Profile.email) == email)
            .limit(2)
            .with_for_update()
        )
        return list(self.db.execute(stmt).scalars())

    def _find_by_payment(self, payment_id: str) -> Optional[models.UserSubscription]:
        stmt = select(models.UserSubscription).where(models.UserSubscription.razorpay_payment_id == payment_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def activate(
        self,
        user_email: str,
        plan_id: str,
        callback: Optional[PaymentCallback] = None,
        now: Optional[datetime] = None,
    ) -> models.UserSubscription:
        """Grant ``plan_id`` to the user, cancelling whatever was active before.

        Only call this once the payment callback has passed signature
        verification. Replaying a callback whose payment id is already recorded
        returns the existing subscription untouched.
        """
        email = (user_email or "").strip().lower()
        if not email or not plan_id:
            raise ValidationError("userEmail and planId are required")

        try:
            users = self._find_users(email)
            if not users:
                self.db.rollback()
                raise UserNotFoundError()
            if len(users) > 1:
                # emails differing only by case, cannot tell which account paid
                self.db.rollback()
                logger.error(f"Several profiles match {email}, refusing to pick one")
                raise ValidationError("Several accounts match this email, please contact support")
            user = users[0]

            plan = self.db.get(models.SubscriptionPlan, plan_id)
            if plan is None:
                self.db.rollback()
                raise PlanNotFoundError()

            if callback is not None:
                existing = self._find_by_payment(callback.payment_id)
                if existing is not None:
                    owner_id = existing.user_id
                    self.db.rollback()
                    if owner_id != user.id:
                        raise ValidationError("Payment has already been applied to another account")
                    logger.info(f"Payment {callback.payment_id} already applied as subscription {existing.id}")
                    return existing

            started = now or utcnow()
            result = self.db.execute(
                update(models.UserSubscription)
                .where(
                    models.UserSubscription.user_id == user.id,
                    models.UserSubscription.status == models.SUBSCRIPTION_ACTIVE,
                )
                .values(status=models.SUBSCRIPTION_CANCELLED, updated_at=started)
            )
            superseded = result.rowcount or 0

            subscription = models.UserSubscription(
                user_id=user.id,
                plan_id=plan.id,
                status=models.SUBSCRIPTION_ACTIVE,
                current_period_start=started,
                current_period_end=started + timedelta(days=self.config.period_days),
                razorpay_order_id=callback.order_id if callback else None,
                razorpay_payment_id=callback.payment_id if callback else None,
                created_at=started,
                updated_at=started,
            )
            self.db.add(subscription)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Subscription activation failed for {email} (plan {plan_id}); needs manual reconciliation")
            raise SubscriptionActivationError() from e

        logger.info(
            f"Subscription {subscription.id} activated for user {user.id} on plan {plan.id} "
            f"(superseded {superseded})"
        )
        return subscription

    def get_active(self, user_id: str) -> Optional[models.UserSubscription]:
        stmt = select(models.UserSubscription).where(
            models.UserSubscription.user_id == user_id,
            models.UserSubscription.status == models.SUBSCRIPTION_ACTIVE,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def cancel(self, user_id: str) -> Optional[models.UserSubscription]:
        """cancel the active subscription, if any. cancelled is terminal."""
        subscription = self.get_active(user_id)
        if subscription is None:
            return None
        subscription.status = models.SUBSCRIPTION_CANCELLED
        subscription.updated_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Failed to cancel subscription {subscription.id}")
            raise SubscriptionActivationError("Could not cancel the subscription, please retry") from e
        logger.info(f"Subscription {subscription.id} cancelled for user {user_id}")
        return subscription

    def history(self, user_id: str) -> List[models.UserSubscription]:
        stmt = (
            select(models.UserSubscription)
            .where(models.UserSubscription.user_id == user_id)
            .order_by(models.UserSubscription.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars())
