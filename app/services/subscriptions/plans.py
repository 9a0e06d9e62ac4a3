from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app import models


FREE_PLAN_NAME = "free"
# fallback when a plan row carries no job limit
DEFAULT_FREE_JOB_LIMIT = 1


def list_plans(db: Session) -> List[models.SubscriptionPlan]:
    return list(db.execute(select(models.SubscriptionPlan).order_by(models.SubscriptionPlan.price.asc())).scalars())


def get_plan(db: Session, plan_id: str) -> Optional[models.SubscriptionPlan]:
    if not plan_id:
        return None
    return db.get(models.SubscriptionPlan, plan_id)


def in_period(subscription: Optional[models.UserSubscription], now: Optional[datetime] = None) -> bool:
    """whether the subscription grants its plan at `now`: active and inside [start, end)."""
    if subscription is None or subscription.status != models.SUBSCRIPTION_ACTIVE:
        return False
    start, end = _aware(subscription.current_period_start), _aware(subscription.current_period_end)
    if start is None or end is None:
        return False
    now = _aware(now) or models.now()
    return start <= now < end


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes, stored values are utc
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _free_plan(plans: Sequence[models.SubscriptionPlan]) -> Optional[models.SubscriptionPlan]:
    return next((p for p in plans if (p.name or "").lower() == FREE_PLAN_NAME), None)


def current_plan(
    plans: Sequence[models.SubscriptionPlan],
    subscription: Optional[models.UserSubscription],
    now: Optional[datetime] = None,
) -> Optional[models.SubscriptionPlan]:
    # a lapsed or cancelled subscription falls back to the free plan
    if not in_period(subscription, now):
        return _free_plan(plans)
    return next((p for p in plans if p.id == subscription.plan_id), None)


def job_limit(
    plans: Sequence[models.SubscriptionPlan],
    subscription: Optional[models.UserSubscription],
    now: Optional[datetime] = None,
) -> Optional[int]:
    """job posting limit for the user; None means no plan is defined and nothing is enforced."""
    plan = current_plan(plans, subscription, now)
    if plan is None:
        return None
    return plan.job_limit or DEFAULT_FREE_JOB_LIMIT


def can_create_job(
    plans: Sequence[models.SubscriptionPlan],
    subscription: Optional[models.UserSubscription],
    current_job_count: int,
    now: Optional[datetime] = None,
) -> bool:
    limit = job_limit(plans, subscription, now)
    if limit is None:
        return True
    return current_job_count < limit
