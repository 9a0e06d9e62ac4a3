from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.config import PaymentsConfig
from app.core.security import get_current_user
from app.db.session import get_db
from app import models
from app.models.models import now as utcnow
from app.schemas.subscriptions import EntitlementsOut, PlanOut, SubscriptionOut
from app.services.payments.currency import format_amount, to_minor_units
from app.services.subscriptions import plans as plan_service
from app.services.subscriptions.activator import SubscriptionActivator
from app.api.v1.routers.payments import get_payments_config

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])

PLAN_CURRENCY = "INR"


def _subscription_out(subscription: models.UserSubscription, now: datetime) -> SubscriptionOut:
    out = SubscriptionOut.model_validate(subscription)
    return out.model_copy(update={"in_period": plan_service.in_period(subscription, now)})


def _plan_out(plan: models.SubscriptionPlan) -> PlanOut:
    return PlanOut(
        id=plan.id,
        name=plan.name,
        job_limit=plan.job_limit,
        price=float(plan.price),
        price_minor=to_minor_units(plan.price),
        price_display=format_amount(plan.price, PLAN_CURRENCY),
        currency=PLAN_CURRENCY,
        features=list(plan.features or []),
    )


@router.get("/plans", response_model=List[PlanOut])
def list_plans(db: Session = Depends(get_db)):
    return [_plan_out(p) for p in plan_service.list_plans(db)]


@router.get("/me", response_model=Optional[SubscriptionOut])
def my_subscription(
    db: Session = Depends(get_db),
    config: PaymentsConfig = Depends(get_payments_config),
    user: models.Profile = Depends(get_current_user),
):
    subscription = SubscriptionActivator(db, config).get_active(user.id)
    if subscription is None:
        return None
    return _subscription_out(subscription, utcnow())


@router.get("/me/history", response_model=List[SubscriptionOut])
def my_subscription_history(
    db: Session = Depends(get_db),
    config: PaymentsConfig = Depends(get_payments_config),
    user: models.Profile = Depends(get_current_user),
):
    now = utcnow()
    return [_subscription_out(s, now) for s in SubscriptionActivator(db, config).history(user.id)]


@router.post("/me/cancel", response_model=SubscriptionOut)
def cancel_my_subscription(
    db: Session = Depends(get_db),
    config: PaymentsConfig = Depends(get_payments_config),
    user: models.Profile = Depends(get_current_user),
):
    cancelled = SubscriptionActivator(db, config).cancel(user.id)
    if cancelled is None:
        raise HTTPException(status_code=404, detail="No active subscription")
    return _subscription_out(cancelled, utcnow())


@router.get("/me/entitlements", response_model=EntitlementsOut)
def my_entitlements(
    current_job_count: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    config: PaymentsConfig = Depends(get_payments_config),
    user: models.Profile = Depends(get_current_user),
):
    now = utcnow()
    subscription = SubscriptionActivator(db, config).get_active(user.id)
    plans = plan_service.list_plans(db)
    plan = plan_service.current_plan(plans, subscription, now)
    return EntitlementsOut(
        plan_id=plan.id if plan else None,
        plan_name=plan.name if plan else "Free",
        job_limit=plan_service.job_limit(plans, subscription, now),
        in_period=plan_service.in_period(subscription, now),
        current_job_count=current_job_count,
        can_create_job=plan_service.can_create_job(plans, subscription, current_job_count, now),
    )
