from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel


class PlanOut(BaseModel):
    id: str
    name: str
    job_limit: int
    price: float
    price_minor: int
    price_display: str
    currency: str
    features: List[str] = []


class SubscriptionOut(BaseModel):
    id: str
    user_id: str
    plan_id: str
    status: str
    current_period_start: datetime
    current_period_end: datetime
    razorpay_order_id: Optional[str] = None
    created_at: datetime
    # false once current_period_end has passed, even while status is still active
    in_period: bool = False

    class Config:
        from_attributes = True


class EntitlementsOut(BaseModel):
    plan_id: Optional[str] = None
    plan_name: str
    job_limit: Optional[int] = None
    in_period: bool = False
    current_job_count: int
    can_create_job: bool
