import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Numeric, Integer, Text, JSON, Index, UniqueConstraint, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base


SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_CANCELLED = "cancelled"


# helpers
def now() -> datetime:
    return datetime.now(tz=timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


# uuid columns on supabase, plain strings anywhere else
UUIDString = String(36).with_variant(postgresql.UUID(as_uuid=False), "postgresql")

# text[] on supabase, JSON anywhere else
FeatureList = JSON().with_variant(postgresql.ARRAY(Text), "postgresql")


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(UUIDString, primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now, onupdate=now)

    subscriptions: Mapped[list["UserSubscription"]] = relationship("UserSubscription", back_populates="user")


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id: Mapped[str] = mapped_column(UUIDString, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(64), unique=True)
    job_limit: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    features: Mapped[list[str]] = mapped_column(FeatureList, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now)


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"
    __table_args__ = (
        # a razorpay payment activates at most one subscription
        UniqueConstraint("razorpay_payment_id", name="uq_user_subscriptions_razorpay_payment_id"),
        # at most one active subscription per user
        Index(
            "uq_user_subscriptions_one_active",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[str] = mapped_column(UUIDString, primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(UUIDString, ForeignKey("profiles.id", ondelete="CASCADE"), index=True)
    plan_id: Mapped[str] = mapped_column(UUIDString, ForeignKey("subscription_plans.id", ondelete="CASCADE"))
    status: Mapped[str] = mapped_column(String(16), default=SUBSCRIPTION_ACTIVE)
    current_period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    current_period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    razorpay_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    razorpay_payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now, onupdate=now)

    user: Mapped["Profile"] = relationship("Profile", back_populates="subscriptions")
    plan: Mapped["SubscriptionPlan"] = relationship("SubscriptionPlan")
