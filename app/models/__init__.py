from app.models.models import (  # noqa: F401
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_CANCELLED,
    Profile,
    SubscriptionPlan,
    UserSubscription,
    now,
)
