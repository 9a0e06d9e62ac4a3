"""Payment and subscription error types.

Every error carries the HTTP status and the message rendered to the client as
``{"error": message}``.
"""


class PaymentsError(Exception):
    status_code: int = 400
    default_message: str = "Payment request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PaymentsError):
    """Missing or malformed input; raised before any network or storage call."""

    default_message = "Invalid request"


class ProviderError(PaymentsError):
    """Payment gateway rejected the request, was unreachable, or the signature did not match."""

    default_message = "Payment provider error"


class UserNotFoundError(PaymentsError):
    status_code = 404
    default_message = "User not found"


class PlanNotFoundError(PaymentsError):
    status_code = 404
    default_message = "Plan not found"


class SubscriptionActivationError(PaymentsError):
    """Storage failed after the payment was verified. The user has paid but has no access."""

    default_message = (
        "Payment was received but the subscription could not be activated. "
        "Please contact support if the amount was deducted."
    )
