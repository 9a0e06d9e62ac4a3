from typing import Optional

from pydantic import BaseModel, EmailStr, Field, StrictInt, validator


class CreateOrderRequest(BaseModel):
    amount: StrictInt  # smallest currency unit (paise)
    currency: str = Field(..., min_length=3, max_length=3)
    plan_id: str = Field(..., alias="planId", min_length=1, max_length=64)
    plan_name: str = Field(..., alias="planName", min_length=1, max_length=64)
    user_email: EmailStr = Field(..., alias="userEmail")

    class Config:
        extra = "forbid"
        populate_by_name = True

    @validator("currency")
    def normalize_currency(cls, v):
        return v.strip().upper()


class OrderOut(BaseModel):
    id: str
    amount: int
    currency: str
    receipt: str
    key_id: Optional[str] = Field(None, serialization_alias="keyId")


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1, max_length=64)
    razorpay_payment_id: str = Field(..., min_length=1, max_length=64)
    razorpay_signature: str = Field(..., min_length=1, max_length=256)
    plan_id: str = Field(..., alias="planId", min_length=1, max_length=64)
    user_email: EmailStr = Field(..., alias="userEmail")

    class Config:
        extra = "forbid"
        populate_by_name = True


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    message: str = "Payment verified and subscription activated"
    user_id: str = Field(..., serialization_alias="userId")
    plan_id: str = Field(..., serialization_alias="planId")
    subscription_id: str = Field(..., serialization_alias="subscriptionId")
