from decimal import Decimal
from datetime import datetime
from pydantic import AliasChoices, BaseModel, Field
from typing import Optional


class CreateOrderRequest(BaseModel):
    package_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("package_id", "packageId"))


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class OfflinePaymentRequest(BaseModel):
    user_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))
    package_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("package_id", "packageId"))
    reference: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)


class PaymentSettingsUpdate(BaseModel):
    razorpay_key_id: Optional[str] = None
    razorpay_key_secret: Optional[str] = None


class SubscriptionResponse(BaseModel):
    id: int
    package_id: int
    payment_id: Optional[int]
    starts_at: datetime
    ends_at: datetime
    active: bool

    class Config:
        from_attributes = True
