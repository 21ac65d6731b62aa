from .auth import UserCreate, UserLogin, UserResponse, Token, RefreshRequest
from .packages import PackageCreate, PackageUpdate, PackageResponse
from .payments import (
    CreateOrderRequest,
    VerifyPaymentRequest,
    OfflinePaymentRequest,
    PaymentSettingsUpdate,
    SubscriptionResponse,
)

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "Token", "RefreshRequest",
    "PackageCreate", "PackageUpdate", "PackageResponse",
    "CreateOrderRequest", "VerifyPaymentRequest", "OfflinePaymentRequest",
    "PaymentSettingsUpdate", "SubscriptionResponse",
]
