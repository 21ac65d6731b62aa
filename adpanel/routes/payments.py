"""
Payment routes: package catalogue, gateway orders, verification and
subscription status.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_admin_user, get_required_user
from ..database import get_db, utcnow
from ..models.package import Package
from ..models.payment import Payment
from ..models.subscription import Subscription
from ..models.user import User
from ..schemas.packages import PackageResponse
from ..schemas.payments import (
    CreateOrderRequest,
    OfflinePaymentRequest,
    SubscriptionResponse,
    VerifyPaymentRequest,
)
from ..services.gateway import credential_store, get_gateway_factory
from ..services.payments import PaymentService

router = APIRouter(prefix="/api", tags=["payments"])


def get_payment_service(
    db: Session = Depends(get_db),
    gateway_factory=Depends(get_gateway_factory),
) -> PaymentService:
    return PaymentService(db, credential_store, gateway_factory)


def subscription_to_dict(subscription):
    if subscription is None:
        return None
    return SubscriptionResponse.model_validate(subscription).model_dump(mode="json")


@router.get("/packages", response_model=List[PackageResponse])
def list_packages(db: Session = Depends(get_db)):
    """Active packages, cheapest first."""
    return db.query(Package).filter(Package.is_active.is_(True)).order_by(Package.price, Package.id).all()


@router.post("/payment/create-order")
def create_order(
    data: CreateOrderRequest,
    current_user: User = Depends(get_required_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Mint a gateway order for a package; the order is returned as the gateway sent it."""
    order = service.create_order(current_user, data.package_id)
    return {"order": order}


@router.post("/payment/verify")
def verify_payment(
    data: VerifyPaymentRequest,
    current_user: User = Depends(get_required_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Check the checkout signature and activate the purchased package."""
    result = service.verify(
        current_user,
        data.razorpay_order_id,
        data.razorpay_payment_id,
        data.razorpay_signature,
    )
    return {
        "message": "Payment already verified" if result.already_verified else "Payment verified successfully",
        "payment": result.payment.to_dict(),
        "subscription": subscription_to_dict(result.subscription),
    }


@router.post("/payment/offline")
def record_offline_payment(
    data: OfflinePaymentRequest,
    admin: User = Depends(get_admin_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Record a payment collected outside the gateway and activate the package."""
    result = service.record_offline(admin, data.user_id, data.package_id, data.reference, data.amount)
    return {
        "message": "Offline payment recorded" if result.created else "Offline payment already recorded",
        "created": result.created,
        "payment": result.payment.to_dict(),
        "subscription": subscription_to_dict(result.subscription),
    }


@router.get("/payment/history")
def payment_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    payments = db.query(Payment).filter(Payment.user_id == current_user.id).order_by(Payment.id.desc()).all()
    return {"payments": [p.to_dict() for p in payments]}


@router.get("/subscription")
def current_subscription(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """The caller's live subscription, or null."""
    subscription = (
        db.query(Subscription)
        .filter(
            Subscription.user_id == current_user.id,
            Subscription.active.is_(True),
            Subscription.ends_at > utcnow(),
        )
        .order_by(Subscription.id.desc())
        .first()
    )
    return {"subscription": subscription_to_dict(subscription)}
