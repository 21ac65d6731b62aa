"""
Payment bridge: gateway orders, signature verification, offline payments
and subscription activation.
"""
import uuid
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import utcnow
from ..errors import Conflict, InvalidSignature, NotConfigured, NotFound, ValidationError
from ..logging_config import payment_logger
from ..models.package import Package
from ..models.payment import Payment, PaymentSetting
from ..models.subscription import Subscription
from ..models.user import User
from .gateway import (
    CredentialStore,
    GatewayCredentials,
    RazorpayClient,
    credential_store,
    signature_matches,
)

settings = get_settings()


def to_minor_units(amount) -> int:
    """Major currency units to the gateway's integer minor units (paise)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class VerificationResult:
    payment: Payment
    subscription: Optional[Subscription]
    already_verified: bool = False


@dataclass
class OfflineResult:
    payment: Payment
    subscription: Optional[Subscription]
    created: bool = True


def activate_subscription(db: Session, user_id: int, package: Package, payment: Payment) -> Subscription:
    """Make ``package`` the user's single active subscription. Caller commits."""
    now = utcnow()
    (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id, Subscription.active.is_(True))
        .update({Subscription.active: False}, synchronize_session="fetch")
    )
    subscription = Subscription(
        user_id=user_id,
        package_id=package.id,
        payment_id=payment.id,
        starts_at=now,
        ends_at=now + timedelta(days=package.duration_days or 0),
        active=True,
    )
    db.add(subscription)
    return subscription


class PaymentService:
    """Payment operations for one request, bound to one DB session."""

    def __init__(
        self,
        db: Session,
        credentials: Optional[CredentialStore] = None,
        gateway_factory: Callable[[GatewayCredentials], RazorpayClient] = RazorpayClient,
    ):
        self.db = db
        self.credentials = credentials or credential_store
        self.gateway_factory = gateway_factory

    def _get_package(self, package_id: Optional[int]) -> Package:
        if not package_id:
            raise ValidationError("Package ID is required", {"field": "package_id"})
        package = self.db.query(Package).filter(Package.id == package_id).first()
        if not package:
            raise NotFound("Package not found")
        return package

    def create_order(self, user: User, package_id: Optional[int]) -> Dict[str, Any]:
        package = self._get_package(package_id)

        snapshot = self.credentials.snapshot()
        if snapshot is None:
            raise NotConfigured("Payment gateway not configured")

        receipt = f"receipt_{uuid.uuid4().hex[:16]}"
        order = self.gateway_factory(snapshot).create_order(
            amount=to_minor_units(package.price),
            currency=settings.payment_currency,
            receipt=receipt,
            notes={"user_id": str(user.id), "package_id": str(package.id)},
        )

        payment = Payment(
            user_id=user.id,
            package_id=package.id,
            mode=Payment.MODE_ONLINE,
            status=Payment.STATUS_CREATED,
            amount=package.price,
            currency=order.get("currency", settings.payment_currency),
            gateway_order_id=order.get("id"),
            payment_setting_id=snapshot.setting_id,
        )
        self.db.add(payment)
        self.db.commit()

        payment_logger.info("Gateway order created", order_id=order.get("id"), user_id=user.id, package_id=package.id)
        return order

    def _secret_for(self, payment: Payment, snapshot: Optional[GatewayCredentials]) -> Optional[str]:
        # Orders are signed with the key pair that created them
        if payment.payment_setting_id is not None:
            row = self.db.query(PaymentSetting).filter(PaymentSetting.id == payment.payment_setting_id).first()
            if row is not None:
                return row.razorpay_key_secret
        return snapshot.key_secret if snapshot else None

    def verify(self, user: User, order_id: str, payment_id: str, signature: str) -> VerificationResult:
        if not (order_id and payment_id and signature):
            raise ValidationError("Payment details are required")

        snapshot = self.credentials.snapshot()
        if snapshot is None:
            raise NotConfigured("Payment gateway not configured")

        payment = (
            self.db.query(Payment)
            .filter(Payment.gateway_order_id == order_id, Payment.user_id == user.id)
            .with_for_update()
            .first()
        )
        if payment is None:
            raise NotFound("Order not found")

        secret = self._secret_for(payment, snapshot)
        if not signature_matches(secret, order_id, payment_id, signature):
            if self._transition(payment, Payment.STATUS_REJECTED):
                self.db.commit()
            else:
                self.db.rollback()
            payment_logger.warning("Payment signature mismatch", order_id=order_id, user_id=user.id)
            raise InvalidSignature()

        if payment.status != Payment.STATUS_CREATED:
            return self._settled(payment)

        # Only the caller whose UPDATE moves the row out of "created" activates;
        # SQLite ignores FOR UPDATE, so the row lock alone is not enough.
        if not self._transition(
            payment,
            Payment.STATUS_VERIFIED,
            gateway_payment_id=payment_id,
            verified_at=utcnow(),
        ):
            self.db.rollback()
            return self._settled(payment)

        self.db.expire(payment)
        subscription = activate_subscription(self.db, user.id, payment.package, payment)
        try:
            self.db.commit()
        except IntegrityError:
            # Subscription.payment_id is unique: another verify activated first
            self.db.rollback()
            return self._settled(payment)
        self.db.refresh(subscription)

        payment_logger.info("Payment verified", order_id=order_id, user_id=user.id, subscription_id=subscription.id)
        return VerificationResult(payment=payment, subscription=subscription)

    def _transition(self, payment: Payment, status: str, **values) -> bool:
        """Move ``payment`` out of ``created``; False when it has already settled."""
        updated = (
            self.db.query(Payment)
            .filter(Payment.id == payment.id, Payment.status == Payment.STATUS_CREATED)
            .update({Payment.status: status, **{getattr(Payment, k): v for k, v in values.items()}},
                    synchronize_session=False)
        )
        return updated == 1

    def _settled(self, payment: Payment) -> VerificationResult:
        """Result for a payment some earlier call already verified or rejected."""
        self.db.refresh(payment)
        if payment.status == Payment.STATUS_REJECTED:
            raise Conflict("Payment was rejected; start a new order")
        subscription = self.db.query(Subscription).filter(Subscription.payment_id == payment.id).first()
        return VerificationResult(payment=payment, subscription=subscription, already_verified=True)

    def _find_offline(self, user_id: int, package_id: int, reference: str) -> Optional[Payment]:
        return (
            self.db.query(Payment)
            .filter(
                Payment.user_id == user_id,
                Payment.package_id == package_id,
                Payment.mode == Payment.MODE_OFFLINE,
                Payment.reference == reference,
            )
            .first()
        )

    def _existing_offline(self, payment: Payment) -> OfflineResult:
        subscription = self.db.query(Subscription).filter(Subscription.payment_id == payment.id).first()
        return OfflineResult(payment=payment, subscription=subscription, created=False)

    def record_offline(
        self,
        admin: User,
        user_id: Optional[int],
        package_id: Optional[int],
        reference: Optional[str],
        amount=None,
    ) -> OfflineResult:
        if not user_id:
            raise ValidationError("User ID is required", {"field": "user_id"})
        if not reference or not reference.strip():
            raise ValidationError("Reference is required", {"field": "reference"})
        reference = reference.strip()

        customer = self.db.query(User).filter(User.id == user_id).first()
        if not customer:
            raise NotFound("User not found")
        package = self._get_package(package_id)

        existing = self._find_offline(customer.id, package.id, reference)
        if existing is not None:
            return self._existing_offline(existing)

        payment = Payment(
            user_id=customer.id,
            package_id=package.id,
            mode=Payment.MODE_OFFLINE,
            status=Payment.STATUS_VERIFIED,
            amount=package.price if amount is None else amount,
            currency=settings.payment_currency,
            reference=reference,
            recorded_by=admin.id,
            verified_at=utcnow(),
        )
        self.db.add(payment)
        try:
            self.db.flush()
        except IntegrityError:
            # A concurrent retry with the same reference won the insert
            self.db.rollback()
            existing = self._find_offline(customer.id, package.id, reference)
            if existing is None:
                raise
            return self._existing_offline(existing)

        subscription = activate_subscription(self.db, customer.id, package, payment)
        self.db.commit()
        self.db.refresh(payment)
        self.db.refresh(subscription)

        payment_logger.info(
            "Offline payment recorded",
            user_id=customer.id,
            package_id=package.id,
            reference=reference,
            admin_id=admin.id,
        )
        return OfflineResult(payment=payment, subscription=subscription)
