"""
Payment models: gateway credentials log and per-transaction records.
"""
from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base, utcnow


class PaymentSetting(Base):
    """Append-only credentials log; the newest row is live."""
    __tablename__ = "payment_settings"

    id = Column(Integer, primary_key=True, index=True)
    razorpay_key_id = Column(String(100), nullable=False)
    razorpay_key_secret = Column(String(255), nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("user_id", "package_id", "mode", "reference", name="uq_payment_reference"),
    )

    MODE_ONLINE = "online"
    MODE_OFFLINE = "offline"

    STATUS_CREATED = "created"
    STATUS_VERIFIED = "verified"
    STATUS_REJECTED = "rejected"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False)
    mode = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_CREATED)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="INR")
    gateway_order_id = Column(String(100), unique=True, nullable=True, index=True)
    gateway_payment_id = Column(String(100), nullable=True)
    payment_setting_id = Column(Integer, ForeignKey("payment_settings.id"), nullable=True)
    reference = Column(String(100), nullable=True)
    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    verified_at = Column(DateTime, nullable=True)

    package = relationship("Package")
    payment_setting = relationship("PaymentSetting")

    def to_dict(self):
        return {
            "id": self.id,
            "package_id": self.package_id,
            "mode": self.mode,
            "status": self.status,
            "amount": float(self.amount),
            "currency": self.currency,
            "order_id": self.gateway_order_id,
            "payment_id": self.gateway_payment_id,
            "reference": self.reference,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
        }
