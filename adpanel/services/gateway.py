"""
Razorpay gateway client and credential snapshots.

Credentials are held as an immutable ``GatewayCredentials`` snapshot. A
rotation swaps the snapshot reference in one assignment, so an operation
that captured the snapshot at its start keeps using the same key pair even
if an admin rotates keys mid-flight.
"""
import hashlib
import hmac
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import utcnow
from ..errors import GatewayError
from ..logging_config import payment_logger, timed
from ..models.payment import PaymentSetting

settings = get_settings()


@dataclass(frozen=True)
class GatewayCredentials:
    key_id: str
    key_secret: str
    setting_id: Optional[int] = None

    @classmethod
    def from_setting(cls, row: PaymentSetting) -> "GatewayCredentials":
        return cls(key_id=row.razorpay_key_id, key_secret=row.razorpay_key_secret, setting_id=row.id)


def sign(secret: str, order_id: str, payment_id: str) -> str:
    """Hex HMAC-SHA256 of ``order_id|payment_id``, as the gateway signs checkouts."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signature_matches(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    expected = sign(secret, order_id, payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))


class CredentialStore:
    """Process-wide holder of the live credential snapshot."""

    def __init__(self):
        self._current: Optional[GatewayCredentials] = None
        self._write_lock = threading.Lock()

    def snapshot(self) -> Optional[GatewayCredentials]:
        return self._current

    @property
    def configured(self) -> bool:
        return self._current is not None

    def load(self, db: Session) -> Optional[GatewayCredentials]:
        """Reload the latest settings row; leaves the gateway unconfigured on failure."""
        try:
            row = (
                db.query(PaymentSetting)
                .order_by(PaymentSetting.updated_at.desc(), PaymentSetting.id.desc())
                .first()
            )
        except SQLAlchemyError as e:
            payment_logger.error("Error loading payment gateway keys", error=e)
            self._current = None
            return None

        if row is None:
            payment_logger.warning("Payment gateway keys not configured")
            self._current = None
            return None

        self._current = GatewayCredentials.from_setting(row)
        payment_logger.info("Payment gateway credentials loaded", key_id=row.razorpay_key_id)
        return self._current

    def rotate(self, db: Session, key_id: str, key_secret: str) -> GatewayCredentials:
        """Append a settings row and make it live."""
        with self._write_lock:
            row = PaymentSetting(razorpay_key_id=key_id, razorpay_key_secret=key_secret, updated_at=utcnow())
            db.add(row)
            db.commit()
            db.refresh(row)
            self._current = GatewayCredentials.from_setting(row)
        payment_logger.info("Payment gateway credentials rotated", key_id=key_id, setting_id=row.id)
        return self._current

    def clear(self):
        self._current = None


credential_store = CredentialStore()


class RazorpayClient:
    """Minimal Razorpay Orders API client bound to one credential snapshot."""

    def __init__(self, credentials: GatewayCredentials, base_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.credentials = credentials
        self.base_url = (base_url or settings.razorpay_base_url).rstrip("/")
        self.timeout = timeout or settings.gateway_timeout

    @timed(payment_logger)
    def create_order(self, amount: int, currency: str, receipt: str,
                     notes: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Create an order for ``amount`` minor units. Never retried."""
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
            "notes": notes or {},
        }
        try:
            response = requests.post(
                f"{self.base_url}/orders",
                json=payload,
                auth=(self.credentials.key_id, self.credentials.key_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GatewayError("Payment gateway unreachable") from e

        if response.status_code >= 400:
            payment_logger.warning(
                "Gateway rejected order",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise GatewayError("Payment gateway rejected the order", {"status_code": response.status_code})

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError("Payment gateway returned an invalid response") from e


def get_gateway_factory():
    """Dependency returning the callable that builds a client from a snapshot."""
    return RazorpayClient
