"""
Super-admin routes: gateway credentials, packages and customer accounts.

Every route depends on ``get_admin_user`` at router level, so a non-admin is
refused before any lookup happens.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import create_impersonation_token, get_admin_user
from ..database import get_db
from ..errors import Conflict, NotFound
from ..logging_config import api_logger
from ..models.package import Package
from ..models.payment import PaymentSetting
from ..models.user import User
from ..responses import require
from ..schemas.auth import UserResponse
from ..schemas.packages import PackageCreate, PackageResponse, PackageUpdate
from ..schemas.payments import PaymentSettingsUpdate
from ..services.gateway import credential_store

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(get_admin_user)])


# ============================================================
# PAYMENT SETTINGS
# ============================================================

@router.get("/payment-settings")
def get_payment_settings(db: Session = Depends(get_db)):
    """Live key id; the secret is never returned."""
    row = (
        db.query(PaymentSetting)
        .order_by(PaymentSetting.updated_at.desc(), PaymentSetting.id.desc())
        .first()
    )
    if not row:
        raise NotFound("Payment settings not configured")
    return {
        "razorpay_key_id": row.razorpay_key_id,
        "updated_at": row.updated_at.isoformat(),
    }


@router.post("/payment-settings")
def update_payment_settings(data: PaymentSettingsUpdate, db: Session = Depends(get_db)):
    """Append a credential set and make it live for new operations."""
    key_id = require(data.razorpay_key_id, "razorpay_key_id").strip()
    key_secret = require(data.razorpay_key_secret, "razorpay_key_secret").strip()
    credential_store.rotate(db, key_id, key_secret)
    return {"message": "Payment settings updated"}


# ============================================================
# PACKAGES
# ============================================================

@router.post("/packages", response_model=PackageResponse, status_code=status.HTTP_201_CREATED)
def create_package(data: PackageCreate, db: Session = Depends(get_db)):
    package = Package(**data.model_dump())
    db.add(package)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Package name already exists")
    db.refresh(package)
    return package


@router.patch("/packages/{package_id}", response_model=PackageResponse)
def update_package(package_id: int, update: PackageUpdate, db: Session = Depends(get_db)):
    package = db.query(Package).filter(Package.id == package_id).first()
    if not package:
        raise NotFound("Package not found")

    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(package, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Package name already exists")
    db.refresh(package)
    return package


# ============================================================
# CUSTOMERS / SHADOW LOGIN
# ============================================================

@router.get("/users")
def list_users(db: Session = Depends(get_db)):
    users = db.query(User).order_by(User.id).all()
    return {"users": [UserResponse.model_validate(u).model_dump() for u in users]}


@router.post("/users/{user_id}/impersonate")
def impersonate_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    """Issue a session for a customer without their credential."""
    target = db.query(User).filter(User.id == user_id).first()
    if not target or not target.is_active:
        raise NotFound("User not found")

    token = create_impersonation_token(target, admin)
    api_logger.warning("Shadow login issued", admin_id=admin.id, user_id=target.id)
    return {"token": token, "access_token": token, "token_type": "bearer", "user_id": target.id}
