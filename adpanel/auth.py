"""
Authentication utilities for JWT tokens, password hashing and role gating.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .database import get_db
from .errors import Forbidden, Unauthorized
from .models.user import User
from .config import get_settings

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)


@dataclass(frozen=True)
class Capabilities:
    """What an authenticated identity may do beyond its own resources."""
    is_admin: bool = False


def capabilities_for(user: User) -> Capabilities:
    return Capabilities(is_admin=bool(user.is_admin))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token(data: dict) -> str:
    """Create a JWT refresh token with longer expiration."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def token_claims(user: User, **extra) -> dict:
    # JWT sub claim must be a string
    return {"sub": str(user.id), "email": user.email, **extra}


def create_tokens(user: User) -> Tuple[str, str]:
    """Create both access and refresh tokens for a user."""
    data = token_claims(user)
    return create_access_token(data), create_refresh_token(data)


def verify_token(token: str, expected_type: str = "access") -> Optional[dict]:
    """Verify a JWT token and return its payload."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type", "access") != expected_type:
        return None
    return payload


def _user_from_payload(payload: Optional[dict], db: Session) -> Optional[User]:
    if not payload:
        return None

    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        return None
    return user


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Get the current user from the JWT token (optional auth)."""
    if not token:
        return None
    return _user_from_payload(verify_token(token, "access"), db)


def get_required_user(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """Get the current user, raising 401 if not authenticated."""
    if not current_user:
        raise Unauthorized("Not authenticated")
    return current_user


def get_admin_user(current_user: User = Depends(get_required_user)) -> User:
    """Get the current user, raising 403 unless it carries the admin capability."""
    if not capabilities_for(current_user).is_admin:
        raise Forbidden("Forbidden: admin only")
    return current_user


def refresh_access_token(refresh_token: str, db: Session) -> Optional[Tuple[str, str]]:
    """Use a refresh token to get new access and refresh tokens."""
    user = _user_from_payload(verify_token(refresh_token, "refresh"), db)
    if not user:
        return None
    return create_tokens(user)


def create_impersonation_token(target: User, admin: User) -> str:
    """Access token for ``target`` issued on an admin's behalf (shadow login)."""
    return create_access_token(token_claims(target, impersonated_by=admin.id))
