"""
Authentication routes for register, login, and token management.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import Conflict, Unauthorized
from ..limiter import limiter
from ..logging_config import api_logger
from ..models.user import User
from ..schemas.auth import UserCreate, UserLogin, UserResponse, Token, RefreshRequest
from ..auth import (
    capabilities_for,
    verify_password,
    get_password_hash,
    create_tokens,
    get_required_user,
    refresh_access_token,
)
from ..config import get_settings

settings = get_settings()

router = APIRouter(prefix="/api", tags=["auth"])

# Same body for unknown email and wrong password
INVALID_CREDENTIALS = "Invalid credentials"


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.register_rate_limit)
def register(request: Request, user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new customer account."""
    email = user_data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise Conflict("Email already registered")

    user = User(
        name=user_data.name.strip(),
        email=email,
        password_hash=get_password_hash(user_data.password),
        is_admin=email in {e.lower() for e in settings.admin_emails},
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already registered")
    db.refresh(user)

    api_logger.info("User registered", user_id=user.id)
    return {"message": "User registered successfully", "user_id": user.id}


@router.post("/login", response_model=Token)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, credentials: UserLogin, db: Session = Depends(get_db)):
    """Login with JSON body (email/password)."""
    user = db.query(User).filter(User.email == credentials.email.lower()).first()
    if not user or not verify_password(credentials.password, user.password_hash) or not user.is_active:
        raise Unauthorized(INVALID_CREDENTIALS)

    access_token, refresh_token = create_tokens(user)
    return Token(token=access_token, access_token=access_token, refresh_token=refresh_token)


@router.post("/token/refresh", response_model=Token)
@limiter.limit("10/minute")
def refresh_tokens(request: Request, refresh_request: RefreshRequest, db: Session = Depends(get_db)):
    """Get new access and refresh tokens using a valid refresh token."""
    tokens = refresh_access_token(refresh_request.refresh_token, db)
    if not tokens:
        raise Unauthorized("Invalid or expired refresh token")

    access_token, refresh_token = tokens
    return Token(token=access_token, access_token=access_token, refresh_token=refresh_token)


@router.get("/me")
def get_me(current_user: User = Depends(get_required_user)):
    """Get current authenticated user and what it may do."""
    return {
        **UserResponse.model_validate(current_user).model_dump(),
        "capabilities": {"is_admin": capabilities_for(current_user).is_admin},
    }
