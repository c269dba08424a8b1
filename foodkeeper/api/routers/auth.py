"""
Authentication Router
Handles user registration, login, token refresh, logout, password changes,
account deactivation and preferences.
"""

import hashlib
import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.config import get_settings
from foodkeeper.api.dependencies import get_current_user
from foodkeeper.api.errors import ValidationError
from foodkeeper.api.middleware.rate_limit import limiter
from foodkeeper.api.schemas import (
    ChangePasswordRequest,
    DeactivateAccountRequest,
    LoginRequest,
    MessageResponse,
    PreferencesResponse,
    PreferencesUpdate,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from foodkeeper.api.services import preference_service
from foodkeeper.api.services.audit_service import record_audit
from foodkeeper.shared.database import get_session
from foodkeeper.shared.models import User, UserPreferences, UserSession
from foodkeeper.shared.utils.expiry import utcnow

settings = get_settings()
logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

router = APIRouter()


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_refresh_token(token: str) -> str:
    """Refresh tokens are stored as SHA-256 digests only."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_access_token(user_id: str) -> tuple[str, datetime]:
    """
    Create JWT access token.

    Returns:
        tuple: (token, expiration_time)
    """
    now = utcnow()
    expire = now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": user_id,
        "exp": expire,
        "iat": now,
        "type": "access",
    }

    token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    return token, expire


def create_refresh_token(user_id: str) -> tuple[str, datetime]:
    """
    Create JWT refresh token.

    Returns:
        tuple: (token, expiration_time)
    """
    now = utcnow()
    expire = now + timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS)

    payload = {
        "sub": user_id,
        "exp": expire,
        "iat": now,
        "type": "refresh",
        "jti": str(uuid4()),  # Token ID for revocation
    }

    token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    return token, expire


async def issue_tokens(
    session: AsyncSession,
    user: User,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> TokenResponse:
    """Create an access/refresh pair and persist the refresh session (caller commits)."""
    access_token, _ = create_access_token(str(user.id))
    refresh_token, refresh_expire = create_refresh_token(str(user.id))

    session.add(UserSession(
        user_id=user.id,
        refresh_token_hash=hash_refresh_token(refresh_token),
        expires_at=refresh_expire,
        user_agent=user_agent,
        ip_address=ip_address,
    ))

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def _client_info(request: Request) -> tuple[Optional[str], Optional[str]]:
    user_agent = request.headers.get("user-agent")
    ip_address = request.client.host if request.client else None
    return user_agent, ip_address


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a new user account with username, email and password",
)
@limiter.limit(settings.RATE_LIMIT_REGISTER)
async def register(
    request: Request,
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
) -> User:
    """Register a new user."""
    email = payload.email.lower()
    errors: dict[str, list[str]] = {}

    result = await session.execute(select(User.id).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        errors["email"] = ["Email is already registered"]

    result = await session.execute(
        select(User.id).where(func.lower(User.username) == payload.username.lower())
    )
    if result.scalar_one_or_none() is not None:
        errors["username"] = ["Username is already taken"]

    if errors:
        raise ValidationError("Validation failed", errors)

    user = User(
        username=payload.username,
        email=email,
        password_hash=hash_password(payload.password),
        email_verified=False,
        is_active=True,
    )

    session.add(user)
    await session.flush()
    await preference_service.create_default_preferences(
        session, user.id, settings.EXPIRY_ALERT_THRESHOLD_DAYS
    )
    await record_audit(session, user.id, "register", "user", user.id)
    await session.commit()
    await session.refresh(user)

    logger.info(f"New user registered: {user.username} ({user.email})")

    return user


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User login",
    description="Authenticate with email or username and return JWT tokens",
)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Authenticate user and return JWT tokens."""
    identifier = payload.email.strip()
    result = await session.execute(
        select(User).where(
            or_(
                User.email == identifier.lower(),
                User.username == identifier,
            )
        )
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning(f"Failed login attempt for: {identifier}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email/username or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    user_agent, ip_address = _client_info(request)
    tokens = await issue_tokens(session, user, user_agent, ip_address)

    user.last_login_at = utcnow()
    await record_audit(session, user.id, "login", "user", user.id)
    await session.commit()

    logger.info(f"User logged in: {user.email}")

    return tokens


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh access token",
    description="Exchange a refresh token for a new token pair (the old refresh token is revoked)",
)
@limiter.limit(settings.RATE_LIMIT_TOKEN_REFRESH)
async def refresh_token(
    request: Request,
    payload: RefreshTokenRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Rotate refresh token."""
    invalid = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired refresh token",
    )

    try:
        claims = jwt.decode(
            payload.refresh_token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise invalid

    if claims.get("type") != "refresh" or not claims.get("sub") or not claims.get("jti"):
        raise invalid

    result = await session.execute(
        select(UserSession).where(
            UserSession.refresh_token_hash == hash_refresh_token(payload.refresh_token),
            UserSession.revoked_at.is_(None),
        )
    )
    user_session = result.scalar_one_or_none()

    if not user_session or user_session.expires_at < utcnow():
        raise invalid

    user = await session.get(User, user_session.user_id)
    if user is None or not user.is_active:
        raise invalid

    # Revoke old refresh token and create new one
    user_session.revoked_at = utcnow()
    tokens = await issue_tokens(session, user, user_session.user_agent, user_session.ip_address)
    await session.commit()

    logger.info(f"Token refreshed for user: {user.id}")

    return tokens


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="User logout",
    description="Revoke refresh token and logout user",
)
async def logout(
    payload: RefreshTokenRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Logout user by revoking refresh token."""
    result = await session.execute(
        select(UserSession).where(
            UserSession.refresh_token_hash == hash_refresh_token(payload.refresh_token),
            UserSession.user_id == current_user.id,
            UserSession.revoked_at.is_(None),
        )
    )
    user_session = result.scalar_one_or_none()

    if user_session:
        user_session.revoked_at = utcnow()
        await record_audit(session, current_user.id, "logout", "user", current_user.id)
        await session.commit()

    logger.info(f"User logged out: {current_user.email}")

    return MessageResponse(message="Logged out successfully", success=True)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Get authenticated user profile",
)
async def get_current_user_profile(
    current_user: User = Depends(get_current_user),
) -> User:
    """Get current user profile."""
    return current_user


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
    description="Change password and revoke every active session",
)
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Change password; all refresh tokens stop working."""
    if not verify_password(payload.current_password, current_user.password_hash):
        raise ValidationError(
            "Validation failed",
            {"current_password": ["Current password is incorrect"]},
        )

    current_user.password_hash = hash_password(payload.new_password)
    await session.execute(
        update(UserSession)
        .where(UserSession.user_id == current_user.id, UserSession.revoked_at.is_(None))
        .values(revoked_at=utcnow())
    )
    await record_audit(session, current_user.id, "change_password", "user", current_user.id)
    await session.commit()

    logger.info(f"Password changed for user: {current_user.id}")

    return MessageResponse(message="Password changed successfully", success=True)


@router.post(
    "/deactivate",
    response_model=MessageResponse,
    summary="Deactivate account",
    description="Deactivate the current account after confirming the password; every session is revoked",
)
async def deactivate_account(
    payload: DeactivateAccountRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Deactivate account; the user can no longer log in or use tokens."""
    if not verify_password(payload.password, current_user.password_hash):
        raise ValidationError(
            "Validation failed",
            {"password": ["Password is incorrect"]},
        )

    current_user.is_active = False
    await session.execute(
        update(UserSession)
        .where(UserSession.user_id == current_user.id, UserSession.revoked_at.is_(None))
        .values(revoked_at=utcnow())
    )
    await record_audit(session, current_user.id, "account_deactivated", "user", current_user.id)
    await session.commit()

    logger.info(f"Account deactivated: {current_user.id}")

    return MessageResponse(message="Account deactivated successfully", success=True)


# ============================================================================
# Preferences
# ============================================================================

@router.get(
    "/preferences",
    response_model=PreferencesResponse,
    summary="Get preferences",
    description="Notification and display settings of the current user",
)
async def get_preferences(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserPreferences:
    return await preference_service.get_preferences(
        session, current_user.id, settings.EXPIRY_ALERT_THRESHOLD_DAYS
    )


@router.put(
    "/preferences",
    response_model=PreferencesResponse,
    summary="Update preferences",
    description="Partially update settings; expiry_alert_days must be between 0 and 30",
)
async def update_preferences(
    payload: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserPreferences:
    return await preference_service.update_preferences(
        session,
        current_user.id,
        payload.model_dump(exclude_unset=True),
        settings.EXPIRY_ALERT_THRESHOLD_DAYS,
    )
