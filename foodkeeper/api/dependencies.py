"""
FastAPI Dependencies
Common dependencies for authentication, database access, pagination and dates.
"""

from datetime import date
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.config import get_settings
from foodkeeper.shared.database import get_session
from foodkeeper.shared.models import User

settings = get_settings()
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token
        session: Database session

    Returns:
        User: Authenticated, active user

    Raises:
        HTTPException: If token is missing/invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
        if payload.get("type") != "access":
            raise credentials_exception

        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise credentials_exception

    result = await session.execute(
        select(User).where(
            User.id == user_id,
            User.is_active.is_(True),
        )
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


def pagination_params(
    skip: int = 0,
    limit: int = 50,
) -> dict:
    """
    Dependency for pagination parameters.

    Args:
        skip: Number of records to skip (default: 0)
        limit: Maximum number of records to return (default: 50, max: 1000)

    Returns:
        dict: Pagination parameters
    """
    if skip < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Skip parameter must be non-negative",
        )

    if limit < 1 or limit > 1000:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Limit parameter must be between 1 and 1000",
        )

    return {"skip": skip, "limit": limit}


def get_today() -> date:
    """Reference date for expiry arithmetic (overridden in tests)."""
    return date.today()
