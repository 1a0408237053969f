"""API dependencies."""

from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, status
from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from social_accounts.config import settings
from social_accounts.database import get_db
from social_accounts.models import User

# Session serializer
serializer = URLSafeTimedSerializer(settings.secret_key)
SESSION_COOKIE_NAME = "session"
SESSION_MAX_AGE = 60 * 60 * 24 * 30  # 30 days

DbSession = Annotated[AsyncSession, Depends(get_db)]


def create_session_token(user_id: int) -> str:
    """Create a signed session token for a user."""
    return serializer.dumps({"user_id": user_id})


def decode_session_token(token: str) -> int | None:
    """Decode a session token and return the user ID, or None if invalid."""
    try:
        data: dict[str, int] = serializer.loads(token, max_age=SESSION_MAX_AGE)
        return data.get("user_id")
    except BadSignature:
        return None


async def get_current_user_optional(
    db: DbSession,
    session: Annotated[str | None, Cookie(alias=SESSION_COOKIE_NAME)] = None,
) -> User | None:
    """Get the current user if authenticated, or None."""
    if not session:
        return None

    user_id = decode_session_token(session)
    if user_id is None:
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    user: Annotated[User | None, Depends(get_current_user_optional)],
) -> User:
    """Get the current authenticated user from session cookie."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


async def get_current_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Require the current user to be an administrator."""
    if not user.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentAdmin = Annotated[User, Depends(get_current_admin)]
