"""Linking users to external OAuth identities."""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_accounts.auth import generate_random_password
from social_accounts.models import Account, RecordInvalid, User
from social_accounts.users.service import save_or_raise

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthIdentity:
    """An identity asserted by an OAuth provider after a successful callback."""

    provider: str
    uid: str
    nickname: str | None = None

    @property
    def placeholder_email(self) -> str:
        return f"{self.provider}-{self.uid}-dummy@example.com"


async def _find_by_identity(session: AsyncSession, identity: OAuthIdentity) -> User | None:
    result = await session.execute(
        select(User).where(User.provider == identity.provider, User.uid == identity.uid)
    )
    return result.scalar_one_or_none()


async def find_from_oauth(session: AsyncSession, identity: OAuthIdentity) -> User:
    """
    Find the user linked to an OAuth identity, creating one on first login.

    New users get a random password, a placeholder email address derived from
    the identity and an account named after the provider nickname. They are
    confirmed straight away, as the provider has vouched for them.

    Two logins racing for the same identity are settled by the unique
    (provider, uid) constraint: the insert runs in a savepoint and the loser
    returns the row the winner created.

    Args:
        session: Database session
        identity: Provider name, provider user id and nickname

    Returns:
        The existing or newly created user

    Raises:
        RecordInvalid: If the new user or account fails validation
    """
    user = await _find_by_identity(session, identity)
    if user is not None:
        return user

    password = generate_random_password()
    user = User(
        uid=identity.uid,
        provider=identity.provider,
        email=identity.placeholder_email,
        password=password,
        password_confirmation=password,
        account=Account(username=identity.nickname or ""),
    )
    user.confirm()

    try:
        async with session.begin_nested():
            await save_or_raise(session, user)
    except (IntegrityError, RecordInvalid):
        existing = await _find_by_identity(session, identity)
        if existing is None:
            raise
        logger.info(
            "Concurrent sign-in already created user %d for %s:%s",
            existing.id,
            identity.provider,
            identity.uid,
        )
        return existing

    logger.info("Created user %d from %s:%s", user.id, identity.provider, identity.uid)
    return user
