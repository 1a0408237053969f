"""Reusable query filters over users.

Each scope takes an optional statement and returns it narrowed, so they
compose: ``confirmed(admins())``.
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy import Select, or_, select

from social_accounts.config import settings
from social_accounts.models import User


def _base(stmt: Select[tuple[User]] | None) -> Select[tuple[User]]:
    return select(User) if stmt is None else stmt


def recent(stmt: Select[tuple[User]] | None = None) -> Select[tuple[User]]:
    """Newest users first."""
    return _base(stmt).order_by(User.id.desc())


def admins(stmt: Select[tuple[User]] | None = None) -> Select[tuple[User]]:
    return _base(stmt).where(User.admin.is_(True))


def confirmed(stmt: Select[tuple[User]] | None = None) -> Select[tuple[User]]:
    return _base(stmt).where(User.confirmed_at.is_not(None))


def inactive(
    stmt: Select[tuple[User]] | None = None, now: datetime | None = None
) -> Select[tuple[User]]:
    """Users whose last active sign-in is older than the active duration."""
    threshold = (now or datetime.now(UTC)) - timedelta(days=settings.active_duration_days)
    return _base(stmt).where(User.current_sign_in_at < threshold)


def matches_email(value: str, stmt: Select[tuple[User]] | None = None) -> Select[tuple[User]]:
    """Users whose email starts with value, ignoring case."""
    return _base(stmt).where(User.email.ilike(f"{value}%"))


def with_recent_ip_address(
    value: str, stmt: Select[tuple[User]] | None = None
) -> Select[tuple[User]]:
    """Users who last signed in, or signed in before that, from an IP address."""
    return _base(stmt).where(
        or_(User.current_sign_in_ip == value, User.last_sign_in_ip == value)
    )
