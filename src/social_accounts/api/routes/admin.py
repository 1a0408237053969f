"""Administration routes."""

from typing import Any

from fastapi import APIRouter

from social_accounts.api.deps import CurrentAdmin, DbSession
from social_accounts.api.serializers import serialize_user
from social_accounts.users import scopes

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def list_users(
    db: DbSession,
    current_user: CurrentAdmin,
    admins: bool = False,
    confirmed: bool = False,
    inactive: bool = False,
    email: str | None = None,
    ip: str | None = None,
    limit: int = 40,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """List users, newest first, narrowed by any of the given filters."""
    stmt = scopes.recent()
    if admins:
        stmt = scopes.admins(stmt)
    if confirmed:
        stmt = scopes.confirmed(stmt)
    if inactive:
        stmt = scopes.inactive(stmt)
    if email:
        stmt = scopes.matches_email(email, stmt)
    if ip:
        stmt = scopes.with_recent_ip_address(ip, stmt)

    result = await db.execute(stmt.limit(min(limit, 200)).offset(offset))
    return [serialize_user(user) for user in result.scalars().all()]
