"""Operator commands for user accounts."""

import argparse
import asyncio
import logging
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from social_accounts.database import async_session_maker
from social_accounts.models import RecordInvalid, User
from social_accounts.users import scopes, service

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Reduce noise from SQLAlchemy
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


async def _load_user(db: AsyncSession, email: str) -> User | None:
    user = await service.find_by_email(db, email)
    if user is None:
        logger.error("No user with email %s", email)
    return user


async def make_admin(session_maker: async_sessionmaker[AsyncSession], email: str) -> int:
    async with session_maker() as db:
        user = await _load_user(db, email)
        if user is None:
            return 1
        user.admin = True
        await service.save_or_raise(db, user)
        await db.commit()
    logger.info("%s is now an administrator", email)
    return 0


async def confirm(session_maker: async_sessionmaker[AsyncSession], email: str) -> int:
    async with session_maker() as db:
        user = await _load_user(db, email)
        if user is None:
            return 1
        if not user.confirm():
            logger.info("%s is already confirmed", email)
            return 0
        await service.save_or_raise(db, user)
        await db.commit()
    logger.info("Confirmed %s", email)
    return 0


async def disable_two_factor(session_maker: async_sessionmaker[AsyncSession], email: str) -> int:
    async with session_maker() as db:
        user = await _load_user(db, email)
        if user is None:
            return 1
        await service.disable_two_factor(db, user)
        await db.commit()
    return 0


async def list_users(
    session_maker: async_sessionmaker[AsyncSession],
    admins: bool = False,
    confirmed: bool = False,
    inactive: bool = False,
    email: str | None = None,
    ip: str | None = None,
) -> int:
    """Print matching users, newest first, one per line."""
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

    async with session_maker() as db:
        result = await db.execute(stmt)
        users = result.scalars().all()

    for user in users:
        flags = []
        if user.admin:
            flags.append("admin")
        if not user.confirmed:
            flags.append("unconfirmed")
        if user.otp_required_for_login:
            flags.append("2fa")
        print(f"{user.id}\t@{user.account.acct}\t{user.email}\t{','.join(flags)}")
    logger.info("%d users", len(users))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="social-accounts",
        description="Manage user accounts",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("make-admin", "Grant administrator rights"),
        ("confirm", "Confirm a user's email address"),
        ("disable-2fa", "Turn off two-factor authentication"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("email")

    list_parser = subparsers.add_parser("list", help="List users, newest first")
    list_parser.add_argument("--admins", action="store_true", help="Only administrators")
    list_parser.add_argument("--confirmed", action="store_true", help="Only confirmed users")
    list_parser.add_argument("--inactive", action="store_true", help="Only inactive users")
    list_parser.add_argument("--email", help="Email address prefix")
    list_parser.add_argument("--ip", help="Current or previous sign-in IP address")

    return parser


async def run(
    args: argparse.Namespace,
    session_maker: async_sessionmaker[AsyncSession] = async_session_maker,
) -> int:
    """Dispatch a parsed command. Returns the exit code."""
    try:
        if args.command == "make-admin":
            return await make_admin(session_maker, args.email)
        if args.command == "confirm":
            return await confirm(session_maker, args.email)
        if args.command == "disable-2fa":
            return await disable_two_factor(session_maker, args.email)
        return await list_users(
            session_maker,
            admins=args.admins,
            confirmed=args.confirmed,
            inactive=args.inactive,
            email=args.email,
            ip=args.ip,
        )
    except RecordInvalid as e:
        logger.error("%s", e)
        return 1


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()
    setup_logging(args.verbose)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
