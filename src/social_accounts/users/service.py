"""User persistence and account lifecycle operations."""

import logging

from sqlalchemy import func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from social_accounts import otp
from social_accounts.auth import token_digest
from social_accounts.models import Account, RecordInvalid, User
from social_accounts.users.errors import (
    InvalidCredentialsError,
    InvalidOTPError,
    InvalidTokenError,
    OTPRequiredError,
    TwoFactorAlreadyEnabledError,
    UnconfirmedAccountError,
)

logger = logging.getLogger(__name__)


async def _email_taken(session: AsyncSession, user: User, address: str) -> bool:
    stmt = select(User.id).where(User.email == address)
    if user.id is not None:
        stmt = stmt.where(User.id != user.id)
    with session.no_autoflush:
        result = await session.execute(stmt)
    return result.first() is not None


async def _username_taken(session: AsyncSession, account: Account) -> bool:
    stmt = select(Account.id).where(
        func.lower(Account.username) == account.username.lower(),
        Account.domain.is_(None) if account.domain is None else Account.domain == account.domain,
    )
    if account.id is not None:
        stmt = stmt.where(Account.id != account.id)
    with session.no_autoflush:
        result = await session.execute(stmt)
    return result.first() is not None


async def _discard_changes(session: AsyncSession, user: User) -> None:
    """Drop in-memory changes to a record that failed validation."""
    state = inspect(user)
    if state.pending:
        session.expunge(user)
    elif state.persistent:
        await session.refresh(user)


async def save(session: AsyncSession, user: User) -> bool:
    """
    Validate and persist a user.

    Args:
        session: Database session
        user: New or loaded user

    Returns:
        True if the user was flushed, False if validation failed. Errors are
        left on ``user.errors``; a rejected persistent user is reloaded so the
        session holds no invalid changes.
    """
    errors = user.validation_errors()
    if not errors.get("email") and await _email_taken(session, user, user.email):
        errors.add("email", "has already been taken")
    if (
        user.unconfirmed_email
        and not errors.get("unconfirmed_email")
        and await _email_taken(session, user, user.unconfirmed_email)
    ):
        errors.add("unconfirmed_email", "has already been taken")
    if (
        user.account is not None
        and user.account.username
        and await _username_taken(session, user.account)
    ):
        errors.add("account.username", "has already been taken")

    if errors:
        logger.debug("User %s failed validation: %s", user.id, errors.full_messages())
        await _discard_changes(session, user)
        return False

    session.add(user)
    await session.flush()
    return True


async def save_or_raise(session: AsyncSession, user: User) -> None:
    """Persist a user, raising RecordInvalid when validation fails."""
    if not await save(session, user):
        raise RecordInvalid(user, user.errors)


async def find_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def register(
    session: AsyncSession,
    *,
    email: str,
    password: str,
    password_confirmation: str | None,
    username: str,
    locale: str | None = None,
) -> User:
    """
    Create a user and their account, pending email confirmation.

    Raises:
        RecordInvalid: If the user or account fails validation
    """
    user = User(
        email=email,
        password=password,
        password_confirmation=password_confirmation,
        locale=locale or None,
        account=Account(username=username),
    )
    user.generate_confirmation_token()
    await save_or_raise(session, user)
    logger.info("Registered user %d (@%s)", user.id, username)
    return user


async def confirm_by_token(session: AsyncSession, token: str) -> User:
    """
    Confirm the user holding a confirmation token.

    Raises:
        InvalidTokenError: If no user holds the token
    """
    result = await session.execute(select(User).where(User.confirmation_token == token))
    user = result.scalar_one_or_none()
    if user is None:
        raise InvalidTokenError("Confirmation token is invalid")

    user.confirm()
    await save_or_raise(session, user)
    logger.info("Confirmed user %d", user.id)
    return user


async def authenticate(
    session: AsyncSession,
    email: str,
    password: str,
    otp_attempt: str | None = None,
    ip: str | None = None,
    remember: bool = False,
) -> User:
    """
    Check credentials and record the sign-in.

    Args:
        session: Database session
        email: Email address entered
        password: Password entered
        otp_attempt: TOTP code or backup code, required when two-factor is on
        ip: Client IP address for sign-in tracking
        remember: Whether to start a remember-me period

    Returns:
        The signed-in user

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        UnconfirmedAccountError: The email address is not confirmed
        OTPRequiredError: Two-factor is on and no code was given
        InvalidOTPError: The code was rejected
    """
    user = await find_by_email(session, email)
    if user is None or not user.valid_password(password):
        logger.warning("Failed sign-in for %s from %s", email, ip)
        raise InvalidCredentialsError("Invalid email or password")

    if not user.confirmed:
        raise UnconfirmedAccountError("You have to confirm your email address before continuing")

    if user.otp_required_for_login:
        if not otp_attempt:
            raise OTPRequiredError("Two-factor authentication code required")
        if not (
            user.validate_and_consume_otp(otp_attempt)
            or user.invalidate_otp_backup_code(otp_attempt)
        ):
            logger.warning("Invalid two-factor code for user %d from %s", user.id, ip)
            raise InvalidOTPError("Invalid two-factor authentication code")

    user.update_tracked_fields(ip)
    if remember:
        user.remember_me()
    await save_or_raise(session, user)
    logger.info("User %d signed in from %s", user.id, ip)
    return user


async def sign_out(session: AsyncSession, user: User) -> None:
    user.forget_me()
    await save_or_raise(session, user)


async def request_password_reset(session: AsyncSession, email: str) -> str | None:
    """
    Start password recovery for an email address.

    Returns:
        The raw reset token for delivery to the user, or None if no user has
        the address
    """
    user = await find_by_email(session, email)
    if user is None:
        return None

    token = user.generate_reset_password_token()
    await save_or_raise(session, user)
    logger.info("Password reset requested for user %d", user.id)
    return token


async def reset_password_by_token(
    session: AsyncSession, token: str, password: str, password_confirmation: str
) -> User:
    """
    Set a new password using a reset token.

    Raises:
        InvalidTokenError: Unknown or expired token
        RecordInvalid: The new password fails validation
    """
    result = await session.execute(
        select(User).where(User.reset_password_token == token_digest(token))
    )
    user = result.scalar_one_or_none()
    if user is None or not user.reset_password_period_valid():
        raise InvalidTokenError("Reset password token is invalid or has expired")

    user.reset_password(password, password_confirmation)
    await save_or_raise(session, user)
    logger.info("Password reset for user %d", user.id)
    return user


async def begin_two_factor_setup(session: AsyncSession, user: User) -> str:
    """
    Store a fresh TOTP secret for a user.

    Returns:
        Provisioning URI for an authenticator app

    Raises:
        TwoFactorAlreadyEnabledError: If two-factor is already required
    """
    if user.otp_required_for_login:
        raise TwoFactorAlreadyEnabledError("Two-factor authentication is already enabled")

    user.otp_secret = otp.generate_otp_secret()
    await save_or_raise(session, user)
    return user.otp_provisioning_uri()


async def confirm_two_factor(session: AsyncSession, user: User, code: str) -> list[str]:
    """
    Turn on two-factor authentication after the user proves their app works.

    Returns:
        Plaintext backup codes, shown to the user once

    Raises:
        InvalidOTPError: If the code does not match the stored secret
    """
    if not user.validate_and_consume_otp(code):
        raise InvalidOTPError("Invalid two-factor authentication code")

    user.otp_required_for_login = True
    codes = user.generate_otp_backup_codes()
    await save_or_raise(session, user)
    logger.info("Enabled two-factor authentication for user %d", user.id)
    return codes


async def disable_two_factor(session: AsyncSession, user: User) -> None:
    """
    Turn off two-factor authentication and drop all backup codes.

    Raises:
        RecordInvalid: If the user cannot be saved
    """
    user.otp_required_for_login = False
    if user.otp_backup_codes is not None:
        user.otp_backup_codes.clear()
    await save_or_raise(session, user)
    logger.info("Disabled two-factor authentication for user %d", user.id)


async def change_email(
    session: AsyncSession, user: User, new_email: str, current_password: str
) -> str:
    """
    Hold a new email address until the user confirms it.

    The current address stays in use for sign-in until the confirmation link
    sent to the new address is followed.

    Args:
        session: Database session
        user: Signed-in user
        new_email: Address to switch to
        current_password: Password entered to authorize the change

    Returns:
        Confirmation token for the new address

    Raises:
        InvalidCredentialsError: If the password is wrong
        RecordInvalid: If the new address is invalid or taken
    """
    if not user.valid_password(current_password):
        raise InvalidCredentialsError("Invalid password")

    token = user.postpone_email_change(new_email)
    await save_or_raise(session, user)
    logger.info("User %d requested an email change", user.id)
    return token
