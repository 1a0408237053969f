"""Time-based one-time passwords and backup codes."""

import secrets
from datetime import UTC, datetime

import bcrypt
import pyotp
from pyotp.utils import strings_equal

from social_accounts.config import settings

BACKUP_CODE_BYTES = 8


def generate_otp_secret() -> str:
    """Generate a base32 TOTP secret."""
    return pyotp.random_base32(length=32)


def provisioning_uri(secret: str, email: str) -> str:
    """Build the otpauth:// URI an authenticator app scans."""
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=settings.otp_issuer)


def matching_timestep(secret: str, code: str, at: datetime | None = None) -> int | None:
    """
    Find the time step a code was generated for.

    Args:
        secret: Base32 TOTP secret
        code: Code entered by the user
        at: Reference time, defaults to now

    Returns:
        The matching time step within the allowed drift, or None
    """
    code = code.strip()
    if not code.isdigit():
        return None

    totp = pyotp.TOTP(secret)
    at = at or datetime.now(UTC)
    current = totp.timecode(at)
    drift_steps = settings.otp_allowed_drift // totp.interval

    for offset in range(-drift_steps, drift_steps + 1):
        if strings_equal(code, totp.at(at, counter_offset=offset)):
            return current + offset
    return None


def generate_backup_codes(count: int | None = None) -> tuple[list[str], list[str]]:
    """
    Generate plaintext backup codes and their hashes.

    Returns:
        (plaintext codes shown once to the user, bcrypt hashes to store)
    """
    count = settings.otp_number_of_backup_codes if count is None else count
    codes = [secrets.token_hex(BACKUP_CODE_BYTES) for _ in range(count)]
    hashes = [
        bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode(
            "utf-8"
        )
        for code in codes
    ]
    return codes, hashes


def backup_code_matches(code: str, hashed: str) -> bool:
    """Check a backup code against one stored hash."""
    try:
        return bcrypt.checkpw(code.strip().encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
