"""Password hashing and token helpers."""

import base64
import hashlib
import hmac
import secrets

import bcrypt

from social_accounts.config import settings


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def generate_random_password() -> str:
    """Generate a password for accounts that never sign in with one."""
    return base64.b64encode(secrets.token_bytes(16)).decode("ascii")


def generate_token() -> str:
    """Generate a URL-safe random token for confirmation and recovery links."""
    return secrets.token_urlsafe(20)


def token_digest(token: str) -> str:
    """Keyed digest of a token, the form in which tokens are stored."""
    return hmac.new(
        settings.secret_key.encode("utf-8"), token.encode("utf-8"), hashlib.sha256
    ).hexdigest()
