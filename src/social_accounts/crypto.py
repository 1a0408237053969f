"""Encryption of two-factor secrets at rest."""

from cryptography.fernet import Fernet, InvalidToken

from social_accounts.config import settings


class EncryptionError(Exception):
    """Error during encryption/decryption."""

    pass


def _get_fernet() -> Fernet:
    """Get a Fernet instance using the configured OTP secret key."""
    key = settings.otp_secret
    if not key:
        raise EncryptionError(
            "OTP_SECRET not configured. Generate one with: "
            "python -c 'from cryptography.fernet import Fernet; "
            "print(Fernet.generate_key().decode())'"
        )

    try:
        return Fernet(key.encode())
    except ValueError as e:
        raise EncryptionError(f"Invalid OTP_SECRET key format: {e}") from e


def encrypt(plaintext: str) -> str:
    """
    Encrypt a string using Fernet symmetric encryption.

    Args:
        plaintext: The string to encrypt

    Returns:
        Base64-encoded encrypted string, or "" for empty input

    Raises:
        EncryptionError: If no usable key is configured
    """
    if not plaintext:
        return ""

    fernet = _get_fernet()
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt(ciphertext: str) -> str:
    """
    Decrypt a Fernet-encrypted string.

    Args:
        ciphertext: The encrypted string (base64-encoded)

    Returns:
        Decrypted plaintext string

    Raises:
        EncryptionError: If the key is missing or the data does not decrypt
    """
    if not ciphertext:
        return ""

    fernet = _get_fernet()
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken as e:
        raise EncryptionError("Invalid or corrupted encrypted data") from e


def generate_key() -> str:
    """Generate a new Fernet encryption key."""
    return Fernet.generate_key().decode()
