"""Errors raised by user lifecycle operations."""


class AuthenticationError(Exception):
    """Sign-in was refused."""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password."""

    pass


class UnconfirmedAccountError(AuthenticationError):
    """The user has not confirmed their email address yet."""

    pass


class OTPRequiredError(AuthenticationError):
    """Two-factor authentication is on and no code was given."""

    pass


class InvalidOTPError(AuthenticationError):
    """A two-factor code or backup code was rejected."""

    pass


class TwoFactorAlreadyEnabledError(Exception):
    """Two-factor setup was requested for a user who already has it."""

    pass


class InvalidTokenError(Exception):
    """A confirmation or password reset token is unknown or expired."""

    pass
