"""Database models."""

from social_accounts.models.account import Account
from social_accounts.models.base import Base, TimestampMixin
from social_accounts.models.setting import Setting, SettingsStore
from social_accounts.models.user import User
from social_accounts.models.validation import Errors, RecordInvalid, Validatable

__all__ = [
    "Base",
    "TimestampMixin",
    "Account",
    "User",
    "Setting",
    "SettingsStore",
    "Errors",
    "RecordInvalid",
    "Validatable",
]
