"""Account (public profile) model."""

import re
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from social_accounts.models.base import Base, TimestampMixin
from social_accounts.models.validation import Errors, Validatable

if TYPE_CHECKING:
    from social_accounts.models.user import User

USERNAME_RE = re.compile(r"\A[a-z0-9_]+\Z", re.IGNORECASE)
USERNAME_MAX_LENGTH = 30


class Account(Base, TimestampMixin, Validatable):
    """The profile a user posts as: handle, display name and lock state."""

    __tablename__ = "accounts"
    __table_args__ = (UniqueConstraint("username", "domain", name="uq_accounts_username_domain"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    # None for accounts hosted on this instance
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)
    locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    user: Mapped["User | None"] = relationship(back_populates="account")

    @property
    def local(self) -> bool:
        return self.domain is None

    @property
    def acct(self) -> str:
        return self.username if self.local else f"{self.username}@{self.domain}"

    def validate(self, errors: Errors) -> None:
        if not self.username:
            errors.add("username", "can't be blank")
            return
        if self.local:
            if not USERNAME_RE.match(self.username):
                errors.add("username", "only letters, numbers and underscores")
            if len(self.username) > USERNAME_MAX_LENGTH:
                errors.add("username", f"is too long (maximum is {USERNAME_MAX_LENGTH} characters)")
