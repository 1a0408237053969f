"""User model."""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column, relationship

from social_accounts import crypto, otp
from social_accounts.auth import generate_token, hash_password, token_digest, verify_password
from social_accounts.config import settings as app_settings
from social_accounts.locales import is_available_locale
from social_accounts.models.base import Base, TimestampMixin, utcnow
from social_accounts.models.setting import SettingsStore
from social_accounts.models.validation import Errors, Validatable

if TYPE_CHECKING:
    from social_accounts.models.account import Account
    from social_accounts.models.setting import Setting

PASSWORD_LENGTH = range(8, 129)


class User(Base, TimestampMixin, Validatable):
    """An authenticated principal owning exactly one account."""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("provider", "uid", name="uq_users_provider_uid"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, default="")
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    locale: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # Database authentication
    encrypted_password: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    # Recovery
    reset_password_token: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True
    )
    reset_password_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Remember me
    remember_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Sign-in tracking
    sign_in_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_sign_in_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_sign_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    current_sign_in_ip: Mapped[str | None] = mapped_column(String(45), nullable=True, index=True)
    last_sign_in_ip: Mapped[str | None] = mapped_column(String(45), nullable=True, index=True)

    # Confirmation
    confirmation_token: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmation_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    unconfirmed_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_emailed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Two-factor authentication
    encrypted_otp_secret: Mapped[str | None] = mapped_column(String(255), nullable=True)
    consumed_timestep: Mapped[int | None] = mapped_column(Integer, nullable=True)
    otp_required_for_login: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    otp_backup_codes: Mapped[list[str] | None] = mapped_column(
        MutableList.as_mutable(JSON), nullable=True
    )

    # OAuth
    provider: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    hide_oauth: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    filtered_languages: Mapped[list[str | None]] = mapped_column(
        MutableList.as_mutable(JSON), default=list, server_default="[]", nullable=False
    )

    # Relationships
    account: Mapped["Account"] = relationship(back_populates="user", lazy="selectin")
    setting_records: Mapped[list["Setting"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", lazy="selectin"
    )

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("filtered_languages", [])
        kwargs.setdefault("setting_records", [])
        super().__init__(**kwargs)

    # Password

    @property
    def password(self) -> str | None:
        """The plaintext password assigned in this process, if any."""
        return getattr(self, "_password", None)

    @password.setter
    def password(self, value: str | None) -> None:
        self._password = value
        self.encrypted_password = hash_password(value) if value else ""

    @property
    def password_confirmation(self) -> str | None:
        return getattr(self, "_password_confirmation", None)

    @password_confirmation.setter
    def password_confirmation(self, value: str | None) -> None:
        self._password_confirmation = value

    def valid_password(self, password: str) -> bool:
        return verify_password(password, self.encrypted_password)

    # Validation

    def sanitize_languages(self) -> None:
        """Drop blank entries from the filtered languages list."""
        languages = self.filtered_languages or []
        cleaned = [language for language in languages if language and language.strip()]
        if cleaned != languages or self.filtered_languages is None:
            self.filtered_languages = cleaned

    def before_validation(self) -> None:
        if self.email:
            normalized = self.email.strip().lower()
            if normalized != self.email:
                self.email = normalized
        self.sanitize_languages()

    def validate(self, errors: Errors) -> None:
        self._validate_email(errors, "email", self.email)
        if self.unconfirmed_email:
            self._validate_email(errors, "unconfirmed_email", self.unconfirmed_email)

        if self.locale and not is_available_locale(self.locale):
            errors.add("locale", "is not included in the list")

        if not self.encrypted_password:
            errors.add("password", "can't be blank")
        elif self.password is not None and len(self.password) not in PASSWORD_LENGTH:
            errors.add(
                "password",
                f"length must be between {PASSWORD_LENGTH.start} and {PASSWORD_LENGTH.stop - 1}",
            )
        if self.password_confirmation is not None and self.password_confirmation != self.password:
            errors.add("password_confirmation", "doesn't match password")

        if self.account is None:
            errors.add("account", "must exist")
        else:
            errors.merge(self.account.validation_errors(), "account")

    def _validate_email(self, errors: Errors, field: str, address: str) -> None:
        if not address:
            errors.add(field, "can't be blank")
            return
        try:
            domain = validate_email(address, check_deliverability=False).domain.lower()
        except EmailNotValidError:
            errors.add(field, "is invalid")
            return

        if _domain_listed(domain, app_settings.email_domain_blacklist):
            errors.add(field, "is blocked")
        elif app_settings.email_domain_whitelist and not _domain_listed(
            domain, app_settings.email_domain_whitelist
        ):
            errors.add(field, "is blocked")

    # Confirmation

    @property
    def confirmed(self) -> bool:
        return self.confirmed_at is not None

    def generate_confirmation_token(self) -> str:
        self.confirmation_token = generate_token()
        self.confirmation_sent_at = utcnow()
        return self.confirmation_token

    def postpone_email_change(self, new_email: str) -> str:
        """Hold a new address in unconfirmed_email until it is confirmed."""
        self.unconfirmed_email = new_email.strip().lower()
        return self.generate_confirmation_token()

    def confirm(self) -> bool:
        """Mark the user confirmed, applying any pending email change.

        Returns False if there was nothing left to confirm.
        """
        if self.confirmed and not self.unconfirmed_email:
            return False
        if self.unconfirmed_email:
            self.email = self.unconfirmed_email
            self.unconfirmed_email = None
        self.confirmed_at = utcnow()
        self.confirmation_token = None
        return True

    # Recovery

    def generate_reset_password_token(self) -> str:
        """Store a digest of a new reset token and return the raw token."""
        raw = generate_token()
        self.reset_password_token = token_digest(raw)
        self.reset_password_sent_at = utcnow()
        return raw

    def reset_password_period_valid(self) -> bool:
        if self.reset_password_sent_at is None:
            return False
        sent_at = _aware(self.reset_password_sent_at)
        return utcnow() - sent_at < timedelta(hours=app_settings.reset_password_within_hours)

    def reset_password(self, new_password: str, new_password_confirmation: str) -> None:
        self.password = new_password
        self.password_confirmation = new_password_confirmation
        self.reset_password_token = None
        self.reset_password_sent_at = None

    # Remember me

    def remember_me(self) -> None:
        self.remember_created_at = utcnow()

    def forget_me(self) -> None:
        self.remember_created_at = None

    # Sign-in tracking

    def update_tracked_fields(self, ip: str | None, at: datetime | None = None) -> None:
        now = at or utcnow()
        self.last_sign_in_at = self.current_sign_in_at or now
        self.current_sign_in_at = now
        self.last_sign_in_ip = self.current_sign_in_ip or ip
        self.current_sign_in_ip = ip
        self.sign_in_count = (self.sign_in_count or 0) + 1

    # Two-factor authentication

    @property
    def otp_secret(self) -> str | None:
        if not self.encrypted_otp_secret:
            return None
        return crypto.decrypt(self.encrypted_otp_secret)

    @otp_secret.setter
    def otp_secret(self, value: str | None) -> None:
        self.encrypted_otp_secret = crypto.encrypt(value) if value else None

    def otp_provisioning_uri(self) -> str:
        """URI for an authenticator app to scan. Requires a generated secret."""
        secret = self.otp_secret
        if secret is None:
            raise ValueError("No two-factor secret has been generated")
        return otp.provisioning_uri(secret, self.email)

    def validate_and_consume_otp(self, code: str, at: datetime | None = None) -> bool:
        """Accept a TOTP code once; codes from a consumed time step are refused."""
        secret = self.otp_secret
        if not secret or not code:
            return False
        timestep = otp.matching_timestep(secret, code, at)
        if timestep is None:
            return False
        if self.consumed_timestep is not None and timestep <= self.consumed_timestep:
            return False
        self.consumed_timestep = timestep
        return True

    def generate_otp_backup_codes(self) -> list[str]:
        """Replace the stored backup codes, returning the new plaintext codes."""
        codes, hashes = otp.generate_backup_codes()
        self.otp_backup_codes = hashes
        return codes

    def invalidate_otp_backup_code(self, code: str) -> bool:
        if not self.otp_backup_codes or not code:
            return False
        for hashed in self.otp_backup_codes:
            if otp.backup_code_matches(code, hashed):
                self.otp_backup_codes.remove(hashed)
                return True
        return False

    # Settings

    @property
    def settings(self) -> SettingsStore:
        return SettingsStore(self)

    @property
    def preferred_locale(self) -> str:
        return self.locale or app_settings.default_locale

    @property
    def setting_default_privacy(self) -> str:
        return self.settings.default_privacy or ("private" if self.account.locked else "public")

    @property
    def setting_boost_modal(self) -> bool:
        return self.settings.boost_modal

    @property
    def setting_auto_play_gif(self) -> bool:
        return self.settings.auto_play_gif

    # OAuth

    @property
    def nico_url(self) -> str | None:
        if self.uid and not self.hide_oauth:
            return f"{app_settings.oauth_profile_base_url}{self.uid}"
        return None


def _domain_listed(domain: str, domains: list[str]) -> bool:
    """Match a domain or any of its parent domains against a list."""
    domain = domain.lower()
    return any(domain == entry or domain.endswith(f".{entry}") for entry in domains)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=UTC)
