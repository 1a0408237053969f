"""Tests for the user and account models."""

from datetime import UTC, datetime, timedelta

import pytest

from social_accounts.config import settings
from social_accounts.models import Account, Setting, User

TEST_PASSWORD = "password123"


def build_user(**attrs: object) -> User:
    """Build an unsaved, valid user."""
    values: dict[str, object] = {
        "email": "alice@example.com",
        "password": TEST_PASSWORD,
        "account": Account(username="alice"),
    }
    values.update(attrs)
    return User(**values)


class TestEmailValidation:
    """Tests for email validation."""

    @pytest.mark.parametrize(
        "email",
        [
            "",
            "alice",
            "alice@",
            "@example.com",
            "alice smith@example.com",
            "a@b@c",
            "alice@localhost",
            "alice@example..com",
            "alice@-example.com",
            "alice@exa_mple.com",
            "al..ice@example.com",
        ],
    )
    def test_invalid_email_fails(self, email: str) -> None:
        """Malformed addresses are rejected."""
        user = build_user(email=email)
        errors = user.validation_errors()
        assert "email" in errors

    def test_dotless_domain_is_invalid(self) -> None:
        """Hosts without a top-level domain are not accepted."""
        assert build_user(email="alice@localhost").validation_errors()["email"] == ["is invalid"]

    def test_valid_email_passes(self) -> None:
        """A well-formed address is accepted."""
        user = build_user()
        assert user.is_valid()

    def test_email_is_normalized(self) -> None:
        """Surrounding whitespace and capitals are removed before validation."""
        user = build_user(email="  Alice@Example.COM ")
        assert user.is_valid()
        assert user.email == "alice@example.com"

    def test_blacklisted_domain_blocked(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Addresses on blacklisted domains and their subdomains are blocked."""
        monkeypatch.setattr(settings, "email_domain_blacklist", ["spam.com"])
        assert build_user(email="bob@spam.com").validation_errors()["email"] == ["is blocked"]
        assert "email" in build_user(email="bob@mail.spam.com").validation_errors()
        assert build_user(email="bob@notspam.com").is_valid()

    def test_pending_email_is_validated(self) -> None:
        """A postponed address is checked like the current one."""
        user = build_user(confirmed_at=datetime.now(UTC))
        user.postpone_email_change("alice@localhost")
        assert user.validation_errors()["unconfirmed_email"] == ["is invalid"]

    def test_whitelist_restricts_domains(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """With a whitelist only listed domains are allowed."""
        monkeypatch.setattr(settings, "email_domain_whitelist", ["example.com"])
        assert build_user(email="bob@example.com").is_valid()
        assert "email" in build_user(email="bob@example.org").validation_errors()


class TestLocaleValidation:
    """Tests for locale validation."""

    def test_absent_locale_passes(self) -> None:
        """No locale is always valid."""
        assert build_user(locale=None).is_valid()
        assert build_user(locale="").is_valid()

    @pytest.mark.parametrize("locale", ["en", "ja", "pt-BR", "zh-TW"])
    def test_supported_locale_passes(self, locale: str) -> None:
        """Supported locale codes are accepted."""
        assert build_user(locale=locale).is_valid()

    @pytest.mark.parametrize("locale", ["xx", "EN", "pt_BR", "klingon"])
    def test_unsupported_locale_fails(self, locale: str) -> None:
        """Codes outside the supported set are rejected."""
        errors = build_user(locale=locale).validation_errors()
        assert errors["locale"] == ["is not included in the list"]


class TestPasswordValidation:
    """Tests for password validation."""

    def test_password_is_hashed(self) -> None:
        """Assigning a password stores a bcrypt hash."""
        user = build_user()
        assert user.encrypted_password.startswith("$2")
        assert user.valid_password(TEST_PASSWORD)
        assert not user.valid_password("wrong password")

    def test_missing_password_fails(self) -> None:
        """A user without a password is invalid."""
        user = build_user(password=None)
        assert user.validation_errors()["password"] == ["can't be blank"]

    def test_short_password_fails(self) -> None:
        """Passwords shorter than eight characters are rejected."""
        assert "password" in build_user(password="short").validation_errors()

    def test_confirmation_must_match(self) -> None:
        """A given confirmation must equal the password."""
        user = build_user(password_confirmation="something else")
        assert "password_confirmation" in user.validation_errors()
        assert build_user(password_confirmation=TEST_PASSWORD).is_valid()


class TestAccountValidation:
    """Tests for the nested account."""

    def test_account_required(self) -> None:
        """Every user owns an account."""
        user = build_user(account=None)
        assert user.validation_errors()["account"] == ["must exist"]

    def test_account_errors_are_prefixed(self) -> None:
        """Account errors surface on the user under account.<field>."""
        user = build_user(account=Account(username="not valid!"))
        assert "account.username" in user.validation_errors()

    def test_blank_username_fails(self) -> None:
        """Accounts need a username."""
        assert Account(username="").validation_errors()["username"] == ["can't be blank"]

    def test_acct(self) -> None:
        """Local accounts are addressed by username, remote ones with their domain."""
        assert Account(username="alice").acct == "alice"
        assert Account(username="bob", domain="remote.example").acct == "bob@remote.example"

    def test_remote_username_not_format_checked(self) -> None:
        """Only local usernames are restricted to word characters."""
        assert Account(username="some.one", domain="remote.example").is_valid()
        assert Account(username="some.one").validation_errors()


class TestSanitizeLanguages:
    """Tests for filtered language sanitization."""

    def test_blank_entries_removed_in_order(self) -> None:
        """Blank and null entries are dropped, keeping the rest in order."""
        user = build_user(filtered_languages=["en", "", "fr", None])
        user.sanitize_languages()
        assert user.filtered_languages == ["en", "fr"]

    def test_whitespace_entries_removed(self) -> None:
        """Whitespace-only entries count as blank."""
        user = build_user(filtered_languages=["  ", "de"])
        assert user.is_valid()
        assert user.filtered_languages == ["de"]

    def test_defaults_to_empty_list(self) -> None:
        """New users filter no languages."""
        assert build_user().filtered_languages == []


class TestConfirmation:
    """Tests for confirmation state."""

    def test_confirmed_follows_timestamp(self) -> None:
        """Confirmed exactly when confirmed_at is set."""
        user = build_user()
        assert user.confirmed is False
        user.confirmed_at = datetime.now(UTC)
        assert user.confirmed is True

    def test_confirm_clears_token(self) -> None:
        """Confirming stamps the time and clears the token."""
        user = build_user()
        token = user.generate_confirmation_token()
        assert user.confirmation_token == token
        assert user.confirm() is True
        assert user.confirmed
        assert user.confirmation_token is None

    def test_confirm_twice_returns_false(self) -> None:
        """Nothing is left to confirm the second time."""
        user = build_user()
        user.confirm()
        assert user.confirm() is False

    def test_confirm_applies_pending_email(self) -> None:
        """A postponed email change takes effect on confirmation."""
        user = build_user(confirmed_at=datetime.now(UTC))
        user.postpone_email_change("New@Example.com")
        assert user.email == "alice@example.com"
        assert user.confirm() is True
        assert user.email == "new@example.com"
        assert user.unconfirmed_email is None


class TestRecoveryAndTracking:
    """Tests for password recovery, remember-me and sign-in tracking."""

    def test_reset_token_stored_as_digest(self) -> None:
        """The raw token is returned but only a digest is kept."""
        user = build_user()
        raw = user.generate_reset_password_token()
        assert user.reset_password_token is not None
        assert user.reset_password_token != raw
        assert user.reset_password_period_valid()

    def test_reset_token_expires(self) -> None:
        """Tokens older than the reset window are no longer valid."""
        user = build_user()
        user.generate_reset_password_token()
        user.reset_password_sent_at = datetime.now(UTC) - timedelta(
            hours=settings.reset_password_within_hours + 1
        )
        assert not user.reset_password_period_valid()

    def test_reset_password_clears_token(self) -> None:
        """Resetting sets the new password and clears the token."""
        user = build_user()
        user.generate_reset_password_token()
        user.reset_password("new password 1", "new password 1")
        assert user.valid_password("new password 1")
        assert user.reset_password_token is None

    def test_remember_me(self) -> None:
        """Remember-me starts and ends a remember period."""
        user = build_user()
        user.remember_me()
        assert user.remember_created_at is not None
        user.forget_me()
        assert user.remember_created_at is None

    def test_update_tracked_fields(self) -> None:
        """A sign-in shifts current sign-in data to last and counts it."""
        user = build_user()
        first = datetime(2026, 1, 1, tzinfo=UTC)
        second = datetime(2026, 1, 2, tzinfo=UTC)

        user.update_tracked_fields("10.0.0.1", at=first)
        assert user.sign_in_count == 1
        assert user.current_sign_in_at == first
        assert user.last_sign_in_at == first
        assert user.last_sign_in_ip == "10.0.0.1"

        user.update_tracked_fields("10.0.0.2", at=second)
        assert user.sign_in_count == 2
        assert user.current_sign_in_at == second
        assert user.last_sign_in_at == first
        assert user.current_sign_in_ip == "10.0.0.2"
        assert user.last_sign_in_ip == "10.0.0.1"


class TestSettingsAccessors:
    """Tests for derived settings."""

    def test_default_privacy_public_for_unlocked(self) -> None:
        """Unlocked accounts default to public posts."""
        assert build_user().setting_default_privacy == "public"

    def test_default_privacy_private_for_locked(self) -> None:
        """Locked accounts default to private posts."""
        user = build_user(account=Account(username="alice", locked=True))
        assert user.setting_default_privacy == "private"

    def test_explicit_default_privacy_wins(self) -> None:
        """A chosen privacy overrides the lock-based fallback."""
        user = build_user(account=Account(username="alice", locked=True))
        user.settings.default_privacy = "unlisted"
        assert user.setting_default_privacy == "unlisted"

    def test_defaults_from_configuration(self) -> None:
        """Unset settings fall back to the configured defaults."""
        user = build_user()
        assert user.setting_boost_modal is False
        assert user.setting_auto_play_gif is True

    def test_setting_updates_existing_record(self) -> None:
        """Writing a setting twice keeps a single record."""
        user = build_user()
        user.settings.boost_modal = True
        user.settings.boost_modal = False
        assert len(user.setting_records) == 1
        assert isinstance(user.setting_records[0], Setting)
        assert user.setting_boost_modal is False
        assert user.settings.all()["boost_modal"] is False

    def test_preferred_locale_falls_back_to_default(self) -> None:
        """Users without a locale get the configured default."""
        assert build_user().preferred_locale == settings.default_locale
        assert build_user(locale="ja").preferred_locale == "ja"

    def test_unknown_setting_is_none(self) -> None:
        """Settings without a value or default read as None."""
        assert build_user().settings.no_such_setting is None


class TestNicoUrl:
    """Tests for the external profile URL."""

    def test_url_contains_uid(self) -> None:
        """Linked users get a profile URL."""
        user = build_user(provider="niconico", uid="12345")
        assert user.nico_url == "http://www.nicovideo.jp/user/12345"

    def test_hidden_when_requested(self) -> None:
        """Users hiding their OAuth link get no URL."""
        user = build_user(provider="niconico", uid="12345", hide_oauth=True)
        assert user.nico_url is None

    def test_none_without_uid(self) -> None:
        """Unlinked users get no URL."""
        assert build_user().nico_url is None
