"""JSON shapes returned by the API."""

from typing import Any

from social_accounts.models import Errors, User


def serialize_user(user: User) -> dict[str, Any]:
    """Public view of a user for its owner and administrators."""
    return {
        "id": user.id,
        "email": user.email,
        "username": user.account.username,
        "acct": user.account.acct,
        "locale": user.preferred_locale,
        "admin": user.admin,
        "confirmed": user.confirmed,
        "otp_required_for_login": user.otp_required_for_login,
        "sign_in_count": user.sign_in_count,
        "current_sign_in_at": _isoformat(user.current_sign_in_at),
        "last_sign_in_at": _isoformat(user.last_sign_in_at),
        "current_sign_in_ip": user.current_sign_in_ip,
        "last_sign_in_ip": user.last_sign_in_ip,
        "filtered_languages": list(user.filtered_languages),
        "nico_url": user.nico_url,
    }


def serialize_preferences(user: User) -> dict[str, Any]:
    return {
        "locale": user.locale,
        "filtered_languages": list(user.filtered_languages),
        "hide_oauth": user.hide_oauth,
        "default_privacy": user.setting_default_privacy,
        "boost_modal": user.setting_boost_modal,
        "auto_play_gif": user.setting_auto_play_gif,
    }


def serialize_errors(errors: Errors) -> dict[str, Any]:
    return {"errors": dict(errors)}


def _isoformat(value: Any) -> str | None:
    return value.isoformat() if value is not None else None
