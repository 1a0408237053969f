"""Supported interface locales."""

AVAILABLE_LOCALES = (
    "en",
    "ar",
    "bg",
    "ca",
    "de",
    "eo",
    "es",
    "fa",
    "fi",
    "fr",
    "he",
    "hr",
    "hu",
    "id",
    "io",
    "it",
    "ja",
    "ko",
    "nl",
    "no",
    "oc",
    "pl",
    "pt",
    "pt-BR",
    "ru",
    "th",
    "tr",
    "uk",
    "zh-CN",
    "zh-HK",
    "zh-TW",
)


def is_available_locale(locale: str) -> bool:
    """Check a locale code against the configured locale set."""
    from social_accounts.config import settings

    return locale in settings.available_locales
