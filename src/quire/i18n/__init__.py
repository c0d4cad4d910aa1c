"""Locale negotiation for page requests."""

from quire.i18n.locales import LOCALE_PATTERN, is_locale_format, is_url_locale
from quire.i18n.resolver import SESSION_LOCALE_KEY, LocaleDecision, LocaleResolver, LocaleWrite

__all__ = [
    "LOCALE_PATTERN",
    "SESSION_LOCALE_KEY",
    "LocaleDecision",
    "LocaleResolver",
    "LocaleWrite",
    "is_locale_format",
    "is_url_locale",
]
