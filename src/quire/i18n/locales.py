"""Locale codes as they appear in URLs, sessions and cookies."""

import re
from collections.abc import Collection

# en, fr_CA, sr_RS@latin
LOCALE_PATTERN = re.compile(r"^[a-z]{2,3}(_[A-Z]{2})?(@[a-z]{0,})?$")


def is_locale_format(value: str | None) -> bool:
    """True if *value* is shaped like a locale code."""
    return bool(value) and LOCALE_PATTERN.match(value) is not None  # type: ignore[arg-type]


def is_url_locale(segment: str | None, installed: Collection[str]) -> bool:
    """True if a path segment names a locale rather than a page.

    Short page names (``faq``, ``rss``) have the shape of a locale code,
    so the segment must also be one of the *installed* locales.
    """
    return is_locale_format(segment) and segment in installed
