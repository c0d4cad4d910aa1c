"""Redirect target validation.

The ``source`` request variable names where a user should land after
logging in or switching locale. Only same-origin relative paths are
followed.
"""

import re

_SOURCE_PATTERN = re.compile(r"^/\w")


def is_safe_url(url: str | None) -> bool:
    """True if *url* is a relative path on the same origin.

    ``//evil.example`` and anything with a scheme are rejected::

        >>> is_safe_url("/journal1/issue/current")
        True
        >>> is_safe_url("//evil.example")
        False
    """
    if not url or not isinstance(url, str):
        return False
    if not url.startswith("/") or url.startswith("//"):
        return False
    return "://" not in url


def is_source_url(url: str | None) -> bool:
    """True if *url* is a usable ``source`` target: a safe path starting ``/`` plus a word character."""
    return is_safe_url(url) and _SOURCE_PATTERN.match(url) is not None  # type: ignore[arg-type]
