"""Cookie parsing and SetCookie serialization.

The read side (``parse_cookies``) feeds ``Request.cookies``; the write
side (``SetCookie``) is attached to responses and to redirects raised by
the locale resolver.
"""

from dataclasses import dataclass


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    The locale resolver reads ``currentLocale`` from the result when the
    session holds no supported locale. Returns an empty dict for empty or
    missing headers. Later duplicates win.
    """
    cookies: dict[str, str] = {}
    for pair in header.split(";") if header else ():
        name, sep, value = pair.strip().partition("=")
        if sep:
            cookies[name.strip()] = value.strip()
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive.

    The router sends ``currentLocale`` with ``httponly=False`` on every
    locale-changing redirect; the session middleware sends the signed
    session cookie with the attributes of its ``SessionConfig``.
    """

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        parts = [f"{self.name}={self.value}"]
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)
