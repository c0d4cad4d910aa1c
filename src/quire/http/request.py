"""Immutable HTTP request.

Frozen metadata with async body access. Middleware attaches the session,
the authenticated user and the active context by building a new request
with ``dataclasses.replace``; the router never mutates the request itself
except through the session dict and its private memo dict.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from quire._internal.asgi import Receive
from quire.http.cookies import parse_cookies
from quire.http.forms import FormData, parse_form_data
from quire.http.headers import Headers
from quire.http.query import QueryParams

if TYPE_CHECKING:
    from quire.contexts import Context
    from quire.middleware.auth import User


async def _empty_receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Cookies are parsed once at creation time (in ``from_asgi``). Values the
    router derives from the request (page, operation, locale, cache file
    name) are memoized in ``_cache`` so they are computed once per request
    and never shared between requests.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    cookies: Mapping[str, str]
    scheme: str = "http"
    root_path: str = ""
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None
    raw_path: str = ""  # still percent-encoded, as sent on the wire

    # Attached by middleware
    session: dict[str, Any] | None = None
    user: User | None = None
    context: Context | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive = _empty_receive

    # Private: per-request memo (body, parsed form, routing values)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def path_info(self) -> str:
        """The percent-encoded path below the mount point, ``""`` for the root.

        Built from the raw path so each segment is decoded exactly once, by
        the router. An encoded ``/`` stays inside its segment.
        """
        path = self.raw_path or self.path
        if self.root_path and path.startswith(self.root_path):
            path = path[len(self.root_path) :]
        return "" if path in ("", "/") else path

    @property
    def host(self) -> str:
        """The ``Host`` header, falling back to the ASGI server address."""
        host = self.headers.get("host")
        if host:
            return host
        if self.server is not None:
            name, port = self.server
            default_port = 443 if self.scheme == "https" else 80
            return name if port == default_port else f"{name}:{port}"
        return "localhost"

    @property
    def base_url(self) -> str:
        """``scheme://host`` plus the mount point, without a trailing slash."""
        return f"{self.scheme}://{self.host}{self.root_path.rstrip('/')}"

    @property
    def url(self) -> str:
        """Percent-encoded request path plus query string."""
        path = self.raw_path or self.path
        qs = self.query.raw
        if qs:
            return f"{path}?{qs}"
        return path

    @property
    def complete_url(self) -> str:
        """Absolute request URL including the query string."""
        return f"{self.scheme}://{self.host}{self.url}"

    @property
    def referer(self) -> str | None:
        """The ``Referer`` header, if sent."""
        return self.headers.get("referer")

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def form_data(self) -> FormData:
        """Posted form fields, empty until ``form()`` has been awaited."""
        return self._cache.get("_form") or FormData()

    @property
    def user_vars(self) -> FormData:
        """Query and posted form variables merged, posted values winning."""
        merged = {key: self.query.get_list(key) for key in self.query}
        form = self.form_data
        merged.update({key: form.get_list(key) for key in form})
        return FormData(merged)

    def user_var(self, key: str, default: str | None = None) -> str | None:
        """First value of a request variable (posted form first, then query)."""
        value = self.form_data.get(key)
        if value is None:
            value = self.query.get(key)
        return default if value is None else value

    @property
    def has_parameters(self) -> bool:
        """True if the request carries any query or posted form variable."""
        return bool(self.query) or bool(self.form_data)

    @property
    def is_authenticated(self) -> bool:
        """True if middleware attached an authenticated user."""
        return self.user is not None and bool(getattr(self.user, "is_authenticated", False))

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body. The ASGI receive is consumed once."""
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes, None]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart), once."""
        if "_form" in self._cache:
            return self._cache["_form"]

        ct = self.content_type or "application/x-www-form-urlencoded"
        result = await parse_form_data(await self.body(), ct)
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        raw_path = scope.get("raw_path")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            cookies=parse_cookies(headers.get("cookie", "")),
            scheme=scope.get("scheme", "http"),
            root_path=scope.get("root_path", ""),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            raw_path=raw_path.decode("latin-1") if raw_path else scope["path"],
            _receive=receive,
        )
