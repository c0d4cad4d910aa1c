"""URL building for page requests.

The builder is the inverse of :mod:`quire.routing.grammar`: omitted parts
default the same way the parser fills them in, so a URL is always the
shortest canonical form of its target::

    {base}/{context}[/{locale}]/{page}[/{op}][/{arg}...][?{query}][#{anchor}]
"""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from quire.config import AppConfig
from quire.contexts import SITE_CONTEXT_PATH
from quire.http.request import Request
from quire.i18n.resolver import LocaleResolver
from quire.routing.grammar import DEFAULT_OP, SCRIPT_NAME, PathInfo

_UNSAFE_ANCHOR_CHARS = re.compile(r"[^a-zA-Z0-9\-_/.~]")


def _encode(segment: str) -> str:
    return quote(segment, safe="")


def sanitize_anchor(anchor: str | None) -> str:
    """``#anchor`` with everything outside ``[a-zA-Z0-9-_/.~]`` removed, or ``""``."""
    if not anchor:
        return ""
    return "#" + _UNSAFE_ANCHOR_CHARS.sub("", anchor)


def encode_params(params: Mapping[str, Any] | None) -> list[str]:
    """Encode query parameters as ``key=value`` pairs.

    Sequences become repeated ``key[]=value`` pairs; ``None`` values are
    left out.
    """
    pairs: list[str] = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend(f"{_encode(key)}%5B%5D={_encode(str(item))}" for item in value)
        else:
            pairs.append(f"{_encode(key)}={_encode(str(value))}")
    return pairs


@dataclass(frozen=True, slots=True)
class UrlParts:
    """A URL split into the pieces :meth:`UrlBuilder.assemble` joins."""

    base_url: str
    segments: tuple[str, ...]
    query: tuple[str, ...] = ()
    anchor: str = ""


class UrlBuilder:
    """Build page URLs relative to the current request."""

    __slots__ = ("_config", "_locales")

    def __init__(self, config: AppConfig, locales: LocaleResolver) -> None:
        self._config = config
        self._locales = locales

    def base_url(self, request: Request) -> str:
        """Configured base URL, or the request's own when unset."""
        if self._config.base_url is None:
            return request.base_url
        return self._config.base_url.rstrip("/")

    def index_url(self, request: Request, base_url: str | None = None) -> str:
        """Base URL plus the script name when RESTful URLs are off."""
        base = self.base_url(request) if base_url is None else base_url
        if self._config.restful_urls:
            return base
        return f"{base}/{SCRIPT_NAME}"

    def build(
        self,
        request: Request,
        current: PathInfo,
        *,
        context: str | None = None,
        page: str | None = None,
        op: str | None = None,
        path: str | Sequence[str] | None = None,
        params: Mapping[str, Any] | None = None,
        anchor: str | None = None,
        escape: bool = False,
        url_locale: str | None = None,
        page_request: bool = True,
    ) -> str:
        """Build a URL, defaulting omitted parts from *current*.

        Without a new context, page or operation, the current page and
        operation are kept. A new context or page without an operation
        leaves the operation out (it defaults to ``index``); additional
        path segments force an explicit ``index`` so they are not read as
        the operation. ``url_locale=""`` leaves the locale segment out.
        """
        if not path:
            extra: list[str] = []
        elif isinstance(path, str):
            extra = [path]
        else:
            extra = [str(segment) for segment in path]

        if not op:
            if not context and not page and page_request:
                op = current.op or None
            else:
                op = DEFAULT_OP if extra else None

        if not page:
            if not context and page_request:
                page = current.page or None
            else:
                page = DEFAULT_OP if op else None

        context_path = context or current.context or SITE_CONTEXT_PATH
        base_url = self._config.context_base_urls.get(context_path)
        context_segments: list[str] = []
        if base_url is None:
            base_url = self.base_url(request)
            context_segments.append(context_path)
        base_url = self.index_url(request, base_url.rstrip("/"))

        locale = None
        if url_locale != "":
            ctx, locales = self._locales.context_and_locales(request, context_path)
            if len(locales) > 1:
                current_locale = self._locales.current_locale(request, current.context, current.locale)
                locale = self._locales.locale_for_url(ctx, locales, url_locale, current=current_locale)

        query = encode_params(params)
        if self._config.path_info_enabled:
            segments = list(context_segments)
            if locale:
                segments.append(locale)
            if page:
                segments.append(page)
                if op:
                    segments.append(op)
            segments.extend(extra)
            parts = UrlParts(base_url, tuple(segments), tuple(query), sanitize_anchor(anchor))
        else:
            routing: dict[str, Any] = {"context": context_segments[0] if context_segments else None}
            routing.update(locale=locale, page=page, op=op if page else None, path=extra or None)
            parts = UrlParts(base_url, (), (*encode_params(routing), *query), sanitize_anchor(anchor))
        return self.assemble(parts, escape=escape)

    @staticmethod
    def assemble(parts: UrlParts, *, escape: bool = False) -> str:
        """Join base URL, encoded segments, query string and anchor."""
        url = parts.base_url
        if parts.segments:
            url += "/" + "/".join(_encode(segment) for segment in parts.segments)
        if parts.query:
            url += "?" + ("&amp;" if escape else "&").join(parts.query)
        return (url or "/") + parts.anchor
