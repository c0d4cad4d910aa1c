"""Locale resolution for page requests.

The resolver answers two questions for the router:

* which locale is active for this request (``current_locale``), and
* whether the request must be redirected because the locale in the URL
  disagrees with the chosen one, or because the user asked to switch
  (``decide``).

It never writes to the session or sets cookies itself. ``decide`` returns
a :class:`LocaleDecision` whose optional :class:`LocaleWrite` describes the
session/cookie update; the router applies it together with the redirect.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit

from quire.config import AppConfig
from quire.contexts import ALL_CONTEXTS_PATH, SITE_CONTEXT_PATH, Context, ContextRepository, Site
from quire.http.request import Request
from quire.security.urls import is_source_url

logger = logging.getLogger("quire.i18n")

SESSION_LOCALE_KEY = "currentLocale"

_MEMO_KEY = "locale"


@dataclass(frozen=True, slots=True)
class LocaleWrite:
    """Pending update of the stored locale (session key and cookie)."""

    locale: str
    session_key: str = SESSION_LOCALE_KEY
    cookie_name: str = SESSION_LOCALE_KEY


@dataclass(frozen=True, slots=True)
class LocaleDecision:
    """Outcome of locale negotiation for one request.

    Attributes:
        locale: The locale the request (or the redirect target) runs in.
        redirect_url: Where to send the browser, ``None`` to carry on.
        write: Session/cookie update to apply, if any.
    """

    locale: str
    redirect_url: str | None = None
    write: LocaleWrite | None = None

    @property
    def redirect_required(self) -> bool:
        return self.redirect_url is not None


class LocaleResolver:
    """Resolve the active locale from URL, session, cookie and configuration."""

    __slots__ = ("_config", "_contexts", "_site")

    def __init__(self, config: AppConfig, contexts: ContextRepository, site: Site) -> None:
        self._config = config
        self._contexts = contexts
        self._site = site

    # -- Supported locales --

    def context_and_locales(
        self, request: Request, context_path: str
    ) -> tuple[Context | None, tuple[str, ...]]:
        """The context named by *context_path* and the locales it supports.

        The request's own context is reused only when its path matches.
        The ``index`` pseudo-context supports the site's locales, or every
        installed locale before installation. Unknown contexts support none.
        """
        context = request.context
        if context is not None and context.path != context_path:
            context = None
        if context is None and context_path not in ("", SITE_CONTEXT_PATH, ALL_CONTEXTS_PATH):
            context = self._contexts.get_by_path(context_path)

        if context is not None:
            return context, tuple(context.supported_locales)
        if context_path == SITE_CONTEXT_PATH:
            if self._config.installed:
                return None, tuple(self._site.supported_locales)
            return None, tuple(self._config.installed_locales)
        return None, ()

    def primary_locale(self, context: Context | None) -> str:
        if context is not None:
            return context.primary_locale
        if self._config.installed:
            return self._site.primary_locale
        return self._config.default_locale

    # -- Current locale --

    def current_locale(self, request: Request, context_path: str, url_locale: str | None) -> str:
        """The locale this request runs in. Computed once per request.

        First supported value wins: URL locale, session, cookie. Otherwise
        the primary locale of the context (or site).
        """
        if _MEMO_KEY in request._cache:
            return request._cache[_MEMO_KEY]

        context, supported = self.context_and_locales(request, context_path)
        session_locale = request.session.get(SESSION_LOCALE_KEY) if request.session is not None else None
        candidates = (url_locale, session_locale, request.cookies.get(self._config.locale_cookie_name))
        locale = next((c for c in candidates if c and c in supported), None)
        if locale is None:
            locale = self.primary_locale(context) or self._config.default_locale

        request._cache[_MEMO_KEY] = locale
        return locale

    def locale_for_url(
        self,
        context: Context | None,
        locales: Sequence[str],
        url_locale: str | None,
        *,
        current: str,
    ) -> str:
        """Locale segment to put in a generated URL for a multilingual context."""
        locale = url_locale or current
        if locale in locales:
            return locale
        return self.primary_locale(context) or current

    # -- Negotiation --

    def decide(
        self,
        request: Request,
        *,
        context_path: str,
        url_locale: str | None,
        set_locale: str | None,
        index_url: str,
    ) -> LocaleDecision:
        """Decide whether the locale must change and where to go next.

        No redirect is needed when the context is monolingual and nothing
        mentions a locale, or when it is multilingual, no switch was asked
        for and the URL already carries the current locale. Following the
        redirect therefore never redirects again.
        """
        _, supported = self.context_and_locales(request, context_path)
        multilingual = len(supported) > 1
        current = self.current_locale(request, context_path, url_locale)

        if not multilingual and not url_locale and not set_locale:
            return LocaleDecision(current)
        if multilingual and not set_locale and url_locale == current:
            return LocaleDecision(current)

        session = request.session
        stored = session.get(SESSION_LOCALE_KEY) if session is not None else None
        write: LocaleWrite | None = None

        target = set_locale or url_locale
        if target and target in supported and target != stored:
            stored = target
            write = self._write(target)
        if not stored or stored not in supported:
            stored = current
            write = self._write(current)

        source = request.user_var("source")
        if is_source_url(source):
            logger.debug("Locale %s set, returning to source %s", stored, source)
            return LocaleDecision(stored, source, write)

        if set_locale:
            uri = self._referer_uri(request, context_path, index_url)
        else:
            uri = _relative_to_index(request.complete_url, index_url)

        new_locale = stored if multilingual else None
        if self._config.path_info_enabled:
            path_info = self._rewrite_path(uri, context_path, new_locale)
        else:
            path_info = _rewrite_query(uri, new_locale)

        redirect_url = f"{index_url}{path_info}"
        logger.debug("Locale %s: redirecting %s to %s", stored, request.path, redirect_url)
        return LocaleDecision(stored, redirect_url, write)

    def _write(self, locale: str) -> LocaleWrite:
        return LocaleWrite(locale, cookie_name=self._config.locale_cookie_name)

    def _referer_uri(self, request: Request, context_path: str, index_url: str) -> str:
        """The referring page relative to the index URL.

        Missing or cross-origin referers fall back to the context home.
        """
        referer = request.referer
        if referer:
            split = urlsplit(referer)
            if not split.netloc or split.netloc == request.host:
                return _relative_to_index(referer, index_url)
            logger.debug("Ignoring cross-origin referer %s", referer)
        if not self._config.path_info_enabled:
            return f"?{urlencode({'context': context_path})}" if context_path else ""
        return f"/{context_path}" if context_path else ""

    def _rewrite_path(self, uri: str, context_path: str, new_locale: str | None) -> str:
        """Swap the locale segment following ``/{context_path}`` in *uri*."""
        new_segment = f"/{new_locale}" if new_locale else ""
        if not uri or uri[0] in "?#":
            return f"/{SITE_CONTEXT_PATH}{new_segment}{uri}"

        known = sorted(self._config.installed_locales, key=len, reverse=True)
        old_segment = f"(?:/(?:{'|'.join(map(re.escape, known))}))?" if known else ""
        pattern = rf"^/{re.escape(context_path)}{old_segment}(?=[/?#]|$)"
        replacement = f"/{context_path}{new_segment}"
        return re.sub(pattern, lambda _: replacement, uri, count=1)


def _relative_to_index(url: str, index_url: str) -> str:
    """Path and query of *url* below the path of *index_url*."""
    split = urlsplit(url)
    index_path = urlsplit(index_url).path.rstrip("/")
    path = split.path
    if index_path and (path == index_path or path.startswith(f"{index_path}/")):
        path = path[len(index_path) :]
    if path == "/":
        path = ""
    return f"{path}?{split.query}" if split.query else path


def _rewrite_query(uri: str, new_locale: str | None) -> str:
    """Replace the ``locale`` request variable of a query-string URL."""
    _, _, query = uri.partition("?")
    pairs = [(k, v) for k, v in parse_qsl(query, keep_blank_values=True) if k != "locale"]
    if new_locale:
        pairs.append(("locale", new_locale))
    return f"?{urlencode(pairs)}" if pairs else ""
