"""Path-info grammar for page requests.

Incoming page URLs have the shape::

    /{context}[/{locale}]/{page}/{op}/{arg1}/{arg2}/...

The same values can be passed as request variables (``context``,
``locale``, ``page``, ``op``, ``path[]``) when the web server does not
provide path info. Parsed values are memoized on the request, so each
request is parsed once and nothing is shared between requests.
"""

import re
from collections.abc import Collection
from dataclasses import dataclass
from urllib.parse import unquote

from quire.contexts import SITE_CONTEXT_PATH
from quire.http.request import Request
from quire.i18n.locales import is_url_locale

# The only characters allowed in page and operation names
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")

# Script name inserted into URLs when RESTful URLs are off
SCRIPT_NAME = "index.php"

DEFAULT_OP = "index"

_MEMO_KEY = "path_info"


def clean_name(value: str | None) -> str:
    """Strip everything but ``[A-Za-z0-9_-]`` from a page or operation name."""
    return _UNSAFE_NAME_CHARS.sub("", value or "")


@dataclass(frozen=True, slots=True)
class PathInfo:
    """Everything the URL of a page request says about the request.

    ``page`` and ``op`` may be empty; the router applies the defaults.
    """

    context: str = SITE_CONTEXT_PATH
    locale: str | None = None
    page: str = ""
    op: str = ""
    args: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RouteTarget:
    """A resolved page request. ``page`` and ``op`` are never empty."""

    page: str
    op: str
    args: tuple[str, ...] = ()


def split_path_info(path_info: str) -> list[str]:
    """Split path info into raw segments, dropping the script name if present."""
    segments = path_info.strip("/").split("/") if path_info.strip("/") else []
    if segments and segments[0] == SCRIPT_NAME:
        segments = segments[1:]
    return segments


def parse_path_info(path_info: str, installed_locales: Collection[str]) -> PathInfo:
    """Parse a path-info string.

    >>> parse_path_info("/journal1/about", ("en",))
    PathInfo(context='journal1', locale=None, page='about', op='', args=())
    """
    segments = split_path_info(path_info)
    if not segments:
        return PathInfo()

    context = unquote(segments[0]) or SITE_CONTEXT_PATH
    rest = segments[1:]
    locale = None
    if rest and is_url_locale(rest[0], installed_locales):
        locale = rest.pop(0)

    page = clean_name(unquote(rest[0])) if rest else ""
    op = clean_name(unquote(rest[1])) if len(rest) > 1 else ""
    args = tuple(unquote(segment) for segment in rest[2:])
    return PathInfo(context=context, locale=locale, page=page, op=op, args=args)


def parse_user_vars(request: Request, installed_locales: Collection[str]) -> PathInfo:
    """Read the path-info values from request variables."""
    locale = request.user_var("locale")
    return PathInfo(
        context=request.user_var("context") or SITE_CONTEXT_PATH,
        locale=locale if is_url_locale(locale, installed_locales) else None,
        page=clean_name(request.user_var("page")),
        op=clean_name(request.user_var("op")),
        args=tuple(request.user_vars.get_list("path")),
    )


def requested_path_info(
    request: Request,
    installed_locales: Collection[str],
    *,
    path_info_enabled: bool = True,
) -> PathInfo:
    """The parsed path info of *request*, computed once per request."""
    cached = request._cache.get(_MEMO_KEY)
    if cached is None:
        if path_info_enabled:
            cached = parse_path_info(request.path_info, installed_locales)
        else:
            cached = parse_user_vars(request, installed_locales)
        request._cache[_MEMO_KEY] = cached
    return cached
