"""Whole-page cache for anonymous, parameter-free requests.

A page is cacheable only when nothing about the request can change its
rendering: no session, no maintenance mode, no query or form variables,
no logged-in user, and the page is whitelisted in
``AppConfig.cacheable_pages``. Artifacts are keyed by path info and
locale::

    {cache_dir}/wc-{md5(path_info-locale)}.html
"""

import hashlib
import logging
import os
import tempfile
import time
from pathlib import Path

from quire.config import AppConfig
from quire.http.request import Request

logger = logging.getLogger("quire.router")

_MEMO_KEY = "cache_filename"


def is_cacheable(config: AppConfig, request: Request, page: str, *, test_only: bool = False) -> bool:
    """True if the response to *request* may be served from the page cache.

    ``test_only`` ignores the session, so the predicate can be checked
    from a request that carries one.
    """
    if config.sessions_enabled and request.session is not None and not test_only:
        return False
    if config.under_maintenance:
        return False
    if request.has_parameters or request.is_authenticated:
        return False
    return page in config.cacheable_pages


def cache_key(path_info: str, locale: str) -> str:
    """Hex digest identifying the rendering of *path_info* in *locale*."""
    return hashlib.md5(f"{path_info or 'index'}-{locale}".encode()).hexdigest()


def cache_filename(config: AppConfig, request: Request, locale: str) -> Path:
    """Cache artifact path for *request*, computed once per request."""
    cached = request._cache.get(_MEMO_KEY)
    if cached is None:
        key = cache_key(request.path_info, locale)
        cached = Path(config.cache_dir) / f"wc-{key}.html"
        request._cache[_MEMO_KEY] = cached
    return cached


class PageCache:
    """Reads and writes page cache artifacts."""

    __slots__ = ("_lifetime",)

    def __init__(self, lifetime: float) -> None:
        self._lifetime = lifetime

    def load(self, path: Path) -> bytes | None:
        """The cached body at *path*, or ``None`` when missing or stale."""
        try:
            stat = path.stat()
        except FileNotFoundError:
            return None
        if time.time() - stat.st_mtime > self._lifetime:
            logger.debug("Page cache expired: %s", path)
            return None
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def store(self, path: Path, body: bytes) -> None:
        """Write *body* to *path* atomically."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".wc-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(body)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Page cache stored: %s", path)
