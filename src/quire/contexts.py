"""Contexts (journals/presses) and the site they live in.

The router looks contexts up by the first path segment; it never owns or
modifies them. Persistence is somebody else's job: anything with
``get_by_path`` and ``get_by_id`` satisfies :class:`ContextRepository`.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

# Path segment naming the site itself rather than a context
SITE_CONTEXT_PATH = "index"

# Wildcard context path used by site-wide administration URLs
ALL_CONTEXTS_PATH = "_"


@dataclass(frozen=True, slots=True)
class Context:
    """A tenant of the site — one journal, press or preprint server.

    Attributes:
        id: Database identifier.
        path: URL path segment (``/{path}/...``).
        enabled: Whether the context is publicly visible.
        supported_locales: Locales readers may switch between.
        primary_locale: Locale used when nothing better is known.
        name: Display name.
    """

    id: int
    path: str
    enabled: bool = True
    supported_locales: tuple[str, ...] = ("en",)
    primary_locale: str = "en"
    name: str = ""

    @property
    def is_multilingual(self) -> bool:
        """True if URLs for this context carry a locale segment."""
        return len(self.supported_locales) > 1


@dataclass(frozen=True, slots=True)
class Site:
    """Site-wide locale settings, used for the ``index`` context."""

    supported_locales: tuple[str, ...] = ("en",)
    primary_locale: str = "en"
    title: str = ""


@runtime_checkable
class ContextRepository(Protocol):
    """Lookup interface the router needs from the context store."""

    def get_by_path(self, path: str) -> Context | None: ...

    def get_by_id(self, context_id: int) -> Context | None: ...


class InMemoryContextRepository:
    """Dict-backed :class:`ContextRepository`.

    Suitable for tests and for deployments whose contexts are configured
    at startup::

        contexts = InMemoryContextRepository([
            Context(id=1, path="journal1", supported_locales=("en", "fr_FR")),
        ])
    """

    __slots__ = ("_by_id", "_by_path")

    def __init__(self, contexts: Iterable[Context] = ()) -> None:
        self._by_path: dict[str, Context] = {}
        self._by_id: dict[int, Context] = {}
        for context in contexts:
            self.add(context)

    def add(self, context: Context) -> None:
        """Register *context*, replacing any context with the same path or id."""
        self._by_path[context.path] = context
        self._by_id[context.id] = context

    def get_by_path(self, path: str) -> Context | None:
        return self._by_path.get(path)

    def get_by_id(self, context_id: int) -> Context | None:
        return self._by_id.get(context_id)

    def __len__(self) -> int:
        return len(self._by_id)
