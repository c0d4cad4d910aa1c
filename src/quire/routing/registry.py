"""Handler registry and page-module loading.

Resolution order for a page, first match wins:

1. Interceptors on the ``LoadHandler`` extension point.
2. Factories registered at startup (``App.page(name)``).
3. ``{pages_dir}/{page}/index.py``.
4. ``{lib_pages_dir}/{page}/index.py``.
5. The built-in default page module, for an empty page.

A page module exposes either a ready ``handler`` object or a
``HANDLER_CLASS``; a class is registered as the page's factory the first
time its module is loaded, so later requests find it at step 2. A ready
object (from a module or an interceptor) is a prototype: each request
gets its own shallow copy.
"""

import copy
import importlib
import importlib.util
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

from quire._internal.types import HandlerFactory
from quire.errors import ConfigurationError, NotFound
from quire.hooks import ExtensionPoint, HookBus
from quire.http.request import Request
from quire.routing.handler import handler_operations

logger = logging.getLogger("quire.router")

DEFAULT_PAGE_MODULE = "quire.pages.index"

PAGE_MODULE_FILE = "index.py"


@dataclass(slots=True)
class LoadHandlerEvent:
    """Mutable event passed to ``LoadHandler`` interceptors.

    Interceptors may rewrite ``page`` and ``op`` and set ``handler`` to a
    handler object or a handler class.
    """

    page: str
    op: str
    source_file: Path | None
    handler: Any = None


LOAD_HANDLER = ExtensionPoint("LoadHandler", LoadHandlerEvent)


@dataclass(frozen=True, slots=True)
class ResolvedHandler:
    """The handler chosen for a request, not yet instantiated.

    Exactly one of ``handler`` and ``factory`` is set.
    """

    page: str
    op: str
    source: str
    handler: Any = None
    factory: HandlerFactory | None = None
    operations: frozenset[str] = frozenset()

    def instantiate(self, request: Request) -> Any:
        """A handler object for this request alone.

        Built with *request* from the factory, or copied from the prototype
        handler object.
        """
        if self.handler is not None:
            return copy.copy(self.handler)
        assert self.factory is not None
        return self.factory(request)


class HandlerRegistry:
    """Maps page names to handler factories and loads page modules."""

    __slots__ = ("_factories", "_lib_pages_dir", "_lock", "_modules", "_operations", "_pages_dir")

    def __init__(
        self,
        pages_dir: str | Path | None = None,
        lib_pages_dir: str | Path | None = None,
    ) -> None:
        self._pages_dir = Path(pages_dir) if pages_dir is not None else None
        self._lib_pages_dir = Path(lib_pages_dir) if lib_pages_dir is not None else None
        self._factories: dict[str, HandlerFactory] = {}
        self._operations: dict[str, frozenset[str]] = {}
        self._modules: dict[Path, ModuleType] = {}
        self._lock = threading.RLock()

    # -- Registration --

    def register(
        self,
        page: str,
        factory: HandlerFactory,
        *,
        operations: frozenset[str] | None = None,
    ) -> None:
        """Register *factory* for *page*.

        Classes expose their operations; any other callable must list them,
        because operations are checked before the handler is built.
        """
        if operations is None:
            if not isinstance(factory, type):
                msg = f"Handler factory for page {page!r} is not a class; pass operations=..."
                raise ConfigurationError(msg)
            operations = handler_operations(factory)
        with self._lock:
            self._factories[page] = factory
            self._operations[page] = frozenset(operations)

    def __contains__(self, page: str) -> bool:
        return page in self._factories

    @property
    def pages(self) -> frozenset[str]:
        """Pages with a registered factory."""
        return frozenset(self._factories)

    # -- Resolution --

    def source_file(self, page: str, base: Path | None = None) -> Path | None:
        """``{base}/{page}/index.py``; *base* defaults to the pages directory."""
        base = self._pages_dir if base is None else base
        if base is None or not page:
            return None
        return base / page / PAGE_MODULE_FILE

    def resolve(self, page: str, op: str, hooks: HookBus | None = None) -> ResolvedHandler:
        """Find the handler for *page*.

        Raises:
            NotFound: If no source provides a handler.
        """
        source_file = self.source_file(page)
        if hooks is not None:
            event = LoadHandlerEvent(page=page, op=op, source_file=source_file)
            if hooks.call(LOAD_HANDLER, event):
                return self._from_object(event.page, event.op, event.handler, "hook")

        factory = self._factories.get(page)
        if factory is not None:
            return ResolvedHandler(
                page=page,
                op=op,
                source="registry",
                factory=factory,
                operations=self._operations[page],
            )

        lib_file = self.source_file(page, self._lib_pages_dir) if self._lib_pages_dir else None
        for candidate, source in ((source_file, "pages"), (lib_file, "lib")):
            if candidate is not None and candidate.is_file():
                module = self._load_module(candidate)
                return self._from_module(page, op, module, source)

        if not page:
            module = importlib.import_module(DEFAULT_PAGE_MODULE)
            return self._from_module(page, op, module, "default")

        logger.debug("No handler for page %r", page)
        raise NotFound(f"No handler for page {page!r}")

    def _from_object(self, page: str, op: str, handler: Any, source: str) -> ResolvedHandler:
        if handler is None:
            raise NotFound(f"No handler for page {page!r}")
        if isinstance(handler, type):
            return ResolvedHandler(
                page=page,
                op=op,
                source=source,
                factory=handler,
                operations=handler_operations(handler),
            )
        return ResolvedHandler(
            page=page,
            op=op,
            source=source,
            handler=handler,
            operations=handler_operations(handler),
        )

    def _from_module(self, page: str, op: str, module: ModuleType, source: str) -> ResolvedHandler:
        handler = getattr(module, "handler", None)
        if handler is not None:
            return self._from_object(page, op, handler, source)

        handler_class = getattr(module, "HANDLER_CLASS", None)
        if isinstance(handler_class, type):
            if page:
                self.register(page, handler_class)
            return self._from_object(page, op, handler_class, source)

        logger.warning("Page module %s defines neither handler nor HANDLER_CLASS", module.__name__)
        raise NotFound(f"No handler for page {page!r}")

    def _load_module(self, path: Path) -> ModuleType:
        """Import a page module from *path*, once per process."""
        path = path.resolve()
        with self._lock:
            module = self._modules.get(path)
            if module is not None:
                return module

            module_name = f"_quire_page_{path.parent.name}_{len(self._modules)}"
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                msg = f"Cannot load page module {path}"
                raise ConfigurationError(msg)
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
            self._modules[path] = module
            logger.debug("Loaded page module %s", path)
            return module
