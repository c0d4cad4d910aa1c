"""Quire application class.

Mutable during setup (page handlers, hooks, middleware, error handlers).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import inspect
import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

from quire._internal.asgi import Receive, Scope, Send
from quire._internal.types import ErrorHandler, HandlerFactory
from quire.config import AppConfig
from quire.contexts import Context, ContextRepository, InMemoryContextRepository, Site
from quire.errors import ConfigurationError
from quire.hooks import ExtensionPoint, HookBus
from quire.middleware.protocol import Middleware
from quire.middleware.sessions import SessionConfig, SessionMiddleware
from quire.routing.cache import PageCache
from quire.routing.gate import DEFAULT_STAGES, GateStage
from quire.routing.registry import HandlerRegistry
from quire.routing.router import PageRouter
from quire.server.handler import handle_request

logger = logging.getLogger("quire.server")


class App:
    """The quire application.

    Usage::

        app = App(
            AppConfig(secret_key="s3cr3t"),
            contexts=[Context(id=1, path="journal1", supported_locales=("en", "fr_FR"))],
        )

        @app.page("about")
        class AboutHandler(PageHandler):
            @operation
            def index(self, args, request):
                return "About"

    Thread safety:
        Setup is single-threaded (decorators at import time). The freeze
        transition uses a Lock + double-check so exactly one thread builds
        the router, even when several workers take their first request at
        the same time.
    """

    __slots__ = (
        "_contexts",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_gate_stages",
        "_hooks",
        "_middleware",
        "_middleware_list",
        "_page_cache",
        "_registry",
        "_router",
        "_shutdown_hooks",
        "_site",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        contexts: ContextRepository | Iterable[Context] | None = None,
        site: Site | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        if contexts is None or not isinstance(contexts, ContextRepository):
            contexts = InMemoryContextRepository(contexts or ())
        self._contexts: ContextRepository = contexts
        self._site: Site = site or Site(
            supported_locales=self.config.installed_locales,
            primary_locale=self.config.default_locale,
        )
        self._registry = HandlerRegistry(self.config.pages_dir, self.config.lib_pages_dir)
        self._hooks = HookBus()
        self._gate_stages: list[GateStage] = list(DEFAULT_STAGES)
        self._middleware_list: list[Middleware] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._router: PageRouter | None = None
        self._middleware: tuple[Middleware, ...] = ()
        self._page_cache: PageCache | None = None

    # -- Page handlers --

    def page(
        self,
        name: str,
        *,
        operations: Iterable[str] | None = None,
    ) -> Callable[[HandlerFactory], HandlerFactory]:
        """Register a handler factory for page *name* via decorator.

        Decorate a handler class, or a factory function together with the
        operations the handlers it builds expose. The factory is called
        with the request once the operation is known to exist.
        """

        def decorator(factory: HandlerFactory) -> HandlerFactory:
            self._check_not_frozen()
            ops = frozenset(operations) if operations is not None else None
            self._registry.register(name, factory, operations=ops)
            return factory

        return decorator

    # -- Hooks --

    def hook[E](
        self, point: ExtensionPoint[E]
    ) -> Callable[[Callable[[E], bool | None]], Callable[[E], bool | None]]:
        """Register an interceptor on an extension point via decorator.

        Usage::

            @app.hook(LOAD_HANDLER)
            def plugin_pages(event: LoadHandlerEvent) -> bool:
                ...
        """

        def decorator(func: Callable[[E], bool | None]) -> Callable[[E], bool | None]:
            self._check_not_frozen()
            self._hooks.add(point, func)
            return func

        return decorator

    @property
    def hooks(self) -> HookBus:
        return self._hooks

    def gate(self, stage: GateStage) -> GateStage:
        """Append an access gate stage via decorator. Runs after the built-in stages."""
        self._check_not_frozen()
        self._gate_stages.append(stage)
        return stage

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline, inside the session middleware."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Runtime --

    @property
    def router(self) -> PageRouter:
        """The page router. Freezes the app on first access."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve the app with uvicorn (``pip install quire[server]``)."""
        try:
            import uvicorn
        except ImportError:
            msg = "App.run() requires uvicorn. Install it with: pip install 'quire[server]'"
            raise ConfigurationError(msg) from None

        self._ensure_frozen()
        uvicorn.run(
            self,
            host=host or self.config.host,
            port=port or self.config.port,
            log_level="debug" if self.config.debug else "info",
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
            page_cache=self._page_cache,
        )

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before the first HTTP request), then
        runs the startup/shutdown hooks.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        cfg = self.config

        middleware: list[Middleware] = []
        if cfg.sessions_enabled:
            if not cfg.secret_key:
                msg = (
                    "AppConfig.secret_key is required for sessions. "
                    "Set it, or set sessions_disabled=True."
                )
                raise ConfigurationError(msg)
            middleware.append(
                SessionMiddleware(
                    SessionConfig(
                        secret_key=cfg.secret_key,
                        cookie_name=cfg.session_cookie_name,
                        max_age=cfg.session_max_age,
                    )
                )
            )
        middleware.extend(self._middleware_list)
        self._middleware = tuple(middleware)

        self._router = PageRouter(
            cfg,
            contexts=self._contexts,
            site=self._site,
            registry=self._registry,
            hooks=self._hooks,
            stages=self._gate_stages,
        )
        if cfg.page_cache_enabled:
            self._page_cache = PageCache(cfg.page_cache_lifetime)

        logger.debug(
            "App frozen: %d registered pages, %d middleware", len(self._registry.pages), len(middleware)
        )
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register pages, hooks and middleware before calling app.run()."
            )
            raise RuntimeError(msg)
