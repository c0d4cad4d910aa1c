"""Typed extension points with ordered interceptors.

Each named hook is an :class:`ExtensionPoint` bound to one event type.
Interceptors registered on a point receive the (mutable) event in
registration order; the first interceptor that returns ``True`` marks the
event as handled and stops the chain.

Usage::

    LOAD_HANDLER = ExtensionPoint("LoadHandler", LoadHandlerEvent)

    bus = HookBus()

    @bus.on(LOAD_HANDLER)
    def serve_plugin_page(event: LoadHandlerEvent) -> bool:
        if event.page != "plugin":
            return False
        event.handler = PluginHandler()
        return True

    handled = bus.call(LOAD_HANDLER, LoadHandlerEvent(page="plugin", ...))

The bus is filled during app setup and read-only once the app serves
requests.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("quire.hooks")

type Interceptor = Callable[[Any], bool | None]


@dataclass(frozen=True, slots=True)
class ExtensionPoint[E]:
    """A named hook accepting events of type *event_type*."""

    name: str
    event_type: type[E]


class HookBus:
    """Registry of interceptors keyed by extension point."""

    __slots__ = ("_interceptors",)

    def __init__(self) -> None:
        self._interceptors: dict[str, list[Interceptor]] = {}

    def add[E](self, point: ExtensionPoint[E], interceptor: Callable[[E], bool | None]) -> None:
        """Register *interceptor* on *point*, after the existing ones."""
        self._interceptors.setdefault(point.name, []).append(interceptor)

    def on[E](
        self, point: ExtensionPoint[E]
    ) -> Callable[[Callable[[E], bool | None]], Callable[[E], bool | None]]:
        """Decorator form of :meth:`add`."""

        def decorator(func: Callable[[E], bool | None]) -> Callable[[E], bool | None]:
            self.add(point, func)
            return func

        return decorator

    def interceptors(self, point: ExtensionPoint[Any]) -> tuple[Interceptor, ...]:
        """Interceptors registered on *point*, in registration order."""
        return tuple(self._interceptors.get(point.name, ()))

    def call[E](self, point: ExtensionPoint[E], event: E) -> bool:
        """Run the interceptors for *point* until one reports the event handled.

        Raises ``TypeError`` if *event* is not an instance of the point's
        event type.
        """
        if not isinstance(event, point.event_type):
            msg = (
                f"Extension point {point.name!r} expects {point.event_type.__name__}, "
                f"got {type(event).__name__}"
            )
            raise TypeError(msg)
        for interceptor in self._interceptors.get(point.name, ()):
            if interceptor(event):
                logger.debug("%s handled by %r", point.name, interceptor)
                return True
        return False

    def __contains__(self, point: ExtensionPoint[Any]) -> bool:
        return bool(self._interceptors.get(point.name))
