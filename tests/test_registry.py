"""Tests for HandlerRegistry resolution order and page-module loading."""

from pathlib import Path

import pytest

from quire.errors import ConfigurationError, NotFound
from quire.hooks import HookBus
from quire.pages.index import IndexHandler
from quire.routing.registry import LOAD_HANDLER, HandlerRegistry

FIXTURES = Path(__file__).parent / "fixtures"


class Handler:
    def __init__(self, request=None):
        self.request = request

    def index(self, args, request):
        return "registered"


@pytest.fixture
def registry() -> HandlerRegistry:
    return HandlerRegistry(FIXTURES / "pages", FIXTURES / "lib_pages")


class TestRegister:
    def test_class_exposes_operations(self, registry) -> None:
        registry.register("custom", Handler)
        resolved = registry.resolve("custom", "")
        assert resolved.source == "registry"
        assert resolved.operations == {"index"}
        assert "custom" in registry
        assert registry.pages == {"custom"}

    def test_function_factory_needs_operations(self, registry) -> None:
        with pytest.raises(ConfigurationError, match="operations"):
            registry.register("custom", lambda request: Handler(request))
        registry.register("custom", lambda request: Handler(request), operations=frozenset({"index"}))
        assert registry.resolve("custom", "").operations == {"index"}

    def test_registered_factory_beats_page_module(self, registry) -> None:
        registry.register("about", Handler)
        assert registry.resolve("about", "").source == "registry"


class TestResolve:
    def test_page_module_handler_object(self, registry) -> None:
        resolved = registry.resolve("about", "contact")
        assert resolved.source == "pages"
        assert resolved.factory is None
        assert resolved.operations == {"index", "contact"}
        handler = resolved.instantiate(None)
        assert handler is not resolved.handler
        assert type(handler) is type(resolved.handler)

    def test_handler_class_is_registered(self, registry) -> None:
        resolved = registry.resolve("legacy", "view")
        assert resolved.factory is not None
        assert resolved.operations == {"view"}
        assert "legacy" in registry
        assert registry.resolve("legacy", "view").source == "registry"

    def test_lib_pages_dir(self, registry) -> None:
        assert registry.resolve("search", "").source == "lib"

    def test_default_page(self, registry) -> None:
        resolved = registry.resolve("", "")
        assert resolved.source == "default"
        assert resolved.factory is IndexHandler
        assert "" not in registry

    def test_unknown_page(self, registry) -> None:
        with pytest.raises(NotFound):
            registry.resolve("nowhere", "")

    def test_module_without_handler(self, registry) -> None:
        with pytest.raises(NotFound):
            registry.resolve("empty", "")

    def test_without_pages_dirs(self) -> None:
        registry = HandlerRegistry(None, None)
        assert registry.source_file("about") is None
        with pytest.raises(NotFound):
            registry.resolve("about", "")

    def test_modules_load_once(self, registry) -> None:
        first = registry.resolve("about", "").handler
        assert registry.resolve("about", "").handler is first

    def test_hook_runs_first(self, registry) -> None:
        hooks = HookBus()
        hooks.add(LOAD_HANDLER, lambda event: setattr(event, "handler", Handler()) or True)
        resolved = registry.resolve("about", "", hooks)
        assert resolved.source == "hook"
        assert isinstance(resolved.handler, Handler)

    def test_source_file(self, registry) -> None:
        assert registry.source_file("about") == FIXTURES / "pages" / "about" / "index.py"
        assert registry.source_file("") is None
