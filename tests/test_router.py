"""Tests for PageRouter: routing, requested values, authorization and home URLs."""

import asyncio
from urllib.parse import quote

import pytest

from quire.errors import NotFound, RedirectRequired
from quire.routing import LOAD_HANDLER, LoadHandlerEvent, PageHandler, operation
from quire.security import Role, SecurityEvent, set_security_event_sink


class EditorialHandler(PageHandler):
    def __init__(self, request=None):
        super().__init__(request)
        self.add_role_assignment([Role.MANAGER, Role.SITE_ADMIN], ["index"])

    @operation
    def index(self, args, request):
        return "editorial"


class PluginPages:
    def __init__(self, request=None):
        self.request = request

    def index(self, args, request):
        return "plugin"

    def show(self, args, request):
        return f"plugin:{args[0]}"


class TestRequestedValues:
    def test_requested_parts(self, router, make_request) -> None:
        request = make_request("/journal2/fr_FR/issue/view/12/a%20b")
        assert router.get_requested_context_path(request) == "journal2"
        assert router.get_requested_url_locale(request) == "fr_FR"
        assert router.get_requested_page(request) == "issue"
        assert router.get_requested_op(request) == "view"
        assert router.get_requested_args(request) == ("12", "a b")
        assert router.get_requested_anchor(request) == ""

    def test_site_root(self, router, make_request) -> None:
        request = make_request("/")
        assert router.get_requested_context_path(request) == "index"
        assert router.get_requested_page(request) == ""
        assert router.get_requested_op(request) == ""

    def test_get_context(self, router, make_request) -> None:
        assert router.get_context(make_request("/journal1/about")).id == 1
        assert router.get_context(make_request("/index/about")) is None
        assert router.get_context(make_request("/_/admin")) is None
        assert router.get_context(make_request("/unknown/about")) is None

    def test_index_url(self, make_router, make_request) -> None:
        assert make_router().get_index_url(make_request("/")) == ""
        assert make_router(restful_urls=False).get_index_url(make_request("/")) == "/index.php"
        assert make_router(base_url=None).get_index_url(make_request("/")) == "http://testserver"


class TestRoute:
    async def test_plain_object_handler(self, router, make_request) -> None:
        assert await router.route(make_request("/journal1/about")) == "about:journal1"

    async def test_operation_with_args(self, router, make_request) -> None:
        result = await router.route(make_request("/journal1/about/contact/a/b"))
        assert result == "contact:a/b"

    async def test_missing_operation(self, router, make_request) -> None:
        with pytest.raises(NotFound):
            await router.route(make_request("/journal1/about/missing"))

    async def test_private_method_is_not_an_operation(self, router, make_request) -> None:
        with pytest.raises(NotFound):
            await router.route(make_request("/journal1/about/_private"))

    async def test_unknown_page(self, router, make_request) -> None:
        with pytest.raises(NotFound):
            await router.route(make_request("/journal1/nowhere"))

    async def test_module_without_handler(self, router, make_request) -> None:
        with pytest.raises(NotFound):
            await router.route(make_request("/journal1/empty"))

    async def test_handler_class_module(self, router, make_request) -> None:
        result = await router.route(make_request("/journal1/legacy/view/5"))
        assert result == "legacy:5:True"
        assert "legacy" in router.registry

    async def test_unmarked_method_on_page_handler(self, router, make_request) -> None:
        with pytest.raises(NotFound):
            await router.route(make_request("/journal1/legacy/helper"))

    async def test_lib_pages(self, router, make_request) -> None:
        assert await router.route(make_request("/journal1/search")) == "lib-search"

    async def test_pages_dir_shadows_lib_pages(self, router, make_request) -> None:
        assert await router.route(make_request("/journal1/about")) != "lib-about"

    async def test_default_page_at_site_root(self, router, make_request) -> None:
        assert "<h1>Welcome</h1>" in await router.route(make_request("/"))

    async def test_default_page_for_context(self, router, make_request) -> None:
        assert "<h1>Journal Two</h1>" in await router.route(make_request("/journal2/en_US"))

    async def test_unknown_context(self, router, make_request) -> None:
        with pytest.raises(NotFound):
            await router.route(make_request("/unknown/about"))

    async def test_async_operation(self, router, make_request) -> None:
        request = make_request("/journal1/user/authorizationDenied?message=nope")
        assert await router.route(request) == "denied:nope"

    async def test_registered_factory(self, router, make_request, make_member) -> None:
        router.registry.register("editorial", EditorialHandler)
        user = make_member("1", (Role.MANAGER, 1))
        result = await router.route(make_request("/journal1/editorial", user=user))
        assert result == "editorial"


class TestLoadHandlerHook:
    async def test_interceptor_supplies_handler(self, router, make_request) -> None:
        @router.hooks.on(LOAD_HANDLER)
        def plugin(event: LoadHandlerEvent) -> bool:
            if event.page != "plugin":
                return False
            event.handler = PluginPages()
            return True

        assert await router.route(make_request("/journal1/plugin/show/3")) == "plugin:3"
        assert await router.route(make_request("/journal1/about")) == "about:journal1"

    async def test_shared_handler_object_is_copied_per_request(self, router, make_request) -> None:
        class SlowPages(PageHandler):
            @operation
            async def index(self, args, request):
                await asyncio.sleep(0)
                return self.request.path

        shared = SlowPages()

        @router.hooks.on(LOAD_HANDLER)
        def slow(event: LoadHandlerEvent) -> bool:
            event.handler = shared
            return True

        results = await asyncio.gather(
            router.route(make_request("/journal1/slow/index/one")),
            router.route(make_request("/journal1/slow/index/two")),
        )
        assert results == ["/journal1/slow/index/one", "/journal1/slow/index/two"]
        assert shared.request is None

    async def test_interceptor_rewrites_page(self, router, make_request) -> None:
        seen: list[tuple[str, str]] = []

        @router.hooks.on(LOAD_HANDLER)
        def alias(event: LoadHandlerEvent) -> bool:
            seen.append((event.page, event.op))
            event.page = "plugin"
            event.op = "show"
            event.handler = PluginPages
            return True

        assert await router.route(make_request("/journal1/old/view/9")) == "plugin:9"
        assert seen == [("old", "view")]

    async def test_interceptor_without_handler(self, router, make_request) -> None:
        router.hooks.add(LOAD_HANDLER, lambda event: True)
        with pytest.raises(NotFound):
            await router.route(make_request("/journal1/about"))

    async def test_source_file_is_reported(self, router, make_request) -> None:
        events: list[LoadHandlerEvent] = []
        router.hooks.add(LOAD_HANDLER, events.append)
        await router.route(make_request("/journal1/about"))
        assert events[0].source_file.parts[-2:] == ("about", "index.py")


class TestAuthorization:
    @pytest.fixture(autouse=True)
    def editorial(self, router):
        router.registry.register("editorial", EditorialHandler)

    async def test_anonymous_user_goes_to_login(self, router, make_request) -> None:
        with pytest.raises(RedirectRequired) as exc_info:
            await router.route(make_request("/journal1/editorial"))
        source = quote("/journal1/editorial", safe="")
        assert exc_info.value.url == (
            f"/journal1/login?source={source}&loginMessage=user.authorization.loginRequired"
        )

    async def test_wrong_role_is_denied(self, router, make_request, make_member) -> None:
        user = make_member("7", (Role.READER, 1))
        with pytest.raises(RedirectRequired) as exc_info:
            await router.route(make_request("/journal1/editorial", user=user))
        assert exc_info.value.url == (
            "/journal1/user/authorizationDenied?message=user.authorization.roleBasedAccessDenied"
        )

    async def test_role_in_other_context_is_denied(self, router, make_request, make_member) -> None:
        user = make_member("7", (Role.MANAGER, 2))
        with pytest.raises(RedirectRequired):
            await router.route(make_request("/journal1/editorial", user=user))

    async def test_site_admin_everywhere(self, router, make_request, make_member) -> None:
        user = make_member("1", (Role.SITE_ADMIN, 0))
        assert await router.route(make_request("/journal1/editorial", user=user)) == "editorial"

    async def test_denial_emits_security_event(self, router, make_request, make_member) -> None:
        events: list[SecurityEvent] = []
        set_security_event_sink(events.append)
        try:
            with pytest.raises(RedirectRequired):
                await router.route(
                    make_request("/journal1/editorial", user=make_member("7", (Role.AUTHOR, 1)))
                )
        finally:
            set_security_event_sink(None)
        assert [e.name for e in events] == ["auth.authorization.denied"]
        assert events[0].user_id == "7"
        assert events[0].details == {"message": "user.authorization.roleBasedAccessDenied"}

    async def test_handler_without_message_uses_default(self, router, make_request) -> None:
        class Closed:
            def authorize(self, request, args, op):
                return False

            def index(self, args, request):
                return "never"

        router.registry.register("closedpage", lambda request: Closed(), operations={"index"})
        with pytest.raises(RedirectRequired) as exc_info:
            await router.route(make_request("/journal1/closedpage"))
        assert "loginMessage=user.authorization.accessDenied" in exc_info.value.url


class TestHomeUrl:
    def test_anonymous(self, router, make_request) -> None:
        assert router.get_home_url(make_request("/journal1/about")) == "/journal1/index"

    def test_reader(self, router, make_request, make_member) -> None:
        user = make_member("7", (Role.READER, 1))
        request = make_request("/journal1/about", user=user)
        assert router.get_home_url(request) == "/journal1/index"

    def test_editorial_user(self, router, make_request, make_member) -> None:
        user = make_member("7", (Role.MANAGER, 1))
        request = make_request("/journal1/about", user=user)
        assert router.get_home_url(request) == "/journal1/submissions"

    @pytest.mark.parametrize(
        ("role", "expected"),
        [
            (Role.MANAGER, "/journal1/dashboard/editorial"),
            (Role.ASSISTANT, "/journal1/dashboard/editorial"),
            (Role.REVIEWER, "/journal1/dashboard/reviewAssignments"),
            (Role.AUTHOR, "/journal1/dashboard/mySubmissions"),
        ],
    )
    def test_submission_listing(self, make_router, make_request, make_member, role, expected) -> None:
        router = make_router(enable_new_submission_listing=True)
        request = make_request("/journal1/about", user=make_member("7", (role, 1)))
        assert router.get_home_url(request) == expected

    def test_site_level_single_reader_group(self, router, make_request, make_member) -> None:
        user = make_member("7", (Role.READER, 2))
        request = make_request("/index/about", user=user)
        assert router.get_home_url(request) == "/journal2/en_US/index"

    def test_site_level_default(self, router, make_request, make_member) -> None:
        user = make_member("1", (Role.SITE_ADMIN, 0), (Role.MANAGER, 1))
        request = make_request("/index/about", user=user)
        assert router.get_home_url(request) == "/index/index"

    def test_redirect_home(self, router, make_request) -> None:
        with pytest.raises(RedirectRequired) as exc_info:
            router.redirect_home(make_request("/journal1/about"))
        assert exc_info.value.url == "/journal1/index"


class TestRedirect:
    def test_redirect_raises_with_url(self, router, make_request) -> None:
        with pytest.raises(RedirectRequired) as exc_info:
            router.redirect(make_request("/journal1/about"), page="issue", op="current")
        assert exc_info.value.url == "/journal1/issue/current"
        assert exc_info.value.cookies == ()
