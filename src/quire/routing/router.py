"""The page router.

Maps a request to a page handler and operation, and builds URLs with the
same rules in the opposite direction::

    router = PageRouter(config, contexts=contexts, site=site)
    result = await router.route(request)
    router.url(request, page="issue", op="view", path=["12"])

Routing a request:

1. The access gate may redirect (installation state, disabled context).
2. The handler is resolved (hooks, registry, page modules, default page).
3. Locale negotiation may redirect (``setLocale`` or a URL locale that
   disagrees with the chosen one), writing session and cookie.
4. The operation (``index`` when omitted) must exist on the handler.
5. The handler is authorized, initialized and the operation called.

Redirects and 404s are raised as :class:`~quire.errors.RedirectRequired`
and :class:`~quire.errors.NotFound`; the ASGI handler turns them into
responses.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any, NoReturn

from quire.config import AppConfig
from quire.contexts import ALL_CONTEXTS_PATH, SITE_CONTEXT_PATH, Context, ContextRepository, Site
from quire.errors import NotFound, RedirectRequired
from quire.hooks import HookBus
from quire.http.cookies import SetCookie
from quire.http.request import Request
from quire.i18n.resolver import LocaleDecision, LocaleResolver
from quire.routing import cache
from quire.routing.dispatch import authorize_initialize_and_call
from quire.routing.gate import DEFAULT_STAGES, GateStage, run_gate
from quire.routing.grammar import DEFAULT_OP, PathInfo, RouteTarget, requested_path_info
from quire.routing.registry import HandlerRegistry
from quire.routing.urls import UrlBuilder
from quire.security.audit import emit_security_event
from quire.security.roles import Role, UserWithGroups

logger = logging.getLogger("quire.router")

SET_LOCALE_OP = "setLocale"
INSTALL_PAGE = "install"

# Roles sent to the editorial dashboard when the new submission listing is on
_EDITORIAL_ROLES = frozenset({Role.MANAGER, Role.SITE_ADMIN, Role.SUB_EDITOR, Role.ASSISTANT})


class PageRouter:
    """Routes page requests and builds page URLs."""

    __slots__ = ("_contexts", "_stages", "config", "hooks", "locales", "registry", "urls")

    def __init__(
        self,
        config: AppConfig,
        *,
        contexts: ContextRepository,
        site: Site | None = None,
        registry: HandlerRegistry | None = None,
        hooks: HookBus | None = None,
        stages: Sequence[GateStage] = DEFAULT_STAGES,
    ) -> None:
        self.config = config
        self._contexts = contexts
        self._stages = tuple(stages)
        self.registry = registry or HandlerRegistry(config.pages_dir, config.lib_pages_dir)
        self.hooks = hooks or HookBus()
        self.locales = LocaleResolver(config, contexts, site or Site())
        self.urls = UrlBuilder(config, self.locales)

    # -- Requested values --

    def _path_info(self, request: Request) -> PathInfo:
        return requested_path_info(
            request,
            self.config.installed_locales,
            path_info_enabled=self.config.path_info_enabled,
        )

    def get_requested_context_path(self, request: Request) -> str:
        """The context path named by the request, ``index`` for the site."""
        return self._path_info(request).context

    def get_requested_page(self, request: Request) -> str:
        """The requested page, ``""`` when the URL names none."""
        return self._path_info(request).page

    def get_requested_op(self, request: Request) -> str:
        """The requested operation, ``""`` when the URL names none."""
        return self._path_info(request).op

    def get_requested_args(self, request: Request) -> tuple[str, ...]:
        """Percent-decoded path segments after the operation."""
        return self._path_info(request).args

    def get_requested_url_locale(self, request: Request) -> str | None:
        """The locale segment of the URL, if any."""
        return self._path_info(request).locale

    def get_requested_anchor(self, request: Request) -> str:
        """The fragment of the request URL. Browsers rarely send one."""
        _, _, anchor = request.url.partition("#")
        return anchor

    def get_context(self, request: Request) -> Context | None:
        """The context the request addresses, ``None`` at site level."""
        if request.context is not None:
            return request.context
        path = self.get_requested_context_path(request)
        if path in (SITE_CONTEXT_PATH, ALL_CONTEXTS_PATH):
            return None
        return self._contexts.get_by_path(path)

    def get_locale(self, request: Request) -> str:
        """The locale the request runs in."""
        info = self._path_info(request)
        return self.locales.current_locale(request, info.context, info.locale)

    def get_index_url(self, request: Request) -> str:
        """Base URL, plus the script name when RESTful URLs are off."""
        return self.urls.index_url(request)

    # -- Page cache --

    def is_cacheable(self, request: Request, test_only: bool = False) -> bool:
        return cache.is_cacheable(
            self.config, request, self.get_requested_page(request), test_only=test_only
        )

    def get_cache_filename(self, request: Request) -> Path:
        return cache.cache_filename(self.config, request, self.get_locale(request))

    # -- Routing --

    async def route(self, request: Request) -> Any:
        """Dispatch *request* to its page handler and return the operation's result.

        Raises:
            RedirectRequired: The request must continue elsewhere.
            NotFound: No handler or no operation matched.
        """
        assert request is not None, "route() needs the current request"
        if request.context is None:
            request = replace(request, context=self.get_context(request))

        info = self._path_info(request)
        page = info.page

        redirect_url = run_gate(self, request, page, self._stages)
        if redirect_url is not None:
            logger.debug("Access gate redirects %s to %s", request.path, redirect_url)
            raise RedirectRequired(redirect_url)

        if request.context is None and info.context not in (SITE_CONTEXT_PATH, ALL_CONTEXTS_PATH):
            raise NotFound(f"Unknown context {info.context!r}")

        resolved = self.registry.resolve(page, info.op, self.hooks)
        page, op = resolved.page, resolved.op

        set_locale: str | None = None
        if op == SET_LOCALE_OP:
            set_locale = info.args[0] if info.args else None
        elif page == INSTALL_PAGE:
            set_locale = request.query.get("setLocale")
        self._apply_locale(request, info, set_locale)

        target = RouteTarget(page=page, op=op or DEFAULT_OP, args=info.args)
        if target.op not in resolved.operations:
            logger.debug("Page %r has no operation %r", target.page, target.op)
            raise NotFound(f"No operation {target.op!r} on page {target.page!r}")

        handler = resolved.instantiate(request)
        logger.debug("Routing %s to %s.%s", request.path, type(handler).__name__, target.op)
        return await authorize_initialize_and_call(
            self, handler, target.op, request, target.args, validate=False
        )

    def _apply_locale(self, request: Request, info: PathInfo, set_locale: str | None) -> None:
        decision = self.locales.decide(
            request,
            context_path=info.context,
            url_locale=info.locale,
            set_locale=set_locale,
            index_url=self.get_index_url(request),
        )
        if not decision.redirect_required:
            return

        cookies = self._write_locale(request, decision)
        assert decision.redirect_url is not None
        raise RedirectRequired(decision.redirect_url, cookies=cookies)

    def _write_locale(self, request: Request, decision: LocaleDecision) -> tuple[str, ...]:
        """Store the decided locale in the session; return the cookie to send."""
        write = decision.write
        if write is None:
            return ()
        if request.session is not None:
            request.session[write.session_key] = write.locale
        cookie = SetCookie(
            name=write.cookie_name,
            value=write.locale,
            max_age=self.config.locale_cookie_max_age,
            httponly=False,
        )
        return (cookie.to_header_value(),)

    # -- URLs and redirects --

    def url(
        self,
        request: Request,
        context: str | None = None,
        page: str | None = None,
        op: str | None = None,
        path: str | Sequence[str] | None = None,
        params: Mapping[str, Any] | None = None,
        anchor: str | None = None,
        escape: bool = False,
        url_locale: str | None = None,
    ) -> str:
        """Build a page URL; omitted parts default from the current request."""
        return self.urls.build(
            request,
            self._path_info(request),
            context=context,
            page=page,
            op=op,
            path=path,
            params=params,
            anchor=anchor,
            escape=escape,
            url_locale=url_locale,
        )

    def redirect(
        self,
        request: Request,
        context: str | None = None,
        page: str | None = None,
        op: str | None = None,
        path: str | Sequence[str] | None = None,
        params: Mapping[str, Any] | None = None,
        anchor: str | None = None,
    ) -> NoReturn:
        """Raise a redirect to the URL :meth:`url` builds from the same arguments."""
        raise RedirectRequired(
            self.url(request, context, page, op, path=path, params=params, anchor=anchor)
        )

    def handle_authorization_failure(self, request: Request, message: str) -> NoReturn:
        """End a request the handler refused.

        Anonymous users are sent to the login page, which brings them back
        afterwards; logged-in users see the authorization-denied page.
        """
        user_id = request.user.id if request.is_authenticated else None  # type: ignore[union-attr]
        emit_security_event(
            "auth.authorization.denied",
            request=request,
            user_id=user_id,
            details={"message": message},
        )
        if not request.is_authenticated:
            self.redirect(
                request,
                page="login",
                params={"source": request.url, "loginMessage": message},
            )
        self.redirect(request, page="user", op="authorizationDenied", params={"message": message})

    def get_home_url(self, request: Request) -> str:
        """Where a logged-in user lands, depending on the roles they hold."""
        user = request.user
        groups_of = user.user_groups if isinstance(user, UserWithGroups) else (lambda _: ())

        context = self.get_context(request)
        if context is not None:
            groups = groups_of(context.id)
            if not groups or (len(groups) == 1 and groups[0].role_id == Role.READER):
                return self.url(request, page="index")

            if self.config.enable_new_submission_listing:
                roles = {group.role_id for group in groups}
                if roles & _EDITORIAL_ROLES:
                    return self.url(request, page="dashboard", op="editorial")
                if Role.REVIEWER in roles:
                    return self.url(request, page="dashboard", op="reviewAssignments")
                if Role.AUTHOR in roles:
                    return self.url(request, page="dashboard", op="mySubmissions")

            return self.url(request, page="submissions")

        groups = groups_of(None)
        if len(groups) == 1:
            group = groups[0]
            group_context = self._contexts.get_by_id(group.context_id)
            if group_context is not None and group.role_id == Role.READER:
                return self.url(request, context=group_context.path, page="index")
        return self.url(request, context=SITE_CONTEXT_PATH, page="index")

    def redirect_home(self, request: Request) -> NoReturn:
        raise RedirectRequired(self.get_home_url(request))
