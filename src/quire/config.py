"""Application configuration.

AppConfig is a frozen dataclass and cannot change after creation.
Settings are attributes, not string-key dict lookups.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

# Pages that can be displayed before the system is installed
INSTALLATION_PAGES: frozenset[str] = frozenset({"install", "help", "header", "sidebar"})


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(secret_key="s3cr3t", installed=True, base_url="")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Security
    secret_key: str = ""

    # URLs
    base_url: str | None = None  # None = derive from the request, "" = relative URLs
    restful_urls: bool = True  # False inserts /index.php after the base URL
    path_info_enabled: bool = True  # False reads context/page/op from query variables
    context_base_urls: Mapping[str, str] = field(default_factory=dict)

    # Installation state
    installed: bool = True
    under_maintenance: bool = False
    installation_pages: frozenset[str] = INSTALLATION_PAGES

    # Sessions
    sessions_disabled: bool = False
    session_cookie_name: str = "quire_session"
    session_max_age: int = 86400  # 24 hours

    # Pages
    pages_dir: str | Path | None = "pages"
    lib_pages_dir: str | Path | None = None  # Shared page modules checked after pages_dir

    # Locales
    default_locale: str = "en"
    installed_locales: tuple[str, ...] = ("en",)
    locale_cookie_name: str = "currentLocale"
    locale_cookie_max_age: int | None = None

    # Page cache
    cache_dir: str | Path = "cache"
    cacheable_pages: frozenset[str] = frozenset()
    page_cache_enabled: bool = False
    page_cache_lifetime: float = 3600.0

    # Home URL selection
    enable_new_submission_listing: bool = False

    @property
    def sessions_enabled(self) -> bool:
        """True unless sessions were switched off for this deployment."""
        return not self.sessions_disabled
