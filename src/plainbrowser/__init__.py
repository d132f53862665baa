"""plainbrowser - a cookie-aware HTTP browser for acceptance tests.

No JavaScript is executed: pages are fetched with requests and parsed with
BeautifulSoup.

This package provides:
- Declarative configuration (YAML, pytest options, environment variables)
- A configured requests.Session transport with TLS, proxy, auth and pool options
- Subdomain switching, custom headers, and raw client access
- Session snapshot/restore for multi-session tests
- pytest fixtures that run the per-test hooks

Example:
    >>> from plainbrowser import PlainBrowser
    >>> browser = PlainBrowser({"url": "http://www.example.com", "timeout": 10})
    >>> browser.initialize()
    >>> browser.before_test()
    >>> browser.switch_subdomain("api")
    >>> browser.get_base_url()
    'http://api.example.com'
"""

from plainbrowser.browser import PlainBrowser, replace_subdomain
from plainbrowser.config import (
    TRANSPORT_FLAGS,
    BrowserConfig,
    PlainBrowserSettings,
    get_settings,
    load_config,
    load_config_file,
)
from plainbrowser.connector import Connector, Page
from plainbrowser.exceptions import (
    ConfigurationError,
    NoResponseYetError,
    PlainBrowserError,
    SessionNotInitializedError,
    SessionStateError,
)
from plainbrowser.state import SessionState
from plainbrowser.transport import BrowserTransport, build_transport

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Browser
    "PlainBrowser",
    "replace_subdomain",
    "Connector",
    "Page",
    "SessionState",
    # Transport
    "BrowserTransport",
    "build_transport",
    # Configuration
    "BrowserConfig",
    "PlainBrowserSettings",
    "TRANSPORT_FLAGS",
    "get_settings",
    "load_config",
    "load_config_file",
    # Exceptions
    "PlainBrowserError",
    "ConfigurationError",
    "NoResponseYetError",
    "SessionNotInitializedError",
    "SessionStateError",
]
