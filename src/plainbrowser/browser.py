"""PlainBrowser: a cookie-aware HTTP browser for acceptance tests.

The browser does not execute JavaScript. It turns a configuration map into a
``BrowserTransport`` (a configured requests.Session), binds a ``Connector``
to it for the current session, and exposes the hooks a test runner and a
multi-session orchestrator drive it through:

- ``initialize()`` once, then ``before_test()`` / ``after_test()`` per test
- ``on_reconfigure()`` whenever the configuration changes
- ``initialize_session()``, ``capture_session_state()``,
  ``restore_session_state()`` and ``close_session()`` for multi-session tests

Example:
    >>> from plainbrowser import PlainBrowser
    >>> browser = PlainBrowser({"url": "http://www.example.com"})
    >>> browser.initialize()
    >>> browser.before_test()
    >>> browser.am_on_page("/")
    >>> browser.see_response_code_is(200)
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Final, TypeVar
from urllib.parse import urlsplit, urlunsplit

import requests.cookies
import slugify as slugify_lib

from plainbrowser.config import BrowserConfig, load_config
from plainbrowser.connector import Connector, Page
from plainbrowser.exceptions import (
    ConfigurationError,
    NoResponseYetError,
    SessionNotInitializedError,
)
from plainbrowser.logging import get_logger
from plainbrowser.state import SessionState
from plainbrowser.transport import BrowserTransport, build_transport

LOG = get_logger(__name__)

T = TypeVar("T")

_HOST_LABEL: Final[re.Pattern[str]] = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def _is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def replace_subdomain(url: str, subdomain: str) -> str:
    """Make *subdomain* the leftmost host label of *url*.

    A host with three or more labels has its leftmost label replaced; a
    shorter host (``example.com``, ``localhost``) gets the new label
    prepended. Port, credentials, path, query and fragment are kept.

    Args:
        url: Absolute http(s) URL.
        subdomain: One or more dot-separated host labels.

    Returns:
        The rewritten URL.

    Raises:
        ConfigurationError: If *subdomain* is not a valid host label, or the
            URL is not http(s) or its host is an IP address.
    """
    if not subdomain or not all(_HOST_LABEL.match(label) for label in subdomain.split(".")):
        raise ConfigurationError(f"Invalid subdomain {subdomain!r}")

    parts = urlsplit(url)
    host = parts.hostname
    if parts.scheme not in ("http", "https") or not host:
        raise ConfigurationError(f"Cannot switch subdomain of non-http(s) URL {url!r}")
    if _is_ip_address(host):
        raise ConfigurationError(f"Cannot switch subdomain of IP address host in {url!r}")
    try:
        port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"Invalid port in {url!r}: {exc}") from exc

    labels = host.split(".")
    if len(labels) > 2:
        labels = labels[1:]
    netloc = ".".join([subdomain, *labels])
    if port is not None:
        netloc = f"{netloc}:{port}"
    if "@" in parts.netloc:
        userinfo = parts.netloc.rsplit("@", 1)[0]
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit(parts._replace(netloc=netloc))


class PlainBrowser:
    """HTTP browser module driving one application under test.

    Attributes:
        config: The active configuration. Changed by ``reconfigure()`` and
            ``switch_subdomain()``; restored by ``after_test()``.
    """

    def __init__(self, config: Mapping[str, Any] | BrowserConfig) -> None:
        """Initialize a PlainBrowser.

        Args:
            config: Configuration map (``url`` required) or a validated
                ``BrowserConfig``.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        self._initial_config: BrowserConfig = load_config(config)
        self.config: BrowserConfig = self._initial_config
        self._transport: BrowserTransport | None = None
        self._connector: Connector | None = None
        # True once a session has been bound to _transport
        self._transport_in_use = False

    # -- runner hooks ------------------------------------------------------

    def initialize(self) -> None:
        """Build the underlying HTTP client from the active configuration.

        Raises:
            ConfigurationError: If the transport rejects the configuration.
        """
        self._transport = build_transport(self.config)
        self._transport_in_use = False
        LOG.info("browser_initialized", url=self.config.url)

    def initialize_session(self) -> None:
        """Start a fresh browser identity: new transport, new connector.

        A transport built by ``initialize()`` that no session has used yet
        is taken over as is. Otherwise any previous client, cookies and
        pages are discarded from this browser (snapshots taken earlier keep
        them alive).
        """
        if self._transport is None or self._transport_in_use:
            self._transport = build_transport(self.config)
        self._transport_in_use = True
        self._connector = Connector(self._transport, self.config.url)
        LOG.debug("session_initialized", url=self.config.url)

    def before_test(self) -> None:
        self.initialize_session()

    def after_test(self) -> None:
        """Undo configuration changes made during the test."""
        if self.config is self._initial_config:
            return
        LOG.debug("config_reset", url=self._initial_config.url, previous=self.config.url)
        self.config = self._initial_config
        self.on_reconfigure()

    def reconfigure(self, **overrides: Any) -> None:
        """Apply configuration *overrides* and rebuild the session.

        Raises:
            ConfigurationError: If the resulting configuration is invalid.
        """
        self.config = self.config.reconfigured(**overrides)
        self.on_reconfigure()

    def on_reconfigure(self) -> None:
        self.initialize()
        self.initialize_session()

    # -- session objects ---------------------------------------------------

    @property
    def transport(self) -> BrowserTransport:
        """The underlying HTTP client.

        Raises:
            SessionNotInitializedError: If ``initialize()`` has not run.
        """
        if self._transport is None:
            raise SessionNotInitializedError("Browser is not initialized; call initialize() first")
        return self._transport

    @property
    def connector(self) -> Connector:
        """The connector of the current session.

        Raises:
            SessionNotInitializedError: If no session has been started.
        """
        if self._connector is None:
            raise SessionNotInitializedError(
                "No browser session; call before_test() or initialize_session() first"
            )
        return self._connector

    def get_base_url(self) -> str:
        if self._connector is not None:
            return self._connector.base_url
        return self.config.url

    def set_header(self, name: str, value: str) -> None:
        """Send header *name* with every following request of this session."""
        self.connector.set_header(name, value)

    def unset_header(self, name: str) -> None:
        self.connector.unset_header(name)

    def switch_subdomain(self, subdomain: str) -> None:
        """Point the browser at *subdomain* of the configured host.

        Example:
            ``http://www.example.com`` with ``"api"`` becomes
            ``http://api.example.com``.

        Raises:
            ConfigurationError: If the subdomain or base URL is unusable.
        """
        url = replace_subdomain(self.config.url, subdomain)
        LOG.info("subdomain_switched", subdomain=subdomain, url=url)
        self.reconfigure(url=url)

    def run_with_raw_client(self, fn: Callable[[BrowserTransport], T]) -> T:
        """Call *fn* with the underlying requests.Session and return its result.

        Low-level escape hatch for anything the browser does not expose.
        Exceptions raised by *fn* propagate unchanged.

        Changes made after ``initialize()`` and before the first session
        carry into that session. Every later session, and every
        reconfiguration, starts from a freshly built client.

        Example:
            >>> browser.run_with_raw_client(lambda s: s.hooks["response"].append(log_it))
        """
        return fn(self.transport)

    # -- multi-session -----------------------------------------------------

    def capture_session_state(self) -> SessionState:
        """Snapshot the current session (by reference)."""
        connector = self.connector
        state = SessionState(
            connector=connector,
            transport=connector.transport,
            last_page=connector.last_page,
        )
        LOG.debug("session_state_captured", url=connector.base_url)
        return state

    def restore_session_state(self, state: SessionState | Mapping[str, Any]) -> None:
        """Make the session in *state* the current one.

        Args:
            state: A snapshot, or a mapping with exactly the snapshot fields.

        Raises:
            SessionStateError: If a mapping has unknown or missing fields.
        """
        if not isinstance(state, SessionState):
            state = SessionState.from_mapping(state)
        self._connector = state.connector
        self._transport = state.transport
        self._transport_in_use = True
        self._connector.last_page = state.last_page
        LOG.debug("session_state_restored", url=state.connector.base_url)

    def close_session(self, state: SessionState | None) -> None:
        """Discard *state*.

        Connection pools of the snapshot's transport are released unless that
        transport is the one this browser is currently using.
        """
        if state is None:
            return
        if state.transport is not self._transport:
            state.transport.close()
        LOG.debug("session_closed", url=state.connector.base_url)

    # -- requests ----------------------------------------------------------

    def am_on_page(self, page: str = "/") -> Page:
        """Open *page* (a path relative to the base URL, or an absolute URL)."""
        return self.connector.request("GET", page)

    def send_request(
        self,
        method: str,
        page: str,
        *,
        params: dict[str, Any] | None = None,
        data: Any = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Page:
        """Send an arbitrary request and make its response the current page."""
        return self.connector.request(
            method, page, params=params, data=data, json=json, headers=headers
        )

    def _last_page(self) -> Page:
        if self._connector is None or self._connector.last_page is None:
            raise NoResponseYetError()
        return self._connector.last_page

    def get_last_status_code(self) -> int:
        """Status code of the last response.

        Raises:
            NoResponseYetError: If no request has been made in this session.
        """
        return self._last_page().status_code

    # -- assertions --------------------------------------------------------

    def _page_text(self, selector: str | None) -> str:
        document = self._last_page().document
        if selector is None:
            return document.get_text(" ", strip=True)
        return " ".join(el.get_text(" ", strip=True) for el in document.select(selector))

    def see_response_code_is(self, code: int) -> None:
        actual = self.get_last_status_code()
        if actual != code:
            raise AssertionError(f"Expected response code {code}, got {actual}")

    def see(self, text: str, selector: str | None = None) -> None:
        """Assert *text* is on the page (optionally within *selector*)."""
        if text not in self._page_text(selector):
            where = f" in {selector!r}" if selector else ""
            raise AssertionError(f"Text {text!r} not found{where} on {self.connector.current_url}")

    def dont_see(self, text: str, selector: str | None = None) -> None:
        if text in self._page_text(selector):
            where = f" in {selector!r}" if selector else ""
            raise AssertionError(f"Text {text!r} found{where} on {self.connector.current_url}")

    def see_element(self, selector: str) -> None:
        if not self._last_page().document.select(selector):
            raise AssertionError(f"Element {selector!r} not found on {self.connector.current_url}")

    def dont_see_element(self, selector: str) -> None:
        if self._last_page().document.select(selector):
            raise AssertionError(f"Element {selector!r} found on {self.connector.current_url}")

    def see_in_current_url(self, fragment: str) -> None:
        url = self._last_page().url
        if fragment not in url:
            raise AssertionError(f"{fragment!r} not found in current URL {url}")

    # -- grabbers ----------------------------------------------------------

    def grab_page_source(self) -> str:
        return self._last_page().text

    def grab_text_from(self, selector: str) -> str:
        """Return the text of the first element matching *selector*.

        Raises:
            AssertionError: If nothing matches.
        """
        element = self._last_page().document.select_one(selector)
        if element is None:
            raise AssertionError(f"Element {selector!r} not found on {self.connector.current_url}")
        return element.get_text(" ", strip=True)

    def grab_cookie(
        self,
        name: str,
        *,
        domain: str | None = None,
        path: str | None = None,
    ) -> str | None:
        """Value of cookie *name*, or None if it is not set.

        When several cookies share the name (a host cookie and one set on a
        parent domain, say), *domain* and *path* narrow the choice. Among
        the remaining ones, a cookie for the base URL's host wins, then the
        most specific domain, then the most specific path.
        """
        jar = self.transport.cookies
        try:
            return jar.get(name, domain=domain, path=path)
        except requests.cookies.CookieConflictError:
            pass

        host = urlsplit(self.get_base_url()).hostname or ""
        candidates = [
            cookie
            for cookie in jar
            if cookie.name == name
            and (domain is None or cookie.domain == domain)
            and (path is None or cookie.path == path)
        ]
        best = max(
            candidates,
            key=lambda c: (c.domain.lstrip(".") == host, len(c.domain), len(c.path)),
        )
        LOG.debug("cookie_conflict_resolved", name=name, domain=best.domain, path=best.path)
        return best.value

    def set_cookie(
        self,
        name: str,
        value: str,
        *,
        domain: str | None = None,
        path: str = "/",
    ) -> None:
        """Set a cookie, scoped to the base URL's host unless *domain* is given."""
        host = domain or urlsplit(self.get_base_url()).hostname or ""
        self.transport.cookies.set(name, value, domain=host, path=path)

    def reset_cookie(self, name: str) -> None:
        """Remove every cookie called *name*."""
        self.transport.cookies.set(name, None)

    # -- failure artifacts -------------------------------------------------

    def on_failure(self, test_name: str, output_dir: str | Path) -> Path | None:
        """Save the last shown page of a failed test.

        Args:
            test_name: Name of the failed test, used for the file name.
            output_dir: Directory to write into (created if missing).

        Returns:
            Path of the saved page, or None if no page was loaded.
        """
        if self._connector is None or self._connector.last_page is None:
            LOG.debug("no_page_to_save", test=test_name)
            return None

        directory = Path(output_dir)
        directory.mkdir(parents=True, exist_ok=True)
        slug = slugify_lib.slugify(test_name) or "page"
        path = directory / f"{slug}.fail.html"
        path.write_text(self._connector.last_page.text, encoding="utf-8")
        LOG.info("failure_page_saved", test=test_name, path=str(path))
        return path
