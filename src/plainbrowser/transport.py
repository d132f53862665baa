"""Underlying HTTP client construction.

``build_transport`` turns a validated ``BrowserConfig`` into a
``BrowserTransport``: a requests.Session carrying the configured TLS,
proxy, auth, cookie and connection-pool settings, plus per-request defaults
(timeout, redirects, streaming) that requests.Session has no slot for.
"""

from __future__ import annotations

from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any

import requests
import requests.adapters
import requests.auth
import requests.utils

from plainbrowser.config import BrowserConfig
from plainbrowser.exceptions import ConfigurationError
from plainbrowser.logging import get_logger

LOG = get_logger(__name__)

TimeoutValue = float | tuple[float, float] | None


class _RejectCookiesPolicy(DefaultCookiePolicy):
    """Cookie policy that refuses every cookie a server tries to set."""

    def set_ok(self, cookie: Any, request: Any) -> bool:
        return False


class BrowserTransport(requests.Session):
    """A requests.Session with per-request defaults.

    The defaults are applied with ``setdefault`` so arguments passed by the
    caller always win. Note that ``get()``/``options()``/``head()`` pass
    ``allow_redirects`` explicitly, as requests.Session does; use
    ``request()`` to pick up the configured redirect default.
    """

    def __init__(
        self,
        *,
        timeout: TimeoutValue = None,
        allow_redirects: bool = True,
        stream: bool = False,
    ) -> None:
        """Initialize a BrowserTransport.

        Args:
            timeout: Default timeout passed to every request.
            allow_redirects: Default redirect-following behaviour.
            stream: Default streaming behaviour.
        """
        super().__init__()
        self.pb_timeout: TimeoutValue = timeout
        self.pb_allow_redirects = allow_redirects
        self.pb_stream = stream
        self.pb_adapter_options: dict[str, Any] = {}

    def request(self, method: str | bytes, url: str | bytes, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", self.pb_timeout)
        kwargs.setdefault("allow_redirects", self.pb_allow_redirects)
        kwargs.setdefault("stream", self.pb_stream)
        return super().request(method, url, **kwargs)

    def prepare_request(self, request: requests.Request) -> requests.PreparedRequest:
        prepared = super().prepare_request(request)
        # requests follows redirects with a per-request jar of its own; it
        # must refuse cookies whenever the session jar does
        if isinstance(prepared._cookies, CookieJar):
            prepared._cookies.set_policy(self.cookies.get_policy())
        return prepared

    def mount_adapters(self, **options: Any) -> None:
        """Mount one HTTPAdapter built from *options* for http and https.

        Args:
            **options: Keyword arguments for ``requests.adapters.HTTPAdapter``.
        """
        adapter = requests.adapters.HTTPAdapter(**options)
        self.mount("http://", adapter)
        self.mount("https://", adapter)
        self.pb_adapter_options = dict(options)

    def clone(self) -> BrowserTransport:
        """Return an independent copy of this transport.

        Headers, cookies (including the jar's policy), proxies and default
        params are copied; connection pools are fresh. The auth object is
        shared since requests auth handlers carry no per-session state
        worth duplicating.
        """
        copy = BrowserTransport(
            timeout=self.pb_timeout,
            allow_redirects=self.pb_allow_redirects,
            stream=self.pb_stream,
        )
        copy.headers.clear()
        copy.headers.update(self.headers)
        copy.cookies = self.cookies.copy()
        copy.auth = self.auth
        copy.proxies = dict(self.proxies)
        copy.params = dict(self.params)
        copy.verify = self.verify
        copy.cert = self.cert
        copy.max_redirects = self.max_redirects
        copy.trust_env = self.trust_env
        copy.mount_adapters(**self.pb_adapter_options)
        return copy


def _resolve_timeout(timeout: float, connect_timeout: float | None) -> TimeoutValue:
    """Map configured seconds to a requests timeout value.

    A read timeout of 0 disables the timeout entirely.
    """
    read = timeout or None
    if connect_timeout is None:
        return read
    return (connect_timeout, read)


def _build_auth(auth: tuple[str, ...]) -> requests.auth.AuthBase:
    username, password = auth[0], auth[1]
    scheme = auth[2].lower() if len(auth) == 3 else "basic"
    if scheme == "digest":
        return requests.auth.HTTPDigestAuth(username, password)
    return requests.auth.HTTPBasicAuth(username, password)


def build_transport(config: BrowserConfig) -> BrowserTransport:
    """Construct the underlying HTTP client for *config*.

    Args:
        config: Validated browser configuration.

    Returns:
        A configured ``BrowserTransport``.

    Raises:
        ConfigurationError: If requests rejects one of the options.
    """
    flags = config.transport_options
    try:
        transport = BrowserTransport(
            timeout=_resolve_timeout(config.timeout, config.connect_timeout),
            allow_redirects=flags.get("allow_redirects", True),
            stream=flags.get("stream", False),
        )

        transport.verify = config.verify
        if config.cert:
            transport.cert = (config.cert, config.ssl_key) if config.ssl_key else config.cert
        elif config.ssl_key:
            raise ConfigurationError("ssl_key requires cert to be set")

        if isinstance(config.proxy, str):
            transport.proxies = {"http": config.proxy, "https": config.proxy}
        elif config.proxy:
            transport.proxies = dict(config.proxy)

        transport.params = dict(config.query)
        transport.headers.update(config.headers)
        if config.expect:
            transport.headers["Expect"] = "100-continue"
        if config.auth:
            transport.auth = _build_auth(config.auth)

        if config.cookies is False:
            transport.cookies.set_policy(_RejectCookiesPolicy())
        elif isinstance(config.cookies, dict):
            requests.utils.add_dict_to_cookiejar(transport.cookies, config.cookies)

        if "max_redirects" in flags:
            transport.max_redirects = flags["max_redirects"]
        if "trust_env" in flags:
            transport.trust_env = flags["trust_env"]

        transport.mount_adapters(
            pool_connections=flags.get("pool_connections", requests.adapters.DEFAULT_POOLSIZE),
            pool_maxsize=flags.get("pool_maxsize", requests.adapters.DEFAULT_POOLSIZE),
            max_retries=flags.get("max_retries", requests.adapters.DEFAULT_RETRIES),
            pool_block=flags.get("pool_block", requests.adapters.DEFAULT_POOLBLOCK),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Transport rejected configuration: {exc}") from exc

    LOG.debug(
        "transport_built",
        url=config.url,
        verify=config.verify,
        timeout=transport.pb_timeout,
        flags=sorted(flags),
    )
    return transport
