"""Request/response connector between the browser and its transport.

The connector owns everything a single browser identity accumulates while
a test runs: the base URL that relative paths resolve against, the default
headers added to every request, and the pages fetched so far.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from plainbrowser.exceptions import NoResponseYetError
from plainbrowser.logging import get_logger
from plainbrowser.transport import BrowserTransport

LOG = get_logger(__name__)


@dataclass(frozen=True)
class Page:
    """Snapshot of one HTTP response.

    The HTML document is parsed on first access to ``document``.
    """

    status_code: int
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    text: str = ""

    @classmethod
    def from_response(cls, response: requests.Response) -> Page:
        """Build a Page from a requests.Response."""
        return cls(
            status_code=response.status_code,
            url=response.url,
            headers=dict(response.headers),
            content=response.content or b"",
            text=response.text if response.content else "",
        )

    @cached_property
    def document(self) -> BeautifulSoup:
        return BeautifulSoup(self.text, "html.parser")


class Connector:
    """Sends requests through a transport and remembers the responses.

    Attributes:
        transport: The underlying HTTP client.
        base_url: URL that relative request paths are resolved against.
        headers: Default headers sent with every request. Keys are
            case-sensitive; a later ``set_header`` with the same name wins.
        history: Every page fetched in this session, oldest first.
        last_page: The most recent page, or None before the first request.
    """

    def __init__(self, transport: BrowserTransport, base_url: str) -> None:
        self.transport = transport
        self.base_url = base_url
        self.headers: dict[str, str] = {}
        self.history: list[Page] = []
        self.last_page: Page | None = None

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def unset_header(self, name: str) -> None:
        self.headers.pop(name, None)

    def resolve_url(self, uri: str) -> str:
        """Resolve *uri* against ``base_url``; absolute URLs pass through."""
        return urljoin(self.base_url, uri)

    @property
    def current_url(self) -> str:
        """URL of the last fetched page.

        Raises:
            NoResponseYetError: If no request has been made yet.
        """
        if self.last_page is None:
            raise NoResponseYetError()
        return self.last_page.url

    def request(
        self,
        method: str,
        uri: str,
        *,
        params: dict[str, Any] | None = None,
        data: Any = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> Page:
        """Send a request and record the response as the last page.

        Args:
            method: HTTP method.
            uri: Path relative to ``base_url``, or an absolute URL.
            params: Query parameters.
            data: Form body.
            json: JSON body.
            headers: Request headers; these override the default headers.
            **kwargs: Passed through to the transport's ``request()``.

        Returns:
            The recorded Page.
        """
        url = self.resolve_url(uri)
        merged_headers = {**self.headers, **(headers or {})}
        response = self.transport.request(
            method.upper(),
            url,
            params=params,
            data=data,
            json=json,
            headers=merged_headers,
            **kwargs,
        )
        page = Page.from_response(response)
        self.last_page = page
        self.history.append(page)
        LOG.info("request_sent", method=method.upper(), url=url, status=page.status_code)
        return page

    def reset(self) -> None:
        """Forget every page fetched so far."""
        self.history.clear()
        self.last_page = None

    def clone(self, transport: BrowserTransport) -> Connector:
        """Copy this connector onto *transport*, duplicating headers and history."""
        copy = Connector(transport, self.base_url)
        copy.headers = dict(self.headers)
        copy.history = list(self.history)
        copy.last_page = self.last_page
        return copy
