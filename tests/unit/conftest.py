"""Shared test helpers for unit tests."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import pytest
import requests
import requests.adapters
from requests.structures import CaseInsensitiveDict

from plainbrowser.browser import PlainBrowser

BASE_URL = "http://www.example.com"

HOME_PAGE = """
<html>
  <head><title>Example</title></head>
  <body>
    <h1 id="title">Welcome <b>home</b></h1>
    <ul class="menu"><li><a href="/login">Log in</a></li></ul>
  </body>
</html>
"""


class CapturingAdapter(requests.adapters.BaseAdapter):
    """Transport adapter double that records requests and returns canned pages.

    Routes are keyed by the prepared URL, which requests normalises (an
    empty path becomes ``/``).
    """

    def __init__(self, body: str = HOME_PAGE, status: int = 200) -> None:
        super().__init__()
        self.requests: list[requests.PreparedRequest] = []
        self.send_kwargs: list[dict[str, Any]] = []
        self.default = (status, body, {})
        self.routes: dict[str, tuple[int, str, dict[str, str]]] = {}

    def add(
        self,
        url: str,
        body: str = "",
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.routes[url] = (status, body, headers or {})

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        self.requests.append(request)
        self.send_kwargs.append(kwargs)
        status, body, headers = self.routes.get(request.url, self.default)

        response = requests.Response()
        response.status_code = status
        response._content = body.encode("utf-8")
        response.headers = CaseInsensitiveDict(
            {"Content-Type": "text/html; charset=utf-8", **headers}
        )
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        response.reason = "OK" if status < 400 else "Error"
        return response

    def close(self) -> None:
        pass

    @property
    def last_request(self) -> requests.PreparedRequest:
        return self.requests[-1]


def mount_capture(browser: PlainBrowser, adapter: CapturingAdapter) -> None:
    """Route the browser's current transport through *adapter*."""
    browser.run_with_raw_client(lambda session: session.mount("http://", adapter))


@pytest.fixture
def capture() -> CapturingAdapter:
    return CapturingAdapter()


@pytest.fixture
def browser(capture: CapturingAdapter) -> PlainBrowser:
    """An initialized browser in a fresh session, served by ``capture``."""
    instance = PlainBrowser({"url": BASE_URL})
    instance.initialize()
    instance.before_test()
    mount_capture(instance, capture)
    return instance


class _SiteHandler(BaseHTTPRequestHandler):
    """Serves the home page plus a cookie-setting redirect to a cookie echo."""

    def do_GET(self) -> None:
        if self.path == "/redirect":
            self.send_response(302)
            self.send_header("Set-Cookie", "sid=from-redirect; Path=/")
            self.send_header("Location", "/echo-cookie")
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        if self.path == "/echo-cookie":
            body = self.headers.get("Cookie", "")
        else:
            body = HOME_PAGE
        payload = body.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format: str, *args: Any) -> None:
        pass


@pytest.fixture
def site_port() -> Iterator[int]:
    """Port of a real HTTP server on 127.0.0.1, running for one test."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _SiteHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server.server_port
    server.shutdown()
    server.server_close()
