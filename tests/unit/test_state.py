"""Tests for session snapshots."""

import pytest

from plainbrowser.config import load_config
from plainbrowser.connector import Connector, Page
from plainbrowser.exceptions import SessionStateError
from plainbrowser.state import SessionState
from plainbrowser.transport import build_transport


@pytest.fixture
def parts():
    transport = build_transport(load_config({"url": "http://www.example.com"}))
    connector = Connector(transport, "http://www.example.com")
    page = Page(status_code=200, url="http://www.example.com/", text="<p>hi</p>")
    connector.last_page = page
    return connector, transport, page


class TestSessionState:
    """Tests for SessionState construction and validation."""

    def test_field_names(self):
        assert SessionState.field_names() == frozenset({"connector", "transport", "last_page"})

    def test_from_mapping(self, parts):
        connector, transport, page = parts
        state = SessionState.from_mapping(
            {"connector": connector, "transport": transport, "last_page": page}
        )
        assert state.connector is connector
        assert state.transport is transport
        assert state.last_page is page

    def test_from_mapping_rejects_unknown_fields(self, parts):
        connector, transport, page = parts
        with pytest.raises(SessionStateError, match="unknown fields: crawler") as exc_info:
            SessionState.from_mapping(
                {"connector": connector, "transport": transport, "last_page": page, "crawler": 1}
            )
        assert exc_info.value.unknown == frozenset({"crawler"})

    def test_from_mapping_rejects_missing_fields(self, parts):
        connector, _, _ = parts
        with pytest.raises(SessionStateError, match="missing fields") as exc_info:
            SessionState.from_mapping({"connector": connector})
        assert "last_page, transport" in str(exc_info.value)
        assert exc_info.value.missing == frozenset({"transport", "last_page"})

    def test_rejects_wrong_types(self, parts):
        connector, transport, _ = parts
        with pytest.raises(SessionStateError, match="connector must be a Connector"):
            SessionState(connector="nope", transport=transport)
        with pytest.raises(SessionStateError, match="transport must be a BrowserTransport"):
            SessionState(connector=connector, transport=object())
        with pytest.raises(SessionStateError, match="last_page must be a Page"):
            SessionState(connector=connector, transport=transport, last_page=200)

    def test_rejects_mismatched_transport(self, parts):
        connector, _, _ = parts
        other = build_transport(load_config({"url": "http://www.example.com"}))
        with pytest.raises(SessionStateError, match="different transport"):
            SessionState(connector=connector, transport=other)

    def test_as_mapping_returns_references(self, parts):
        connector, transport, page = parts
        state = SessionState(connector=connector, transport=transport, last_page=page)
        mapping = state.as_mapping()
        assert mapping == {"connector": connector, "last_page": page, "transport": transport}
        assert SessionState.from_mapping(mapping) == state


class TestSessionStateClone:
    """Tests for SessionState.clone."""

    def test_clone_shares_nothing_mutable(self, parts):
        connector, transport, page = parts
        connector.set_header("X-Test", "1")
        transport.cookies.set("sid", "original", domain="www.example.com", path="/")
        state = SessionState(connector=connector, transport=transport, last_page=page)

        copy = state.clone()
        copy.connector.set_header("X-Test", "2")
        copy.transport.cookies.set("sid", "copy", domain="www.example.com", path="/")

        assert copy.connector is not connector
        assert copy.transport is not transport
        assert copy.connector.transport is copy.transport
        assert copy.last_page is page
        assert connector.headers["X-Test"] == "1"
        assert transport.cookies.get("sid") == "original"
