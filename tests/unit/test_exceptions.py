"""Tests for plainbrowser.exceptions module."""

from __future__ import annotations

import pytest

from plainbrowser.exceptions import (
    ConfigurationError,
    NoResponseYetError,
    PlainBrowserError,
    SessionNotInitializedError,
    SessionStateError,
)


class TestHierarchy:
    """Every error is catchable as PlainBrowserError."""

    @pytest.mark.parametrize(
        "error_class",
        [ConfigurationError, NoResponseYetError, SessionNotInitializedError, SessionStateError],
    )
    def test_inherits_from_base(self, error_class: type[Exception]) -> None:
        assert issubclass(error_class, PlainBrowserError)


class TestNoResponseYetError:
    """Tests for NoResponseYetError."""

    def test_default_message(self) -> None:
        assert "No request has been made" in str(NoResponseYetError())

    def test_custom_message(self) -> None:
        assert str(NoResponseYetError("nothing yet")) == "nothing yet"


class TestSessionStateError:
    """Tests for SessionStateError."""

    def test_defaults(self) -> None:
        err = SessionStateError("bad state")
        assert str(err) == "bad state"
        assert err.unknown == frozenset()
        assert err.missing == frozenset()

    def test_stores_fields(self) -> None:
        err = SessionStateError("bad", unknown=frozenset({"x"}), missing=frozenset({"y"}))
        assert err.unknown == frozenset({"x"})
        assert err.missing == frozenset({"y"})
