"""Session snapshots for multi-session tests.

A ``SessionState`` holds exactly the objects that make up one browser
identity: the connector (base URL, default headers, history), the
transport (cookie jar, TLS and proxy settings) and the last page.

Ownership: a snapshot *refers* to those objects, it does not copy them.
Restoring a snapshot hands them to the restoring browser, so two browsers
that load the same snapshot share one cookie jar. Use ``clone()`` when an
independent copy is needed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from plainbrowser.connector import Connector, Page
from plainbrowser.exceptions import SessionStateError
from plainbrowser.transport import BrowserTransport


@dataclass(frozen=True)
class SessionState:
    """Snapshot of one browser session."""

    connector: Connector
    transport: BrowserTransport
    last_page: Page | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.connector, Connector):
            raise SessionStateError(
                f"connector must be a Connector, got {type(self.connector).__name__}"
            )
        if not isinstance(self.transport, BrowserTransport):
            raise SessionStateError(
                f"transport must be a BrowserTransport, got {type(self.transport).__name__}"
            )
        if self.connector.transport is not self.transport:
            raise SessionStateError("connector is bound to a different transport")
        if self.last_page is not None and not isinstance(self.last_page, Page):
            raise SessionStateError(
                f"last_page must be a Page or None, got {type(self.last_page).__name__}"
            )

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SessionState:
        """Build a snapshot from a mapping with exactly the snapshot fields.

        Args:
            data: Mapping with ``connector``, ``transport`` and ``last_page``.

        Returns:
            The SessionState.

        Raises:
            SessionStateError: If keys are unknown or missing, or values have
                the wrong type.
        """
        expected = cls.field_names()
        keys = frozenset(data)
        unknown = keys - expected
        missing = expected - keys
        if unknown or missing:
            details = []
            if unknown:
                details.append(f"unknown fields: {', '.join(sorted(unknown))}")
            if missing:
                details.append(f"missing fields: {', '.join(sorted(missing))}")
            raise SessionStateError(
                f"Invalid session state ({'; '.join(details)})",
                unknown=unknown,
                missing=missing,
            )
        return cls(**dict(data))

    def as_mapping(self) -> dict[str, Any]:
        """Return the snapshot fields as a dict (references, not copies)."""
        return {name: getattr(self, name) for name in sorted(self.field_names())}

    def clone(self) -> SessionState:
        """Return a snapshot that shares no mutable state with this one."""
        transport = self.transport.clone()
        connector = self.connector.clone(transport)
        connector.last_page = self.last_page
        return SessionState(connector=connector, transport=transport, last_page=self.last_page)
