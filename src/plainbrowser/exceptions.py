"""Custom exceptions for plainbrowser package."""


class PlainBrowserError(Exception):
    """Base exception class for all plainbrowser errors."""


class ConfigurationError(PlainBrowserError):
    """Raised when the browser configuration is missing, invalid, or rejected.

    Covers a missing ``url``, option values the transport cannot accept,
    unknown transport flags, and base URLs that cannot take a subdomain.
    """


class NoResponseYetError(PlainBrowserError):
    """Raised when the last response is queried before any request was made."""

    def __init__(self, message: str = "No request has been made in this session yet") -> None:
        super().__init__(message)


class SessionNotInitializedError(PlainBrowserError):
    """Raised when the transport or connector is used before initialization."""


class SessionStateError(PlainBrowserError):
    """Raised when a session snapshot has unknown or missing fields.

    Attributes:
        unknown: Field names present in the snapshot but not recognised.
        missing: Required field names absent from the snapshot.
    """

    def __init__(
        self,
        message: str,
        unknown: frozenset[str] = frozenset(),
        missing: frozenset[str] = frozenset(),
    ) -> None:
        """Initialize SessionStateError.

        Args:
            message: Human-readable error message.
            unknown: Unrecognised field names.
            missing: Absent required field names.
        """
        super().__init__(message)
        self.unknown = unknown
        self.missing = missing
