"""Exception types raised by the event discovery service."""


class QiktixError(Exception):
    """Base class for every error raised by this package."""


class EventFetchError(QiktixError):
    """The ticketing API call failed (transport error or non-success status)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EventNotFoundError(EventFetchError):
    """The ticketing API has no event with the requested id."""


class PersistenceError(QiktixError):
    """A Firestore read or write failed."""


class AuthError(QiktixError):
    """The Authorization header is malformed or carries an invalid ID token."""
