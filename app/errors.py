"""Errors raised by the booking workflow and its store adapter."""


class BookingError(Exception):
    """Base class; ``str(exc)`` is the message shown to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """A submission or decision carries a missing or invalid field."""


class ConflictError(BookingError):
    """The venue is already occupied for the requested window."""

    def __init__(self, message: str, venue: str | None = None):
        super().__init__(message)
        self.venue = venue


class InvalidTransition(BookingError):
    """The booking cannot move to the requested state."""


class NotAuthorized(InvalidTransition):
    """The actor lacks the administrator capability."""


class BookingNotFound(BookingError):
    pass


class StoreUnavailable(BookingError):
    """The backing store failed; the whole operation may be retried."""
