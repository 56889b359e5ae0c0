"""Exception taxonomy shared by the data-access layer and its callers."""

from __future__ import annotations

UNIQUE_VIOLATION = "23505"


class SparkBytesError(Exception):
    """Base class for every error raised by Spark!Bytes."""

    message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(SparkBytesError):
    """Form input rejected before anything is sent to the store."""

    message = "Some of the fields were invalid."

    def __init__(self, errors: dict[str, str], message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.errors = dict(errors)


class StoreError(SparkBytesError):
    """A query or write against the store failed."""

    message = "We couldn't reach the event board. Please try again."

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION

    @property
    def is_not_found(self) -> bool:
        return self.code == "not_found"


class CapacityExceeded(SparkBytesError):
    """Raised when an event is already at its maximum attendees."""

    message = "This event has reached maximum capacity."


class AlreadyRsvpd(SparkBytesError):
    message = "You have already RSVP'd to this event."


class AuthRequired(SparkBytesError):
    message = "You must be logged in to do that."


class NotAuthorized(SparkBytesError):
    message = "Only the faculty member who created this event can edit it."
