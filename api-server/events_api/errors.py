"""Domain and storage errors for api-server.

Two families live here:

- `DomainError` subclasses: something is wrong with the caller's input or the
  thing they asked for does not exist. They carry a code and a user-safe
  message, and the HTTP layer maps them to 4xx responses.
- `StoreError`: MongoDB failed us. It carries an explicit `kind` so callers
  can tell "duplicate key" from "database unreachable" without reading the
  driver's message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    MISSING_PARAMETER = "MISSING_PARAMETER"
    INVALID_SLUG = "INVALID_SLUG"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    DUPLICATE_SLUG = "DUPLICATE_SLUG"

    # Event record validation
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"
    INVALID_DATE_FORMAT = "INVALID_DATE_FORMAT"
    INVALID_TIME_FORMAT = "INVALID_TIME_FORMAT"
    EMPTY_REQUIRED_LIST = "EMPTY_REQUIRED_LIST"

    # Booking record validation
    INVALID_EMAIL_FORMAT = "INVALID_EMAIL_FORMAT"
    INVALID_EVENT_ID_FORMAT = "INVALID_EVENT_ID_FORMAT"
    REFERENCED_EVENT_MISSING = "REFERENCED_EVENT_MISSING"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    def __init__(self, code: ErrorCode, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.field = field

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class MissingParameterError(DomainError):
    def __init__(self, name: str) -> None:
        super().__init__(
            code=ErrorCode.MISSING_PARAMETER,
            message=f"{name.capitalize()} parameter is required",
            field=name,
        )


class InvalidSlugError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SLUG,
            message=(
                "Invalid slug format. Slug must contain only lowercase letters, "
                "numbers, and hyphens"
            ),
            field="slug",
        )


class EventNotFoundError(DomainError):
    """Raised when no event matches a slug."""

    def __init__(self, slug: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message=f"Event with slug '{slug}' not found",
        )
        self.slug = slug


class DuplicateSlugError(DomainError):
    def __init__(self, slug: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_SLUG,
            message=f"An event with slug '{slug}' already exists",
            field="slug",
        )
        self.slug = slug


class EventValidationError(DomainError):
    """Raised when an event candidate fails validation or normalization."""


class BookingValidationError(DomainError):
    """Raised when a booking candidate fails validation."""


class ReferencedEventMissingError(BookingValidationError):
    """Raised when a booking points at an event that does not exist."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.REFERENCED_EVENT_MISSING,
            message=f"Event with ID {event_id} does not exist",
            field="eventId",
        )
        self.event_id = event_id


class StoreErrorKind(Enum):
    """Why a MongoDB operation failed."""

    DUPLICATE_KEY = "DUPLICATE_KEY"
    CONFIGURATION = "CONFIGURATION"
    UNAVAILABLE = "UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


class StoreError(Exception):
    """A MongoDB failure, classified by kind."""

    def __init__(self, kind: StoreErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def is_infrastructure(self) -> bool:
        """True when the store itself is misconfigured or unreachable."""
        return self.kind in (StoreErrorKind.CONFIGURATION, StoreErrorKind.UNAVAILABLE)
