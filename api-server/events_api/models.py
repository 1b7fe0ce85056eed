"""Pydantic models for api-server.

Validation is explicit: the write path calls `validate_and_normalize_event`
or `validate_booking` before every insert and update, and stores whatever
they return. Nothing is normalized implicitly on save.

Event rules:
- slug is always re-derived from title
- date is parsed leniently and stored as YYYY-MM-DD (UTC)
- time must be 24-hour H:MM or HH:MM and is stored as HH:MM
- agenda and tags need at least one item

Booking rules:
- email is trimmed, lowercased and must look like local@domain.tld
- eventId must be an ObjectId of an event that exists
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from bson import ObjectId
from dateutil import parser as dateparser
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError

from .errors import (
    BookingValidationError,
    ErrorCode,
    EventValidationError,
    ReferencedEventMissingError,
)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def slugify(title: str) -> str:
    """Turn a title into a URL-safe slug.

    "  Hello,  World -- 2024! " -> "hello-world-2024"
    """
    slug = title.lower().strip()
    slug = slug.replace("_", " ")
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def normalize_date(value: str) -> str:
    """Parse a date string and return it as YYYY-MM-DD.

    Timezone-aware values are converted to UTC before the date is taken, so
    "2024-03-05T23:30:00-05:00" becomes "2024-03-06".

    Year, month and day must all be present. dateutil fills missing parts
    from its default, so the value is parsed against two different defaults
    and rejected when the results disagree ("Monday", "12", "10:00").
    """
    try:
        parsed = dateparser.parse(value, default=_DATE_DEFAULTS[0])
        check = dateparser.parse(value, default=_DATE_DEFAULTS[1])
    except (ValueError, OverflowError):
        raise PydanticCustomError(
            "invalid_date_format", "Invalid date format. Use a valid date string."
        ) from None

    if parsed.date() != check.date():
        raise PydanticCustomError(
            "invalid_date_format", "Invalid date format. Use a valid date string."
        )

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def normalize_time(value: str) -> str:
    match = TIME_PATTERN.match(value)
    if not match:
        raise PydanticCustomError(
            "invalid_time_format", "Invalid time format. Use HH:MM format (e.g., 14:30)."
        )
    return f"{int(match.group(1)):02d}:{match.group(2)}"


# --- Event -------------------------------------------------------------------

RequiredText = Annotated[str, Field(min_length=1)]


class EventDocument(BaseModel):
    """A validated, normalized event ready to be written to MongoDB.

    Unknown keys (`_id`, timestamps) are ignored, so an existing document can
    be merged with changes and validated as a whole.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: RequiredText
    slug: str = ""
    description: RequiredText
    overview: RequiredText
    image: RequiredText
    venue: RequiredText
    location: RequiredText
    date: RequiredText
    time: RequiredText
    mode: Literal["online", "offline", "hybrid"]
    audience: RequiredText
    agenda: list[str]
    organizer: RequiredText
    tags: list[str]

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc)
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str) and value.strip():
            return normalize_date(value.strip())
        # Blank or missing: the RequiredText check reports it.
        return value

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip():
            return normalize_time(value.strip())
        return value

    @field_validator("mode", mode="before")
    @classmethod
    def _lowercase_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("agenda", "tags")
    @classmethod
    def _require_items(cls, value: list[str], info: ValidationInfo) -> list[str]:
        if not value:
            raise PydanticCustomError(
                "empty_required_list",
                "{field} must contain at least one item",
                {"field": info.field_name.capitalize()},
            )
        return value

    @model_validator(mode="after")
    def _derive_slug(self) -> EventDocument:
        self.slug = slugify(self.title)
        if not self.slug:
            raise PydanticCustomError(
                "empty_slug", "Title must contain at least one letter or digit"
            )
        return self

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()


# pydantic error type -> our error code. Anything unlisted is INVALID_FIELD.
_EVENT_ERROR_CODES = {
    "missing": ErrorCode.MISSING_FIELD,
    "string_too_short": ErrorCode.MISSING_FIELD,
    "invalid_date_format": ErrorCode.INVALID_DATE_FORMAT,
    "invalid_time_format": ErrorCode.INVALID_TIME_FORMAT,
    "empty_required_list": ErrorCode.EMPTY_REQUIRED_LIST,
}


def _event_error(exc: ValidationError) -> EventValidationError:
    """Reduce a pydantic ValidationError to its first failure."""
    first = exc.errors()[0]
    field = str(first["loc"][0]) if first["loc"] else "title"
    code = _EVENT_ERROR_CODES.get(first["type"], ErrorCode.INVALID_FIELD)

    if code is ErrorCode.MISSING_FIELD:
        message = f"{field.capitalize()} is required"
    else:
        message = first["msg"]
    return EventValidationError(code=code, message=message, field=field)


def validate_and_normalize_event(
    candidate: dict[str, Any], existing: dict[str, Any] | None = None
) -> EventDocument:
    """Validate an event candidate and return its normalized form.

    For updates pass the stored document as `existing`; fields missing from
    `candidate` are taken from it. Normalization is idempotent, so untouched
    fields come back unchanged.

    Raises:
        EventValidationError: on the first rule that fails.
    """
    merged = {**(existing or {}), **candidate}
    try:
        return EventDocument.model_validate(merged)
    except ValidationError as exc:
        raise _event_error(exc) from exc


class Event(BaseModel):
    """An event as returned to API callers."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    slug: str
    description: str
    overview: str
    image: str
    venue: str
    location: str
    date: str
    time: str
    mode: str
    audience: str
    agenda: list[str]
    organizer: str
    tags: list[str]
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Event:
        return cls.model_validate({**doc, "_id": str(doc["_id"])})

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class EventCreateRequest(BaseModel):
    """Request body for `POST /events` and `PATCH /events/{slug}`.

    Everything is optional here so that missing fields reach the event
    validator and come back as domain errors instead of a FastAPI 422.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    overview: str | None = None
    image: str | None = None
    venue: str | None = None
    location: str | None = None
    date: str | None = None
    time: str | None = None
    mode: str | None = None
    audience: str | None = None
    agenda: list[str] | None = None
    organizer: str | None = None
    tags: list[str] | None = None

    def to_candidate(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# --- Booking -----------------------------------------------------------------


class BookingDocument(BaseModel):
    """A validated booking ready to be written to MongoDB."""

    model_config = ConfigDict(str_strip_whitespace=True)

    eventId: str
    email: str

    @field_validator("eventId", mode="before")
    @classmethod
    def _check_event_id(cls, value: Any) -> Any:
        if isinstance(value, ObjectId):
            return str(value)
        if not ObjectId.is_valid(value):
            raise PydanticCustomError("invalid_event_id_format", "Invalid event ID format")
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.lower()
        if not EMAIL_PATTERN.match(value):
            raise PydanticCustomError(
                "invalid_email_format", "Please provide a valid email address"
            )
        return value

    def to_document(self) -> dict[str, Any]:
        return {"eventId": ObjectId(self.eventId), "email": self.email}


_BOOKING_ERROR_CODES = {
    "invalid_event_id_format": ErrorCode.INVALID_EVENT_ID_FORMAT,
    "invalid_email_format": ErrorCode.INVALID_EMAIL_FORMAT,
}


def validate_booking(
    store, candidate: dict[str, Any], existing: dict[str, Any] | None = None
) -> BookingDocument:
    """Validate a booking candidate, including that its event exists.

    The event lookup runs on create, and on update only when eventId changes.
    It is a blocking read against `store` before the caller writes anything.

    Raises:
        BookingValidationError: email or eventId malformed.
        ReferencedEventMissingError: eventId points at no event.
    """
    merged = {**(existing or {}), **candidate}
    try:
        booking = BookingDocument.model_validate(merged)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = str(first["loc"][0]) if first["loc"] else "booking"
        code = _BOOKING_ERROR_CODES.get(first["type"], ErrorCode.INVALID_FIELD)
        raise BookingValidationError(code=code, message=first["msg"], field=field) from exc

    event_id = ObjectId(booking.eventId)
    if existing is None or existing.get("eventId") != event_id:
        if store.find_event_by_id(event_id) is None:
            raise ReferencedEventMissingError(booking.eventId)

    return booking


class RejectionReason(str, Enum):
    MISSING_EVENT_ID = "MISSING_EVENT_ID"
    MISSING_EMAIL = "MISSING_EMAIL"
    INVALID_EMAIL_FORMAT = "INVALID_EMAIL_FORMAT"
    INVALID_EVENT_ID_FORMAT = "INVALID_EVENT_ID_FORMAT"
    ALREADY_BOOKED = "ALREADY_BOOKED"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    INVALID_BOOKING_DATA = "INVALID_BOOKING_DATA"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class BookingRequest(BaseModel):
    """Request body for `POST /bookings`.

    Missing, null and non-string fields all arrive as None, so the service
    reports them with its own messages instead of a framework 422.
    """

    eventId: str | None = None
    email: str | None = None

    @field_validator("eventId", "email", mode="before")
    @classmethod
    def _drop_non_strings(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None


class BookingData(BaseModel):
    bookingId: str
    eventId: str
    email: str


class BookingResponse(BaseModel):
    """Wire shape of a booking attempt, success or not."""

    success: bool
    message: str
    data: BookingData | None = None
    error: str | None = None


class BookingCreated(BaseModel):
    kind: Literal["created"] = "created"
    bookingId: str
    eventId: str
    email: str

    def to_response(self) -> BookingResponse:
        return BookingResponse(
            success=True,
            message="Booking created successfully",
            data=BookingData(bookingId=self.bookingId, eventId=self.eventId, email=self.email),
        )


class BookingRejected(BaseModel):
    kind: Literal["rejected"] = "rejected"
    reason: RejectionReason
    message: str
    error: str | None = None

    def to_response(self) -> BookingResponse:
        return BookingResponse(success=False, message=self.message, error=self.error)


BookingResult = Annotated[Union[BookingCreated, BookingRejected], Field(discriminator="kind")]
