"""Pydantic models for web-server.

`BookingResponse` must match what api-server's `POST /bookings` returns.
The analytics events are the payloads published to Kafka.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, field_validator


class BookRequest(BaseModel):
    """Request body for `POST /events/{event_id}/book`.

    A null or non-string email is read as blank, so the form answers with
    its inline "Email is required" instead of a framework 422.
    """

    email: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def _blank_non_strings(cls, value: Any) -> Any:
        return value if isinstance(value, str) else ""


class BookingData(BaseModel):
    bookingId: str
    eventId: str
    email: str


class BookingResponse(BaseModel):
    """api-server's answer to a booking attempt."""

    success: bool
    message: str
    data: BookingData | None = None
    error: str | None = None


class BookingSuccessfulEvent(BaseModel):
    eventType: Literal["booking_successful"] = "booking_successful"
    eventId: str
    email: str
    bookingId: str | None
    timestamp: str


class BookingFailedEvent(BaseModel):
    eventType: Literal["booking_failed"] = "booking_failed"
    eventId: str
    email: str
    error: str
    errorType: Literal["validation_error", "unexpected_error"]
    timestamp: str


AnalyticsEvent = Union[BookingSuccessfulEvent, BookingFailedEvent]


class FormView(BaseModel):
    """What the booking form shows after an interaction."""

    state: str
    email: str
    error: str | None = None
    bookingId: str | None = None
    canSubmit: bool
