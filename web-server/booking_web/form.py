"""Booking form interaction.

A single-field (email) form bound to one event. States:

    IDLE --submit--> SUBMITTING --> SUCCESS | FAILED
    FAILED --edit/retry--> IDLE
    SUCCESS --book_another--> IDLE

While SUBMITTING the submit control is disabled (`can_submit` is False) and
`submit()` does nothing, so at most one booking request is in flight.
Submitting from FAILED goes through the retry transition to IDLE first.

Analytics are reported after each outcome. A failing analytics sink is
logged and otherwise ignored; it never changes the form's state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Protocol

from .models import (
    AnalyticsEvent,
    BookingFailedEvent,
    BookingResponse,
    BookingSuccessfulEvent,
    FormView,
)

logger = logging.getLogger(__name__)

EMAIL_REQUIRED = "Email is required"
BOOKING_FAILED = "Failed to create booking"
UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."


class AnalyticsSink(Protocol):
    def capture(self, event: AnalyticsEvent) -> None: ...


class FormState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class BookingForm:
    """Email booking form for one event.

    Args:
        event_id: the event every submission books onto.
        book: `(event_id, email) -> BookingResponse`, normally
            `api_client.create_booking`.
        analytics: where booking outcomes are reported.
        clock: returns the ISO timestamp stamped on analytics events.
    """

    def __init__(
        self,
        event_id: str,
        book: Callable[[str, str], BookingResponse],
        analytics: AnalyticsSink,
        clock: Callable[[], str] = _timestamp,
    ) -> None:
        self.event_id = event_id
        self._book = book
        self._analytics = analytics
        self._clock = clock

        self.state = FormState.IDLE
        self.email = ""
        self.error: str | None = None
        self.booking_id: str | None = None

    @property
    def can_submit(self) -> bool:
        return self.state is not FormState.SUBMITTING and bool(self.email.strip())

    def edit(self, value: str) -> None:
        """Change the email input. Clears a previous error."""
        if self.state is FormState.SUBMITTING:
            # Input is disabled while a request is in flight.
            return
        self.email = value
        self.error = None
        if self.state is FormState.FAILED:
            self.state = FormState.IDLE

    def retry(self) -> None:
        if self.state is FormState.FAILED:
            self.state = FormState.IDLE
            self.error = None

    def book_another(self) -> None:
        if self.state is FormState.SUCCESS:
            self.state = FormState.IDLE
            self.booking_id = None

    def submit(self) -> FormState:
        """Submit the current email and return the resulting state."""
        if self.state is FormState.FAILED:
            self.retry()
        if self.state is not FormState.IDLE:
            return self.state

        self.error = None
        email = self.email.strip()
        if not email:
            # Blocked client-side; api-server is never called.
            self.error = EMAIL_REQUIRED
            self.state = FormState.IDLE
            return self.state

        self.state = FormState.SUBMITTING
        try:
            response = self._book(self.event_id, email)
        except Exception as e:
            logger.exception("[BookingForm] Booking request failed event=%s", self.event_id)
            self._fail(
                UNEXPECTED_ERROR,
                BookingFailedEvent(
                    eventId=self.event_id,
                    email=email,
                    error=str(e) or "Unknown error",
                    errorType="unexpected_error",
                    timestamp=self._clock(),
                ),
            )
            return self.state

        if response.success:
            self.state = FormState.SUCCESS
            self.email = ""
            self.booking_id = response.data.bookingId if response.data else None
            self._capture(
                BookingSuccessfulEvent(
                    eventId=self.event_id,
                    email=email,
                    bookingId=self.booking_id,
                    timestamp=self._clock(),
                )
            )
        else:
            self._fail(
                response.message or BOOKING_FAILED,
                BookingFailedEvent(
                    eventId=self.event_id,
                    email=email,
                    error=response.message,
                    errorType="validation_error",
                    timestamp=self._clock(),
                ),
            )
        return self.state

    def view(self) -> FormView:
        return FormView(
            state=self.state.value,
            email=self.email,
            error=self.error,
            bookingId=self.booking_id,
            canSubmit=self.can_submit,
        )

    def _fail(self, message: str, event: BookingFailedEvent) -> None:
        self.state = FormState.FAILED
        self.error = message
        self._capture(event)

    def _capture(self, event: AnalyticsEvent) -> None:
        try:
            self._analytics.capture(event)
        except Exception:
            logger.warning("[BookingForm] Analytics capture failed (%s)", event.eventType, exc_info=True)
