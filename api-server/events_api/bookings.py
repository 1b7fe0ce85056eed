"""Booking creation.

`create_booking` never raises. Every outcome, including database failures,
comes back as a `BookingCreated` or `BookingRejected` value that the HTTP
layer turns into a `BookingResponse`.

Duplicate prevention happens twice:
1) a `find_booking` pre-check, which answers the common case cheaply
2) the unique (eventId, email) index, which catches two identical requests
   racing past the pre-check. That insert fails with a DUPLICATE_KEY
   StoreError and is reported as ALREADY_BOOKED too.

No retries: a failing store is reported to the caller immediately.
"""

from __future__ import annotations

import logging

from bson import ObjectId

from .errors import (
    BookingValidationError,
    ReferencedEventMissingError,
    StoreError,
    StoreErrorKind,
)
from .models import (
    EMAIL_PATTERN,
    BookingCreated,
    BookingRejected,
    RejectionReason,
    utcnow,
    validate_booking,
)
from .mongo import MongoStore

logger = logging.getLogger(__name__)

MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.MISSING_EVENT_ID: "Event ID is required",
    RejectionReason.MISSING_EMAIL: "Email is required",
    RejectionReason.INVALID_EMAIL_FORMAT: "Invalid email format",
    RejectionReason.INVALID_EVENT_ID_FORMAT: "Invalid event ID format",
    RejectionReason.ALREADY_BOOKED: "You have already booked this event",
    RejectionReason.EVENT_NOT_FOUND: "Event not found",
    RejectionReason.INVALID_BOOKING_DATA: "Invalid booking data",
    RejectionReason.INTERNAL_ERROR: "Failed to create booking. Please try again.",
}


def _reject(reason: RejectionReason, error: str | None = None) -> BookingRejected:
    return BookingRejected(reason=reason, message=MESSAGES[reason], error=error)


def _is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def create_booking(store: MongoStore, event_id: str | None, email: str | None) -> BookingCreated | BookingRejected:
    """Book `email` onto the event `event_id`.

    Checks run in a fixed order and the first failure wins:
    missing eventId, missing email, malformed email, malformed eventId,
    already booked, event does not exist.
    """
    if _is_blank(event_id):
        return _reject(RejectionReason.MISSING_EVENT_ID)
    if _is_blank(email):
        return _reject(RejectionReason.MISSING_EMAIL)

    event_id = event_id.strip()
    normalized_email = email.strip().lower()

    if not EMAIL_PATTERN.match(normalized_email):
        return _reject(RejectionReason.INVALID_EMAIL_FORMAT)
    if not ObjectId.is_valid(event_id):
        return _reject(RejectionReason.INVALID_EVENT_ID_FORMAT)

    object_id = ObjectId(event_id)

    try:
        if store.find_booking(object_id, normalized_email) is not None:
            logger.info("[Bookings] Duplicate booking rejected event=%s", event_id)
            return _reject(RejectionReason.ALREADY_BOOKED)

        booking = validate_booking(store, {"eventId": object_id, "email": normalized_email})

        now = utcnow()
        document = {**booking.to_document(), "createdAt": now, "updatedAt": now}
        booking_id = store.insert_booking(document)

    except ReferencedEventMissingError:
        logger.info("[Bookings] Booking for unknown event %s", event_id)
        return _reject(RejectionReason.EVENT_NOT_FOUND)
    except BookingValidationError as e:
        return _reject(RejectionReason.INVALID_BOOKING_DATA, error=e.message)
    except StoreError as e:
        if e.kind is StoreErrorKind.DUPLICATE_KEY:
            # Lost a race with an identical request; the unique index caught it.
            logger.info("[Bookings] Duplicate booking caught by index event=%s", event_id)
            return _reject(RejectionReason.ALREADY_BOOKED)
        logger.error("[Bookings] Store failure (%s): %s", e.kind.value, e.message, exc_info=True)
        return _reject(RejectionReason.INTERNAL_ERROR, error=e.message)
    except Exception as e:
        logger.exception("[Bookings] Unexpected failure creating booking event=%s", event_id)
        return _reject(RejectionReason.INTERNAL_ERROR, error=str(e) or "Unknown error")

    logger.info("[Bookings] Created booking %s event=%s", booking_id, event_id)
    return BookingCreated(
        bookingId=str(booking_id),
        eventId=booking.eventId,
        email=booking.email,
    )


def count_bookings_for_event(store: MongoStore, event_id: str) -> int:
    """Number of bookings for an event; 0 for a malformed id."""
    if _is_blank(event_id) or not ObjectId.is_valid(event_id.strip()):
        return 0
    return store.count_bookings(ObjectId(event_id.strip()))
