"""Tests for booking validation and the booking creation service."""

import pytest
from bson import ObjectId

from events_api.bookings import count_bookings_for_event, create_booking
from events_api.errors import (
    BookingValidationError,
    ErrorCode,
    ReferencedEventMissingError,
    StoreError,
    StoreErrorKind,
)
from events_api.models import BookingCreated, BookingRejected, RejectionReason, validate_booking


class TestValidateBooking:
    def test_normalizes_email(self, store, make_event):
        event = make_event()

        booking = validate_booking(store, {"eventId": event.id, "email": "  Ada@Example.COM "})

        assert booking.email == "ada@example.com"
        assert booking.eventId == event.id

    @pytest.mark.parametrize("email", ["plainaddress", "ada@", "ada@example", "a b@example.com"])
    def test_rejects_malformed_email(self, store, make_event, email):
        event = make_event()

        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(store, {"eventId": event.id, "email": email})

        assert exc_info.value.code is ErrorCode.INVALID_EMAIL_FORMAT

    def test_rejects_malformed_event_id(self, store):
        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(store, {"eventId": "not-an-id", "email": "ada@example.com"})

        assert exc_info.value.code is ErrorCode.INVALID_EVENT_ID_FORMAT

    def test_rejects_unknown_event(self, store):
        with pytest.raises(ReferencedEventMissingError):
            validate_booking(store, {"eventId": str(ObjectId()), "email": "ada@example.com"})

    def test_skips_lookup_when_event_id_unchanged(self, store):
        # The event no longer exists, but an update that keeps eventId
        # does not re-check it.
        event_id = ObjectId()
        existing = {"eventId": event_id, "email": "ada@example.com"}

        booking = validate_booking(store, {"email": "grace@example.com"}, existing=existing)

        assert booking.eventId == str(event_id)
        assert booking.email == "grace@example.com"

    def test_checks_lookup_when_event_id_changes(self, store, make_event):
        event = make_event()
        existing = {"eventId": ObjectId(event.id), "email": "ada@example.com"}

        with pytest.raises(ReferencedEventMissingError):
            validate_booking(store, {"eventId": str(ObjectId())}, existing=existing)


class TestCreateBooking:
    def test_creates_booking(self, store, make_event):
        event = make_event()

        result = create_booking(store, event.id, "  Ada@Example.com ")

        assert isinstance(result, BookingCreated)
        assert result.eventId == event.id
        assert result.email == "ada@example.com"
        stored = store.bookings.find_one({"_id": ObjectId(result.bookingId)})
        assert stored["eventId"] == ObjectId(event.id)
        assert stored["email"] == "ada@example.com"
        assert "createdAt" in stored and "updatedAt" in stored

    def test_second_identical_booking_is_rejected(self, store, make_event):
        event = make_event()
        create_booking(store, event.id, "ada@example.com")

        result = create_booking(store, event.id, "ADA@example.com")

        assert isinstance(result, BookingRejected)
        assert result.reason is RejectionReason.ALREADY_BOOKED
        assert result.message == "You have already booked this event"
        assert store.bookings.count_documents({}) == 1

    def test_same_event_different_email_succeeds(self, store, make_event):
        event = make_event()
        create_booking(store, event.id, "ada@example.com")

        result = create_booking(store, event.id, "grace@example.com")

        assert isinstance(result, BookingCreated)
        assert count_bookings_for_event(store, event.id) == 2

    @pytest.mark.parametrize(
        "event_id, email, reason",
        [
            ("", "ada@example.com", RejectionReason.MISSING_EVENT_ID),
            ("   ", "ada@example.com", RejectionReason.MISSING_EVENT_ID),
            (None, "ada@example.com", RejectionReason.MISSING_EVENT_ID),
            ("507f1f77bcf86cd799439011", "", RejectionReason.MISSING_EMAIL),
            ("507f1f77bcf86cd799439011", "  ", RejectionReason.MISSING_EMAIL),
            ("507f1f77bcf86cd799439011", "ada", RejectionReason.INVALID_EMAIL_FORMAT),
            ("507f1f77bcf86cd799439011", "ada@", RejectionReason.INVALID_EMAIL_FORMAT),
            ("507f1f77bcf86cd799439011", "ada@example", RejectionReason.INVALID_EMAIL_FORMAT),
            ("xyz", "ada@example.com", RejectionReason.INVALID_EVENT_ID_FORMAT),
            # email format is checked before the id format
            ("xyz", "ada", RejectionReason.INVALID_EMAIL_FORMAT),
        ],
    )
    def test_input_validation_order(self, store, event_id, email, reason):
        result = create_booking(store, event_id, email)

        assert isinstance(result, BookingRejected)
        assert result.reason is reason
        assert store.bookings.count_documents({}) == 0

    def test_unknown_event_is_rejected(self, store):
        result = create_booking(store, str(ObjectId()), "ada@example.com")

        assert isinstance(result, BookingRejected)
        assert result.reason is RejectionReason.EVENT_NOT_FOUND
        assert result.message == "Event not found"
        assert store.bookings.count_documents({}) == 0

    def test_race_lost_to_unique_index_is_already_booked(self, store, make_event, monkeypatch):
        event = make_event()
        create_booking(store, event.id, "ada@example.com")
        # Simulate a concurrent request that passed the pre-check before the
        # first insert landed.
        monkeypatch.setattr(store, "find_booking", lambda event_id, email: None)

        result = create_booking(store, event.id, "ada@example.com")

        assert isinstance(result, BookingRejected)
        assert result.reason is RejectionReason.ALREADY_BOOKED
        assert store.bookings.count_documents({}) == 1

    def test_store_failure_is_internal_error(self, store, make_event, monkeypatch):
        event = make_event()

        def broken_insert(document):
            raise StoreError(StoreErrorKind.UNAVAILABLE, "server selection timed out")

        monkeypatch.setattr(store, "insert_booking", broken_insert)

        result = create_booking(store, event.id, "ada@example.com")

        assert isinstance(result, BookingRejected)
        assert result.reason is RejectionReason.INTERNAL_ERROR
        assert result.error == "server selection timed out"
        response = result.to_response()
        assert response.success is False
        assert response.message == "Failed to create booking. Please try again."

    def test_unexpected_exception_is_internal_error(self, store, make_event, monkeypatch):
        event = make_event()

        def boom(event_id, email):
            raise RuntimeError("boom")

        monkeypatch.setattr(store, "find_booking", boom)

        result = create_booking(store, event.id, "ada@example.com")

        assert result.reason is RejectionReason.INTERNAL_ERROR
        assert result.error == "boom"

    def test_created_response_shape(self, store, make_event):
        event = make_event()

        response = create_booking(store, event.id, "ada@example.com").to_response()

        assert response.success is True
        assert response.message == "Booking created successfully"
        assert response.data.eventId == event.id
        assert response.data.email == "ada@example.com"
        assert ObjectId.is_valid(response.data.bookingId)


def test_count_bookings_for_malformed_id_is_zero(store):
    assert count_bookings_for_event(store, "nope") == 0
