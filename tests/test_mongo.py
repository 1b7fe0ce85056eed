"""Tests for the MongoDB adapter: error translation and indexes."""

import pytest
from pymongo import errors

from events_api.errors import StoreError, StoreErrorKind
from events_api.mongo import MongoStore, translate_errors


@pytest.mark.parametrize(
    "raised, kind",
    [
        (errors.DuplicateKeyError("E11000 duplicate key error"), StoreErrorKind.DUPLICATE_KEY),
        (errors.InvalidURI("bad uri"), StoreErrorKind.CONFIGURATION),
        (errors.ConfigurationError("no db"), StoreErrorKind.CONFIGURATION),
        (errors.ServerSelectionTimeoutError("timed out"), StoreErrorKind.UNAVAILABLE),
        (errors.AutoReconnect("reconnecting"), StoreErrorKind.UNAVAILABLE),
        (errors.OperationFailure("unauthorized"), StoreErrorKind.UNKNOWN),
    ],
)
def test_translate_errors(raised, kind):
    with pytest.raises(StoreError) as exc_info:
        with translate_errors():
            raise raised

    assert exc_info.value.kind is kind
    assert exc_info.value.__cause__ is raised


def test_non_driver_errors_pass_through():
    with pytest.raises(KeyError):
        with translate_errors():
            raise KeyError("x")


def test_blank_uri_is_configuration_error():
    store = MongoStore("", "test_events")

    with pytest.raises(StoreError) as exc_info:
        store.connect()

    assert exc_info.value.kind is StoreErrorKind.CONFIGURATION
    assert exc_info.value.is_infrastructure


def test_unconnected_store_reports_configuration_error_on_use():
    store = MongoStore("", "test_events")

    with pytest.raises(StoreError) as exc_info:
        store.find_event_by_slug("anything")

    assert exc_info.value.kind is StoreErrorKind.CONFIGURATION


def test_indexes_are_created(store):
    event_indexes = store.events.index_information()
    booking_indexes = store.bookings.index_information()

    assert any(
        idx["key"] == [("slug", 1)] and idx.get("unique") for idx in event_indexes.values()
    )
    assert any(idx["key"] == [("eventId", 1)] for idx in booking_indexes.values())
    assert any(
        idx["key"] == [("eventId", 1), ("email", 1)] and idx.get("unique")
        for idx in booking_indexes.values()
    )


def test_unique_booking_index_raises_duplicate_key(store):
    from bson import ObjectId

    event_id = ObjectId()
    store.insert_booking({"eventId": event_id, "email": "ada@example.com"})

    with pytest.raises(StoreError) as exc_info:
        store.insert_booking({"eventId": event_id, "email": "ada@example.com"})

    assert exc_info.value.kind is StoreErrorKind.DUPLICATE_KEY
