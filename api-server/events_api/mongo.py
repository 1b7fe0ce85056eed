"""MongoDB access for api-server.

This module has one job: talk to MongoDB.

Key design choices:
- The connection is an explicit handle (`MongoStore`). The app opens it on
  startup and hands it to routes through a FastAPI dependency, so tests can
  pass a store backed by `mongomock` instead of a live server.
- Uniqueness is enforced by indexes, not by application code:
    events:   unique slug
    bookings: unique (eventId, email)
  Application-level checks are an early exit; the index is the authority.
- Driver exceptions never leave this module. They are translated into
  `StoreError` with an explicit `kind`, so callers branch on a value instead
  of grepping exception messages.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, errors

from .errors import StoreError, StoreErrorKind

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise pymongo failures as `StoreError`."""
    try:
        yield
    except errors.DuplicateKeyError as e:
        raise StoreError(StoreErrorKind.DUPLICATE_KEY, str(e)) from e
    except errors.ConfigurationError as e:
        # InvalidURI is a ConfigurationError too.
        raise StoreError(StoreErrorKind.CONFIGURATION, str(e)) from e
    except errors.ConnectionFailure as e:
        # Covers ServerSelectionTimeoutError and AutoReconnect.
        raise StoreError(StoreErrorKind.UNAVAILABLE, str(e)) from e
    except errors.PyMongoError as e:
        raise StoreError(StoreErrorKind.UNKNOWN, str(e)) from e


class MongoStore:
    """Handle to the events database.

    Pass `client` to reuse an existing client (tests use
    `mongomock.MongoClient()`); otherwise `connect()` creates one from `uri`.
    Collections are reached lazily, so a store whose startup connect failed
    retries on the next request and reports the failure as a `StoreError`.
    """

    def __init__(
        self,
        uri: str,
        db_name: str,
        client: MongoClient | None = None,
        events_collection: str = "events",
        bookings_collection: str = "bookings",
        timeout_ms: int = 5000,
    ) -> None:
        self.uri = uri
        self.db_name = db_name
        self.events_collection = events_collection
        self.bookings_collection = bookings_collection
        self.timeout_ms = timeout_ms
        self._client = client
        self._db = None

    # --- lifecycle -----------------------------------------------------------

    def connect(self) -> MongoStore:
        """Open the client (once), verify the server answers and create indexes."""
        if self._db is not None:
            return self

        if self._client is None:
            if not self.uri:
                raise StoreError(
                    StoreErrorKind.CONFIGURATION,
                    "MONGO_URI is not set; cannot connect to MongoDB",
                )
            with translate_errors():
                self._client = MongoClient(self.uri, serverSelectionTimeoutMS=self.timeout_ms)
                # MongoClient connects lazily; ping so a bad address fails here.
                self._client.admin.command("ping")

        self._db = self._client[self.db_name]
        try:
            self.ensure_indexes()
        except StoreError:
            self._db = None
            raise
        logger.info("[Mongo] Connected to database %s", self.db_name)
        return self

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            logger.info("[Mongo] Connection closed")
        self._client = None
        self._db = None

    def ensure_indexes(self) -> None:
        """Create the indexes the services rely on.

        Creating indexes here keeps a fresh database usable without a
        migration step; `create_index` is a no-op when the index exists.
        """
        with translate_errors():
            self.events.create_index([("slug", ASCENDING)], unique=True)
            # Supports newest-first listing and similar-event ordering.
            self.events.create_index([("createdAt", DESCENDING)])

            self.bookings.create_index([("eventId", ASCENDING)])
            # At most one booking per email per event.
            self.bookings.create_index(
                [("eventId", ASCENDING), ("email", ASCENDING)], unique=True
            )

    @property
    def db(self):
        if self._db is None:
            self.connect()
        return self._db

    @property
    def events(self):
        return self.db[self.events_collection]

    @property
    def bookings(self):
        return self.db[self.bookings_collection]

    # --- events --------------------------------------------------------------

    def find_event_by_slug(self, slug: str) -> dict[str, Any] | None:
        with translate_errors():
            return self.events.find_one({"slug": slug})

    def find_event_by_id(self, event_id: ObjectId) -> dict[str, Any] | None:
        with translate_errors():
            return self.events.find_one({"_id": event_id})

    def list_events(self) -> list[dict[str, Any]]:
        """Return all events, newest first."""
        with translate_errors():
            return list(self.events.find().sort([("createdAt", DESCENDING), ("_id", DESCENDING)]))

    def find_events_by_tags(
        self, tags: list[str], exclude_id: ObjectId, limit: int
    ) -> list[dict[str, Any]]:
        """Return events sharing at least one tag, newest first.

        `_id` breaks ties between events created within the same millisecond.
        """
        query = {"_id": {"$ne": exclude_id}, "tags": {"$in": list(tags)}}
        with translate_errors():
            cursor = (
                self.events.find(query)
                .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
                .limit(limit)
            )
            return list(cursor)

    def insert_event(self, document: dict[str, Any]) -> ObjectId:
        with translate_errors():
            result = self.events.insert_one(document)
        logger.info("[Mongo] Inserted event %s slug=%s", result.inserted_id, document.get("slug"))
        return result.inserted_id

    def update_event(self, event_id: ObjectId, fields: dict[str, Any]) -> bool:
        """Set `fields` on an event. Returns False when nothing matched."""
        with translate_errors():
            result = self.events.update_one({"_id": event_id}, {"$set": fields})
        return result.matched_count > 0

    # --- bookings ------------------------------------------------------------

    def find_booking(self, event_id: ObjectId, email: str) -> dict[str, Any] | None:
        with translate_errors():
            return self.bookings.find_one({"eventId": event_id, "email": email})

    def insert_booking(self, document: dict[str, Any]) -> ObjectId:
        with translate_errors():
            result = self.bookings.insert_one(document)
        logger.info("[Mongo] Inserted booking %s event=%s", result.inserted_id, document.get("eventId"))
        return result.inserted_id

    def count_bookings(self, event_id: ObjectId) -> int:
        with translate_errors():
            return self.bookings.count_documents({"eventId": event_id})
