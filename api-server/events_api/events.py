"""Event lookups and writes.

Read side:
- `get_event_by_slug` validates the slug shape before touching MongoDB and
  raises domain errors the HTTP layer maps to 400/404.
- `get_similar_events` is a recommendation helper. It never fails its
  caller: an unknown slug, an event without tags and a broken database all
  produce an empty list. Those cases are logged, not hidden.

Write side:
- `create_event` / `update_event` run `validate_and_normalize_event` first,
  so slug, date and time are normalized on every write.
"""

from __future__ import annotations

import logging
from typing import Any

from .config import SIMILAR_EVENTS_LIMIT
from .errors import (
    DuplicateSlugError,
    EventNotFoundError,
    InvalidSlugError,
    MissingParameterError,
    StoreError,
    StoreErrorKind,
)
from .models import SLUG_PATTERN, Event, utcnow, validate_and_normalize_event
from .mongo import MongoStore

logger = logging.getLogger(__name__)


def _find_by_slug(store: MongoStore, slug: str | None) -> dict[str, Any]:
    if not slug:
        raise MissingParameterError("slug")
    if not SLUG_PATTERN.match(slug):
        raise InvalidSlugError()

    doc = store.find_event_by_slug(slug)
    if doc is None:
        raise EventNotFoundError(slug)
    return doc


def get_event_by_slug(store: MongoStore, slug: str | None) -> Event:
    """Return the event with this slug.

    Raises:
        MissingParameterError: slug is empty.
        InvalidSlugError: slug is not lowercase-alphanumeric-with-hyphens.
        EventNotFoundError: no event has this slug.
        StoreError: MongoDB failed.
    """
    return Event.from_document(_find_by_slug(store, slug))


def get_similar_events(
    store: MongoStore, slug: str | None, limit: int = SIMILAR_EVENTS_LIMIT
) -> list[Event]:
    """Events sharing at least one tag with `slug`'s event, newest first."""
    try:
        if not slug or not slug.strip():
            logger.error("[Similar] Invalid slug provided")
            return []
        if limit < 1:
            return []

        source = store.find_event_by_slug(slug)
        if source is None:
            logger.warning("[Similar] Event with slug '%s' not found", slug)
            return []

        tags = source.get("tags") or []
        if not tags:
            logger.warning("[Similar] Event '%s' has no tags", slug)
            return []

        docs = store.find_events_by_tags(tags, exclude_id=source["_id"], limit=limit)
        return [Event.from_document(doc) for doc in docs]

    except Exception:
        logger.exception("[Similar] Failed to load similar events for '%s'", slug)
        return []


def list_events(store: MongoStore) -> list[Event]:
    return [Event.from_document(doc) for doc in store.list_events()]


def create_event(store: MongoStore, candidate: dict[str, Any]) -> Event:
    """Validate and insert a new event.

    Raises:
        EventValidationError: candidate breaks an event rule.
        DuplicateSlugError: another event already has the derived slug.
        StoreError: MongoDB failed.
    """
    document = validate_and_normalize_event(candidate).to_document()
    now = utcnow()
    document["createdAt"] = now
    document["updatedAt"] = now

    try:
        event_id = store.insert_event(document)
    except StoreError as e:
        if e.kind is StoreErrorKind.DUPLICATE_KEY:
            raise DuplicateSlugError(document["slug"]) from e
        raise

    return Event.from_document({**document, "_id": event_id})


def update_event(store: MongoStore, slug: str | None, changes: dict[str, Any]) -> Event:
    """Apply `changes` to the event with this slug and re-validate it.

    A new title produces a new slug; callers must use the returned event's
    slug from then on.
    """
    existing = _find_by_slug(store, slug)
    document = validate_and_normalize_event(changes, existing=existing).to_document()
    document["updatedAt"] = utcnow()

    try:
        matched = store.update_event(existing["_id"], document)
    except StoreError as e:
        if e.kind is StoreErrorKind.DUPLICATE_KEY:
            raise DuplicateSlugError(document["slug"]) from e
        raise
    if not matched:
        # Deleted between the read and the write.
        raise EventNotFoundError(slug)

    return Event.from_document({**existing, **document})
