"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient

from events_api.events import create_event
from events_api.main import app, get_store
from events_api.mongo import MongoStore


@pytest.fixture
def store():
    """A MongoStore backed by an in-memory mongomock client."""
    s = MongoStore("mongodb://test", "test_events", client=mongomock.MongoClient())
    s.connect()
    yield s
    s.close()


@pytest.fixture
def event_payload() -> dict:
    return {
        "title": "Next.js Conf 2024",
        "description": "The annual Next.js conference.",
        "overview": "Talks, workshops and networking.",
        "image": "/images/event1.png",
        "venue": "Moscone Center",
        "location": "San Francisco, CA",
        "date": "2024-10-24",
        "time": "09:00",
        "mode": "hybrid",
        "audience": "Developers",
        "agenda": ["Keynote", "Workshops"],
        "organizer": "Vercel",
        "tags": ["react", "nextjs"],
    }


@pytest.fixture
def make_event(store, event_payload):
    """Create an event through the service; keyword arguments override fields."""

    def _make(**overrides):
        return create_event(store, {**event_payload, **overrides})

    return _make


@pytest.fixture
def insert_raw_event(store, event_payload):
    """Insert an already-normalized event with an explicit createdAt.

    Ordering tests need creation times that do not depend on the clock.
    """
    base = datetime(2024, 1, 1, 12, 0, 0)

    def _insert(slug: str, tags: list[str], minutes: int) -> str:
        created = base + timedelta(minutes=minutes)
        doc = {
            **event_payload,
            "title": slug.replace("-", " "),
            "slug": slug,
            "tags": tags,
            "createdAt": created,
            "updatedAt": created,
        }
        return str(store.insert_event(doc))

    return _insert


@pytest.fixture
def events_client(store):
    """TestClient for api-server wired to the mongomock store.

    Used without `with`, so the lifespan (real MongoDB connect) never runs.
    """
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
