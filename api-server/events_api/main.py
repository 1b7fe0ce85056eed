"""api-server FastAPI application.

Responsibilities:
- Serve events: `GET /events`, `GET /events/{slug}`, `GET /events/{slug}/similar`
- Accept and change events: `POST /events`, `PATCH /events/{slug}`
- Create bookings: `POST /bookings`

The MongoDB handle is opened in the lifespan hook and reaches routes through
the `get_store` dependency. Tests override that dependency with a store
backed by mongomock and never run the lifespan.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .bookings import count_bookings_for_event, create_booking
from .config import (
    LOG_LEVEL,
    MONGO_BOOKINGS_COLLECTION,
    MONGO_DB,
    MONGO_EVENTS_COLLECTION,
    MONGO_TIMEOUT_MS,
    MONGO_URI,
    SIMILAR_EVENTS_LIMIT,
)
from .errors import (
    DomainError,
    DuplicateSlugError,
    EventNotFoundError,
    StoreError,
)
from .events import (
    create_event,
    get_event_by_slug,
    get_similar_events,
    list_events,
    update_event,
)
from .logging_config import setup_logging
from .models import BookingRequest, EventCreateRequest, RejectionReason
from .mongo import MongoStore

logger = logging.getLogger(__name__)

# HTTP status for each way a booking can be turned down.
BOOKING_STATUS: dict[RejectionReason, int] = {
    RejectionReason.MISSING_EVENT_ID: 400,
    RejectionReason.MISSING_EMAIL: 400,
    RejectionReason.INVALID_EMAIL_FORMAT: 400,
    RejectionReason.INVALID_EVENT_ID_FORMAT: 400,
    RejectionReason.INVALID_BOOKING_DATA: 400,
    RejectionReason.EVENT_NOT_FOUND: 404,
    RejectionReason.ALREADY_BOOKED: 409,
    RejectionReason.INTERNAL_ERROR: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the MongoDB handle on startup, close it on shutdown.

    A failed connect does not stop the server: the store retries on the next
    request and the failure surfaces as a 500 "Database configuration error".
    """
    setup_logging(LOG_LEVEL)

    store = MongoStore(
        MONGO_URI,
        MONGO_DB,
        events_collection=MONGO_EVENTS_COLLECTION,
        bookings_collection=MONGO_BOOKINGS_COLLECTION,
        timeout_ms=MONGO_TIMEOUT_MS,
    )
    try:
        store.connect()
    except StoreError as e:
        logger.error("[Startup] MongoDB unavailable (%s): %s", e.kind.value, e.message)
    app.state.store = store

    yield

    store.close()


app = FastAPI(title="Events API Server", lifespan=lifespan)


def get_store(request: Request) -> MongoStore:
    return request.app.state.store


@app.get("/health")
def health() -> dict[str, str]:
    """Basic liveness endpoint."""
    return {"status": "ok"}


@app.get("/events")
def get_events(store: MongoStore = Depends(get_store)):
    """Return all events, newest first."""
    try:
        events = list_events(store)
    except StoreError as e:
        logger.error("[Events] Listing failed (%s): %s", e.kind.value, e.message, exc_info=True)
        return JSONResponse(status_code=500, content={"message": "Failed to fetch events"})

    return {
        "message": "Events fetched successfully",
        "events": [event.to_json() for event in events],
    }


@app.post("/events", status_code=201)
def post_event(req: EventCreateRequest, store: MongoStore = Depends(get_store)):
    """Validate and store a new event. The slug is derived from the title."""
    try:
        event = create_event(store, req.to_candidate())
    except DuplicateSlugError as e:
        return JSONResponse(status_code=409, content={"message": e.message, "code": e.code.value})
    except DomainError as e:
        return JSONResponse(
            status_code=400,
            content={"message": e.message, "code": e.code.value, "field": e.field},
        )
    except StoreError as e:
        logger.error("[Events] Create failed (%s): %s", e.kind.value, e.message, exc_info=True)
        return JSONResponse(status_code=500, content={"message": "Failed to create event"})

    return {"message": "Event created successfully", "event": event.to_json()}


@app.get("/events/{slug}")
def get_event(slug: str, store: MongoStore = Depends(get_store)):
    """Return a single event by slug.

    Status codes:
        400 -> slug missing or not lowercase-alphanumeric-with-hyphens
        404 -> no such event
        500 -> database misconfigured/unreachable, or anything unexpected
    """
    try:
        event = get_event_by_slug(store, slug)
    except EventNotFoundError as e:
        return JSONResponse(status_code=404, content={"message": e.message})
    except DomainError as e:
        return JSONResponse(status_code=400, content={"message": e.message})
    except StoreError as e:
        logger.error("[Events] Fetch failed for '%s' (%s): %s", slug, e.kind.value, e.message, exc_info=True)
        if e.is_infrastructure:
            return JSONResponse(status_code=500, content={"message": "Database configuration error"})
        return JSONResponse(
            status_code=500,
            content={"message": "Failed to fetch event", "error": e.message},
        )
    except Exception as e:
        logger.exception("[Events] Unexpected failure fetching '%s'", slug)
        return JSONResponse(
            status_code=500,
            content={"message": "Failed to fetch event", "error": str(e) or "Unknown error occurred"},
        )

    return {"message": "Event fetched successfully", "event": event.to_json()}


@app.patch("/events/{slug}")
def patch_event(slug: str, req: EventCreateRequest, store: MongoStore = Depends(get_store)):
    """Change an event. A new title moves the event to a new slug."""
    try:
        event = update_event(store, slug, req.to_candidate())
    except EventNotFoundError as e:
        return JSONResponse(status_code=404, content={"message": e.message})
    except DuplicateSlugError as e:
        return JSONResponse(status_code=409, content={"message": e.message, "code": e.code.value})
    except DomainError as e:
        return JSONResponse(
            status_code=400,
            content={"message": e.message, "code": e.code.value, "field": e.field},
        )
    except StoreError as e:
        logger.error("[Events] Update failed for '%s' (%s): %s", slug, e.kind.value, e.message, exc_info=True)
        return JSONResponse(status_code=500, content={"message": "Failed to update event"})

    return {"message": "Event updated successfully", "event": event.to_json()}


@app.get("/events/{slug}/similar")
def get_similar(slug: str, limit: int = SIMILAR_EVENTS_LIMIT, store: MongoStore = Depends(get_store)):
    """Recommendations for an event page. Always 200, possibly an empty list."""
    return [event.to_json() for event in get_similar_events(store, slug, limit)]


@app.get("/events/{event_id}/bookings/count")
def get_booking_count(event_id: str, store: MongoStore = Depends(get_store)):
    try:
        count = count_bookings_for_event(store, event_id)
    except StoreError as e:
        logger.error("[Bookings] Count failed (%s): %s", e.kind.value, e.message, exc_info=True)
        return JSONResponse(status_code=500, content={"message": "Failed to count bookings"})
    return {"eventId": event_id, "count": count}


@app.post("/bookings")
def post_booking(req: BookingRequest, store: MongoStore = Depends(get_store)):
    """Book an email onto an event.

    The body always has the `BookingResponse` shape; the status code tells
    created (201) from rejected (400/404/409) from broken (500).
    """
    result = create_booking(store, req.eventId, req.email)
    status = 201 if result.kind == "created" else BOOKING_STATUS[result.reason]
    return JSONResponse(
        status_code=status,
        content=result.to_response().model_dump(exclude_none=True),
    )
