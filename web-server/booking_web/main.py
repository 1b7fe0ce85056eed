"""web-server FastAPI application.

Responsibilities:
- Run the booking form for an event and report outcomes to Kafka analytics.
- Proxy event reads (single event, similar events) to api-server.

Important note:
This service does NOT talk to MongoDB. Bookings are created by api-server;
this service only calls it over HTTP.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request

from . import api_client
from .config import LOG_LEVEL
from .form import AnalyticsSink, BookingForm
from .kafka_producer import KafkaAnalytics, create_producer
from .logging_config import setup_logging
from .models import BookingResponse, BookRequest, FormView

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the Kafka producer once; flush what is queued on shutdown."""
    setup_logging(LOG_LEVEL)
    analytics = KafkaAnalytics(create_producer())
    app.state.analytics = analytics

    yield

    analytics.flush(5)


app = FastAPI(title="Client Web Server", lifespan=lifespan)


def get_analytics(request: Request) -> AnalyticsSink:
    return request.app.state.analytics


def get_booker() -> Callable[[str, str], BookingResponse]:
    return api_client.create_booking


@app.get("/health")
def health() -> dict[str, str]:
    """Basic liveness endpoint."""
    return {"status": "ok"}


@app.post("/events/{event_id}/book", response_model=FormView)
def book(
    event_id: str,
    req: BookRequest,
    analytics: AnalyticsSink = Depends(get_analytics),
    booker: Callable[[str, str], BookingResponse] = Depends(get_booker),
):
    """Submit the booking form for one event.

    Always 200: the returned view says whether the form ended in
    success, failed (with an inline error) or stayed idle (blank email).
    """
    form = BookingForm(event_id, booker, analytics)
    form.edit(req.email)
    form.submit()
    return form.view()


def _proxy_error(e: Exception) -> HTTPException:
    # 4xx from api-server are the caller's problem; pass them through.
    if isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500:
        try:
            detail = e.response.json().get("message", e.response.text)
        except ValueError:
            detail = e.response.text
        return HTTPException(status_code=e.response.status_code, detail=detail)
    # 502 means our upstream dependency (api-server) failed.
    return HTTPException(status_code=502, detail=f"API server error: {e}")


@app.get("/events/{slug}")
def get_event(slug: str):
    """Return one event (proxied through api-server)."""
    try:
        return api_client.get_event(slug)
    except httpx.HTTPError as e:
        raise _proxy_error(e) from e


@app.get("/events/{slug}/similar")
def get_similar(slug: str, limit: int | None = None):
    """Return similar events (proxied through api-server)."""
    try:
        return api_client.get_similar_events(slug, limit)
    except httpx.HTTPError as e:
        raise _proxy_error(e) from e
