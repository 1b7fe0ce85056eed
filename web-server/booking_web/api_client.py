"""HTTP client for calling api-server.

Every function takes an optional `client`; without one it opens a short-lived
`httpx.Client`. Tests pass a client built on `httpx.MockTransport`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import httpx

from .config import API_SERVER_URL, API_TIMEOUT_SECONDS
from .models import BookingResponse


@contextmanager
def _session(client: httpx.Client | None) -> Iterator[httpx.Client]:
    if client is not None:
        yield client
        return
    # One client per call keeps things simple; reuse one for high load.
    with httpx.Client(timeout=API_TIMEOUT_SECONDS) as owned:
        yield owned


def create_booking(event_id: str, email: str, client: httpx.Client | None = None) -> BookingResponse:
    """Ask api-server to create a booking.

    api-server answers rejections (400/404/409/500) with a `BookingResponse`
    body, so those come back as `success=False` rather than exceptions.

    Raises:
        httpx.HTTPError on connection failures, timeouts, or an error status
        without a booking body.
    """
    url = f"{API_SERVER_URL}/bookings"

    with _session(client) as http:
        resp = http.post(url, json={"eventId": event_id, "email": email})

    try:
        return BookingResponse.model_validate(resp.json())
    except ValueError:
        # Not a booking body (json.JSONDecodeError and pydantic's
        # ValidationError are both ValueErrors). Prefer the HTTP error.
        resp.raise_for_status()
        raise


def get_event(slug: str, client: httpx.Client | None = None) -> dict[str, Any]:
    """Return api-server's `{message, event}` body for a slug.

    Raises:
        httpx.HTTPStatusError for 4xx/5xx, httpx.HTTPError otherwise.
    """
    url = f"{API_SERVER_URL}/events/{slug}"

    with _session(client) as http:
        resp = http.get(url)
        resp.raise_for_status()
        return resp.json()


def get_similar_events(
    slug: str, limit: int | None = None, client: httpx.Client | None = None
) -> list[dict[str, Any]]:
    url = f"{API_SERVER_URL}/events/{slug}/similar"
    params = {"limit": limit} if limit is not None else None

    with _session(client) as http:
        resp = http.get(url, params=params)
        resp.raise_for_status()
        return resp.json()
