"""api-server configuration.

This module only reads environment variables. Defaults are for local
development; override them in every other environment.
"""

from __future__ import annotations

import os

# --- MongoDB -----------------------------------------------------------------
# Mongo connection string. Example: "mongodb://172.31.2.197:27017"
# An empty value is reported as a configuration error on startup.
MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")

# Database name
MONGO_DB: str = os.getenv("MONGO_DB", "dev_events")

# Collection names
MONGO_EVENTS_COLLECTION: str = os.getenv("MONGO_EVENTS_COLLECTION", "events")
MONGO_BOOKINGS_COLLECTION: str = os.getenv("MONGO_BOOKINGS_COLLECTION", "bookings")

# How long pymongo waits to find a server before giving up.
MONGO_TIMEOUT_MS: int = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

# --- Behaviour ---------------------------------------------------------------
# Default number of recommendations returned by /events/{slug}/similar
SIMILAR_EVENTS_LIMIT: int = int(os.getenv("SIMILAR_EVENTS_LIMIT", "5"))

# --- Logging -----------------------------------------------------------------
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
