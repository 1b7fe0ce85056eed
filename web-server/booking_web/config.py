"""web-server configuration.

The web-server is the "client-facing" service:
- It runs the booking form and calls api-server to create bookings.
- It publishes analytics events (booking succeeded/failed) to Kafka.
- It proxies event reads to api-server.

Everything is controlled by environment variables so this service can run
anywhere (local, EC2, Docker) without code changes.
"""

from __future__ import annotations

import os

# Kafka (analytics sink)
KAFKA_BOOTSTRAP_SERVERS: str = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
ANALYTICS_TOPIC: str = os.getenv("ANALYTICS_TOPIC", "analytics.bookings.v1")

# api-server base URL (internal VPC IP or DNS)
API_SERVER_URL: str = os.getenv("API_SERVER_URL", "http://localhost:8000")
API_TIMEOUT_SECONDS: float = float(os.getenv("API_TIMEOUT_SECONDS", "10"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
