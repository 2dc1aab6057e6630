"""Errors raised while fetching and decoding feeds."""

from typing import Optional

from .models import FeedEndpoint


class FeedError(Exception):
    """Base class for per-endpoint fetch failures."""

    def __init__(self, endpoint: Optional[FeedEndpoint], message: str):
        super().__init__(message)
        self.endpoint = endpoint


class FeedTransportError(FeedError):
    """Non-2xx response or network failure."""

    def __init__(self, endpoint: FeedEndpoint, status: Optional[int] = None, reason: str = ""):
        if status is not None:
            message = f"MTA feed {endpoint.value} failed with status {status}"
        else:
            message = f"MTA feed {endpoint.value} request failed: {reason}"
        super().__init__(endpoint, message)
        self.status = status
        self.reason = reason


class FeedDecodeError(FeedError):
    """Payload is not a valid GTFS-Realtime FeedMessage."""


class FeedCancelledError(FeedError):
    """The caller cancelled the fetch. Never retried."""

    def __init__(self, endpoint: FeedEndpoint):
        super().__init__(endpoint, f"MTA feed {endpoint.value} fetch was cancelled")
