"""subwayfeed - Real-time MTA subway feed ingestion for map displays."""

__version__ = "0.1.0"

from .models import (
    ActivePeriod,
    ArrivalPrediction,
    Direction,
    FeedEndpoint,
    FeedMode,
    ServiceAlert,
    Snapshot,
    VehiclePosition,
)
from .config import FeedConfig
from .errors import FeedCancelledError, FeedDecodeError, FeedError, FeedTransportError
from .fetcher import BatchResult, CancellationToken, FeedFetcher
from .registry import resolve_endpoints
from .stations import StationLookup
from .service import SubwayService

__all__ = [
    "SubwayService",
    "FeedFetcher",
    "FeedConfig",
    "CancellationToken",
    "BatchResult",
    "StationLookup",
    "resolve_endpoints",
    "FeedEndpoint",
    "FeedMode",
    "Direction",
    "VehiclePosition",
    "ArrivalPrediction",
    "ServiceAlert",
    "ActivePeriod",
    "Snapshot",
    "FeedError",
    "FeedTransportError",
    "FeedDecodeError",
    "FeedCancelledError",
]
