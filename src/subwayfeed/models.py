"""Data models for the subway feed pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class FeedEndpoint(str, Enum):
    """MTA GTFS-Realtime endpoints. Values are the URL path segments."""

    DEFAULT = "nyct%2Fgtfs"  # 1-7, 6X, 7X, S (42nd St Shuttle)
    ACE = "nyct%2Fgtfs-ace"  # A, C, E, H (Rockaway Shuttle)
    BDFM = "nyct%2Fgtfs-bdfm"
    G = "nyct%2Fgtfs-g"
    JZ = "nyct%2Fgtfs-jz"
    L = "nyct%2Fgtfs-l"
    NQRW = "nyct%2Fgtfs-nqrw"
    SI = "nyct%2Fgtfs-si"  # Staten Island Railway


class Direction(str, Enum):
    """Cardinal direction of travel."""

    N = "N"
    E = "E"
    S = "S"
    W = "W"
    UNK = "UNK"


class FeedMode(str, Enum):
    """Where the most recent data came from."""

    LIVE = "live"
    MOCK = "mock"


@dataclass(frozen=True)
class VehiclePosition:
    """Represents a train on the map."""
    id: str
    line_id: str
    latitude: float
    longitude: float
    bearing: float  # Degrees clockwise from true north, [0, 360)
    direction: Direction
    trip_id: Optional[str] = None
    current_stop_id: Optional[str] = None  # e.g. "142S"
    observed_at_ms: int = 0


@dataclass(frozen=True)
class ArrivalPrediction:
    """Represents a predicted arrival of one trip at one stop."""
    id: str  # "{trip_id}-{stop_id}"
    line_id: str
    trip_id: str
    stop_id: str  # e.g. "A15N"
    direction: Direction
    arrival_time: int  # Unix timestamp
    departure_time: int  # Unix timestamp
    delay: int = 0  # Seconds, positive = late


@dataclass(frozen=True)
class ActivePeriod:
    """Window during which an alert applies. Open ends are None."""
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass(frozen=True)
class ServiceAlert:
    """Represents a service alert affecting one or more lines."""
    id: str
    line_ids: FrozenSet[str]
    header: str
    description: str
    active_periods: Tuple[ActivePeriod, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    """Everything returned by one aggregated fetch."""
    vehicles: Tuple[VehiclePosition, ...] = field(default_factory=tuple)
    arrivals: Tuple[ArrivalPrediction, ...] = field(default_factory=tuple)
    alerts: Tuple[ServiceAlert, ...] = field(default_factory=tuple)
