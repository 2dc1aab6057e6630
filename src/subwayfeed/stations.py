"""Stop ID to coordinate lookup backed by static GTFS station data."""

import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

import pandas as pd

logger = logging.getLogger(__name__)

STATIONS_CSV = Path(__file__).parent / "data" / "stations.csv"

_DIRECTION_SUFFIX = re.compile(r"[NS]$")


@dataclass(frozen=True)
class StopCoords:
    lat: float
    lng: float


def parent_station_id(stop_id: str) -> str:
    """
    Strip the directional suffix (N/S) from a GTFS stop ID.

    Examples:
        "142S" -> "142"
        "A15N" -> "A15"
        "S01N" -> "S01"  (SIR stations start with S)
    """
    return _DIRECTION_SUFFIX.sub("", stop_id)


class StationLookup:
    """
    Maps GTFS stop IDs (e.g. "142S", "A15N") to coordinates.

    The table is read on first access, not at construction.
    """

    def __init__(self, path: Union[str, Path] = STATIONS_CSV):
        """
        Initialize the lookup.

        Args:
            path: CSV with GTFS stops.txt columns stop_id, stop_lat, stop_lon.
        """
        self._path = Path(path)
        self._coords: Optional[Dict[str, StopCoords]] = None
        self._lock = threading.Lock()

    @classmethod
    def from_csv(cls, path: Union[str, Path]) -> "StationLookup":
        """
        Load a stops file immediately instead of on first lookup.

        Raises:
            FileNotFoundError: path does not exist.
            ValueError: The file lacks a stop_id, stop_lat, or stop_lon column.
        """
        lookup = cls(path)
        lookup._load()
        return lookup

    @classmethod
    def from_mapping(cls, coords: Mapping[str, Union[StopCoords, Tuple[float, float]]]) -> "StationLookup":
        """Build a lookup from {stop_id: StopCoords or (lat, lng)}."""
        lookup = cls()
        lookup._coords = {
            stop_id: value if isinstance(value, StopCoords) else StopCoords(*value)
            for stop_id, value in coords.items()
        }
        return lookup

    def _load(self) -> Dict[str, StopCoords]:
        with self._lock:
            if self._coords is None:
                self._coords = self._read_csv(self._path)
            return self._coords

    @staticmethod
    def _read_csv(path: Path) -> Dict[str, StopCoords]:
        logger.info(f"Loading station coordinates from {path}")
        frame = pd.read_csv(path, dtype={"stop_id": str}, usecols=["stop_id", "stop_lat", "stop_lon"])
        frame = frame.dropna(subset=["stop_id", "stop_lat", "stop_lon"])

        coords = {
            row.stop_id.strip(): StopCoords(lat=float(row.stop_lat), lng=float(row.stop_lon))
            for row in frame.itertuples(index=False)
        }
        logger.info(f"Loaded {len(coords)} stations")
        return coords

    def coords(self, stop_id: Optional[str]) -> Optional[StopCoords]:
        """
        Look up coordinates for a GTFS stop ID.

        Tries an exact match first (handles parent IDs like "142"), then
        the parent station. Returns None if the stop is unknown.
        """
        if not stop_id:
            return None
        lookup = self._load()
        found = lookup.get(stop_id)
        if found is None:
            found = lookup.get(parent_station_id(stop_id))
        return found

    def __contains__(self, stop_id: str) -> bool:
        return self.coords(stop_id) is not None

    def __len__(self) -> int:
        return len(self._load())


_default_lookup: Optional[StationLookup] = None


def default_lookup() -> StationLookup:
    """Shared lookup over the bundled station table."""
    global _default_lookup
    if _default_lookup is None:
        _default_lookup = StationLookup()
    return _default_lookup
