"""Aggregates MTA feeds into vehicles, arrivals, and alerts."""

import logging
import random
from typing import Dict, Iterable, List, Optional

from .alert_mapper import filter_for_lines, map_alerts
from .decode import DecodedFeed
from .fetcher import BatchResult, CancellationToken, FeedFetcher
from .mock_feed import mock_vehicles
from .models import (
    ArrivalPrediction,
    FeedEndpoint,
    FeedMode,
    ServiceAlert,
    Snapshot,
    VehiclePosition,
)
from .registry import ALL_ENDPOINTS, resolve_endpoints
from .stations import StationLookup
from .trip_update_mapper import filter_for_station, map_arrivals
from .vehicle_mapper import map_vehicles

logger = logging.getLogger(__name__)


def deduplicate_vehicles(vehicles: Iterable[VehiclePosition]) -> List[VehiclePosition]:
    """
    Deduplicate vehicles by ID, keeping the last occurrence.

    Input is iterated in endpoint-then-entity order; a later vehicle with
    the same ID overwrites the earlier one in place.
    """
    by_id: Dict[str, VehiclePosition] = {}
    for vehicle in vehicles:
        by_id[vehicle.id] = vehicle
    return list(by_id.values())


def filter_vehicles_for_lines(
    vehicles: List[VehiclePosition], lines: Optional[Iterable[str]] = None
) -> List[VehiclePosition]:
    line_set = {line.upper() for line in lines or ()}
    if not line_set:
        return vehicles
    return [vehicle for vehicle in vehicles if vehicle.line_id in line_set]


class SubwayService:
    """
    Live subway data from the MTA GTFS-Realtime feeds.

    This class provides methods to:
    - Get vehicle positions, optionally for a set of lines
    - Get upcoming arrivals at a station
    - Get service alerts, optionally for a set of lines
    - Get all of the above in one pass

    When every feed fails, vehicles come from a fixed set of mock trains
    and mode reports "mock".
    """

    def __init__(
        self,
        fetcher: Optional[FeedFetcher] = None,
        stations: Optional[StationLookup] = None,
        cache_ttl_ms: Optional[int] = None,
        no_retry: bool = False,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the service.

        Args:
            fetcher: Feed fetcher (owns the cache). Defaults to a new FeedFetcher.
            stations: Coordinate lookup for vehicles. Defaults to the bundled table.
            cache_ttl_ms: Cache TTL passed to every fetch. None uses the fetcher's config.
            no_retry: Disable retries on every fetch.
            rng: Random source for mock data.
        """
        self.fetcher = fetcher if fetcher is not None else FeedFetcher()
        self.stations = stations
        self._cache_ttl_ms = cache_ttl_ms
        self._no_retry = no_retry
        self._rng = rng
        self._mode = FeedMode.LIVE

    @property
    def mode(self) -> FeedMode:
        """Mode of the most recent fetch."""
        return self._mode

    def fetch_vehicles(
        self, lines: Optional[Iterable[str]] = None, token: Optional[CancellationToken] = None
    ) -> List[VehiclePosition]:
        """
        Get current vehicle positions.

        Args:
            lines: Line IDs to include. None or empty means every line.
            token: Optional cancellation token.

        Returns:
            Vehicles unique by ID. Mock trains when every feed failed.
        """
        lines = _normalize_lines(lines)
        batch = self._fetch(resolve_endpoints(lines), token)
        if self._all_failed(batch):
            return mock_vehicles(self._rng)

        return self._vehicles(self._merge(batch), lines)

    def fetch_arrivals(self, station_id: str, token: Optional[CancellationToken] = None) -> List[ArrivalPrediction]:
        """
        Get upcoming arrivals at a station, both directions, soonest first.

        Any feed may carry trip updates for any stop, so every feed is read.
        """
        batch = self._fetch(ALL_ENDPOINTS, token)
        if self._all_failed(batch):
            return []

        return filter_for_station(map_arrivals(self._merge(batch)), station_id)

    def fetch_alerts(
        self, lines: Optional[Iterable[str]] = None, token: Optional[CancellationToken] = None
    ) -> List[ServiceAlert]:
        """Get service alerts, optionally only those affecting the given lines."""
        lines = _normalize_lines(lines)
        batch = self._fetch(ALL_ENDPOINTS, token)
        if self._all_failed(batch):
            return []

        return filter_for_lines(map_alerts(self._merge(batch)), lines)

    def fetch_all(self, lines: Optional[Iterable[str]] = None, token: Optional[CancellationToken] = None) -> Snapshot:
        """
        Get vehicles, arrivals, and alerts from a single fetch.

        Vehicles and alerts are narrowed to the given lines. Arrivals are
        every future prediction in the fetched feeds.
        """
        lines = _normalize_lines(lines)
        batch = self._fetch(resolve_endpoints(lines), token)
        if self._all_failed(batch):
            return Snapshot(vehicles=tuple(mock_vehicles(self._rng)))

        merged = self._merge(batch)
        return Snapshot(
            vehicles=tuple(self._vehicles(merged, lines)),
            arrivals=tuple(map_arrivals(merged)),
            alerts=tuple(filter_for_lines(map_alerts(merged), lines)),
        )

    def clear_all(self) -> None:
        """Drop every cached feed so the next fetch goes to the network."""
        self.fetcher.cache.clear()

    def invalidate(self, endpoint: FeedEndpoint) -> None:
        """Drop one cached feed."""
        self.fetcher.cache.invalidate(endpoint)

    def cleanup(self) -> None:
        """Release resources and clear caches."""
        self.clear_all()
        logger.info("Cleaned up subway service resources")

    def _fetch(self, endpoints: List[FeedEndpoint], token: Optional[CancellationToken]) -> BatchResult:
        return self.fetcher.fetch_many(
            endpoints,
            token=token,
            cache_ttl_ms=self._cache_ttl_ms,
            no_retry=self._no_retry,
        )

    def _all_failed(self, batch: BatchResult) -> bool:
        if batch.all_failed:
            messages = " | ".join(str(error) for error in batch.errors.values())
            logger.warning(f"All MTA feeds failed, using mock data: {messages}")
            self._mode = FeedMode.MOCK
            return True

        self._mode = FeedMode.LIVE
        return False

    @staticmethod
    def _merge(batch: BatchResult) -> DecodedFeed:
        return DecodedFeed.merge(batch.results.values())

    def _vehicles(self, feed: DecodedFeed, lines: Optional[List[str]]) -> List[VehiclePosition]:
        vehicles = deduplicate_vehicles(map_vehicles(feed, self.stations))
        return filter_vehicles_for_lines(vehicles, lines)


def _normalize_lines(lines: Optional[Iterable[str]]) -> Optional[List[str]]:
    if lines is None:
        return None
    return [line.strip().upper() for line in lines if line and line.strip()]
