"""Maps vehicle entities in a decoded feed to VehiclePosition records."""

import logging
import re
import time
from typing import Dict, List, Optional

from .decode import DecodedFeed, FeedEntity, TripUpdatePayload, VehiclePayload
from .geo import canonical_bearing, cardinal_from_bearing, initial_bearing
from .models import Direction, VehiclePosition
from .stations import StationLookup, StopCoords, default_lookup

logger = logging.getLogger(__name__)

# Trip IDs look like "AFA25GEN-1038-Sunday-00_020600_1..S03R"
_TRIP_DIRECTION = re.compile(r"\.\.([NS])")


def fallback_direction(stop_id: Optional[str], trip_id: Optional[str]) -> Direction:
    """
    Coarse direction from the feed's own encoding.

    Used only when no bearing can be computed: the stop ID suffix first,
    then the "..N"/"..S" token in the trip ID.
    """
    if stop_id:
        last = stop_id[-1]
        if last == "N":
            return Direction.N
        if last == "S":
            return Direction.S
    if trip_id:
        match = _TRIP_DIRECTION.search(trip_id)
        if match:
            return Direction(match.group(1))
    return Direction.UNK


def vehicle_id(entity_id: Optional[str], trip_id: Optional[str], stop_id: Optional[str]) -> str:
    if entity_id:
        return entity_id
    return f"{trip_id or 'unknown'}-{stop_id or 'unknown'}"


def _index_trip_updates(feed: DecodedFeed) -> Dict[str, TripUpdatePayload]:
    trip_updates: Dict[str, TripUpdatePayload] = {}
    for entity in feed.entities:
        payload = entity.payload
        if isinstance(payload, TripUpdatePayload) and payload.trip_id:
            trip_updates[payload.trip_id] = payload
    return trip_updates


def _next_stop_coords(
    trip_update: Optional[TripUpdatePayload],
    stop_id: str,
    stations: StationLookup,
) -> Optional[StopCoords]:
    if trip_update is None:
        return None

    stops = trip_update.stop_time_updates
    for index, stop_time in enumerate(stops):
        if stop_time.stop_id == stop_id:
            if index < len(stops) - 1:
                return stations.coords(stops[index + 1].stop_id)
            return None
    return None


def _map_vehicle(
    entity: FeedEntity,
    vehicle: VehiclePayload,
    trip_updates: Dict[str, TripUpdatePayload],
    stations: StationLookup,
    now_ms: int,
) -> Optional[VehiclePosition]:
    if not vehicle.route_id or not vehicle.stop_id:
        return None

    stop_id = vehicle.stop_id
    current = stations.coords(stop_id)
    if current is None:
        return None

    trip_id = vehicle.trip_id
    next_coords = None
    if trip_id:
        next_coords = _next_stop_coords(trip_updates.get(trip_id), stop_id, stations)

    if next_coords is not None:
        bearing = initial_bearing(current.lat, current.lng, next_coords.lat, next_coords.lng)
        direction = cardinal_from_bearing(bearing)
    else:
        # Terminals, missing trip updates and lookup misses
        direction = fallback_direction(stop_id, trip_id)
        bearing = canonical_bearing(direction)

    return VehiclePosition(
        id=vehicle_id(entity.id, trip_id, stop_id),
        line_id=vehicle.route_id.upper(),
        latitude=current.lat,
        longitude=current.lng,
        bearing=bearing,
        direction=direction,
        trip_id=trip_id,
        current_stop_id=stop_id,
        observed_at_ms=now_ms,
    )


def map_vehicles(
    feed: DecodedFeed,
    stations: Optional[StationLookup] = None,
    now_ms: Optional[int] = None,
) -> List[VehiclePosition]:
    """
    Extract vehicle positions from a decoded feed.

    For each vehicle:
      1. Look up the current stop's coordinates.
      2. Find the matching trip update to determine the next stop.
      3. Compute the compass bearing from current to next stop.
      4. Derive the cardinal direction from the bearing.

    Vehicles at terminals or without a trip update fall back to the N/S
    encoded in the stop or trip ID. Vehicles whose stop has no known
    coordinates are skipped.

    Args:
        feed: Decoded feed, possibly merged from several endpoints.
        stations: Coordinate lookup. Defaults to the bundled station table.
        now_ms: Observation timestamp. Defaults to the current time.

    Returns:
        VehiclePosition records in entity order.
    """
    stations = stations if stations is not None else default_lookup()
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    trip_updates = _index_trip_updates(feed)

    vehicles: List[VehiclePosition] = []
    skipped = 0
    for entity in feed.entities:
        if not isinstance(entity.payload, VehiclePayload):
            continue
        position = _map_vehicle(entity, entity.payload, trip_updates, stations, now_ms)
        if position is None:
            skipped += 1
            continue
        vehicles.append(position)

    if skipped:
        logger.debug(f"Skipped {skipped} vehicles without a known line, stop, or location")
    return vehicles
