"""Maps trip updates in a decoded feed to ArrivalPrediction records."""

import time
from typing import Iterable, List, Optional

from .decode import DecodedFeed, TripUpdatePayload
from .models import ArrivalPrediction, Direction
from .stations import parent_station_id


def to_seconds(value) -> int:
    """Normalize a feed timestamp (int, wide-integer wrapper, or None) to int."""
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def trip_direction(trip_id: Optional[str]) -> Direction:
    """Direction from the trailing "_N"/"_S" token of a trip ID."""
    token = (trip_id or "").split("_")[-1]
    if token == "N":
        return Direction.N
    if token == "S":
        return Direction.S
    return Direction.UNK


def map_arrivals(feed: DecodedFeed, now: Optional[int] = None) -> List[ArrivalPrediction]:
    """
    Extract arrival predictions from trip update entities.

    Each stop time update with a stop ID produces one prediction. Only
    predictions at or after now are kept.

    Args:
        feed: Decoded feed.
        now: Unix timestamp (seconds) to compare against. Defaults to the
            current time.

    Returns:
        ArrivalPrediction records in feed order.
    """
    now = now if now is not None else int(time.time())
    predictions: List[ArrivalPrediction] = []

    for entity in feed.entities:
        trip_update = entity.payload
        if not isinstance(trip_update, TripUpdatePayload) or not trip_update.route_id:
            continue

        line_id = trip_update.route_id.upper()
        trip_id = trip_update.trip_id or ""
        direction = trip_direction(trip_id)

        for stop_time in trip_update.stop_time_updates:
            if not stop_time.stop_id:
                continue

            arrival_time = to_seconds(stop_time.arrival_time)
            departure_time = to_seconds(stop_time.departure_time)
            effective = arrival_time or departure_time
            if not effective or effective < now:
                continue

            predictions.append(
                ArrivalPrediction(
                    id=f"{trip_id}-{stop_time.stop_id}",
                    line_id=line_id,
                    trip_id=trip_id,
                    stop_id=stop_time.stop_id,
                    direction=direction,
                    arrival_time=effective,
                    departure_time=departure_time or effective,
                    delay=to_seconds(stop_time.arrival_delay),
                )
            )

    return predictions


def filter_for_station(predictions: Iterable[ArrivalPrediction], station_id: str) -> List[ArrivalPrediction]:
    """
    Predictions for one station, both directions, soonest first.

    MTA stop IDs carry a direction suffix ("A15N", "A15S"), so matching
    is done on the parent ID.
    """
    base_id = parent_station_id(station_id)
    matching = [p for p in predictions if parent_station_id(p.stop_id) == base_id]
    return sorted(matching, key=lambda p: p.arrival_time)
