"""
GTFS-Realtime decoding.

Parses protobuf FeedMessage bytes into plain, immutable Python structures.
Each FeedEntity carries at most one payload: a vehicle position, a trip
update, or an alert.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from .errors import FeedDecodeError
from .models import FeedEndpoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StopTimeUpdate:
    stop_id: Optional[str]
    arrival_time: Optional[int] = None
    departure_time: Optional[int] = None
    arrival_delay: Optional[int] = None


@dataclass(frozen=True)
class VehiclePayload:
    trip_id: Optional[str]
    route_id: Optional[str]
    stop_id: Optional[str]
    timestamp: Optional[int] = None


@dataclass(frozen=True)
class TripUpdatePayload:
    trip_id: Optional[str]
    route_id: Optional[str]
    stop_time_updates: Tuple[StopTimeUpdate, ...] = ()


@dataclass(frozen=True)
class Translation:
    text: str
    language: Optional[str] = None


@dataclass(frozen=True)
class TimeRange:
    start: Optional[int] = None
    end: Optional[int] = None


@dataclass(frozen=True)
class AlertPayload:
    route_ids: Tuple[str, ...] = ()
    active_periods: Tuple[TimeRange, ...] = ()
    header: Tuple[Translation, ...] = ()
    description: Tuple[Translation, ...] = ()


Payload = Union[VehiclePayload, TripUpdatePayload, AlertPayload]


@dataclass(frozen=True)
class FeedEntity:
    id: str
    payload: Optional[Payload] = None


@dataclass(frozen=True)
class DecodedFeed:
    """A decoded FeedMessage."""

    entities: Tuple[FeedEntity, ...] = ()
    timestamp: Optional[int] = None

    @classmethod
    def merge(cls, feeds: Iterable["DecodedFeed"]) -> "DecodedFeed":
        """Concatenate entity lists, preserving the order of ``feeds``."""
        entities = []
        for feed in feeds:
            entities.extend(feed.entities)
        return cls(entities=tuple(entities))


def decode_feed(data: bytes, endpoint: Optional[FeedEndpoint] = None) -> DecodedFeed:
    """
    Decode raw protobuf bytes into a DecodedFeed.

    Args:
        data: Response body from a GTFS-Realtime endpoint.
        endpoint: Endpoint the bytes came from, used for error reporting.

    Returns:
        DecodedFeed with one FeedEntity per protobuf entity.

    Raises:
        FeedDecodeError: If the bytes are not a valid FeedMessage.
    """
    message = gtfs_realtime_pb2.FeedMessage()
    try:
        message.ParseFromString(data)
    except DecodeError as e:
        name = endpoint.value if endpoint else "<unknown>"
        raise FeedDecodeError(endpoint, f"Invalid GTFS-RT feed data from {name}: {e}") from e

    return from_message(message)


def from_message(message) -> DecodedFeed:
    """Convert a parsed gtfs_realtime_pb2.FeedMessage into a DecodedFeed."""
    entities = tuple(_decode_entity(entity) for entity in message.entity)
    timestamp = message.header.timestamp if message.header.HasField("timestamp") else None
    logger.debug(f"Decoded {len(entities)} entities")
    return DecodedFeed(entities=entities, timestamp=timestamp)


def _decode_entity(entity) -> FeedEntity:
    if entity.HasField("vehicle"):
        payload = _decode_vehicle(entity.vehicle)
    elif entity.HasField("trip_update"):
        payload = _decode_trip_update(entity.trip_update)
    elif entity.HasField("alert"):
        payload = _decode_alert(entity.alert)
    else:
        payload = None
    return FeedEntity(id=entity.id, payload=payload)


def _optional_str(value: str) -> Optional[str]:
    return value or None


def _decode_vehicle(vehicle) -> VehiclePayload:
    return VehiclePayload(
        trip_id=_optional_str(vehicle.trip.trip_id),
        route_id=_optional_str(vehicle.trip.route_id),
        stop_id=_optional_str(vehicle.stop_id),
        timestamp=vehicle.timestamp if vehicle.HasField("timestamp") else None,
    )


def _decode_stop_time_update(update) -> StopTimeUpdate:
    arrival_time = None
    arrival_delay = None
    departure_time = None
    if update.HasField("arrival"):
        if update.arrival.HasField("time"):
            arrival_time = update.arrival.time
        if update.arrival.HasField("delay"):
            arrival_delay = update.arrival.delay
    if update.HasField("departure") and update.departure.HasField("time"):
        departure_time = update.departure.time

    return StopTimeUpdate(
        stop_id=_optional_str(update.stop_id),
        arrival_time=arrival_time,
        departure_time=departure_time,
        arrival_delay=arrival_delay,
    )


def _decode_trip_update(trip_update) -> TripUpdatePayload:
    return TripUpdatePayload(
        trip_id=_optional_str(trip_update.trip.trip_id),
        route_id=_optional_str(trip_update.trip.route_id),
        stop_time_updates=tuple(
            _decode_stop_time_update(update) for update in trip_update.stop_time_update
        ),
    )


def _decode_translations(translated) -> Tuple[Translation, ...]:
    return tuple(
        Translation(text=t.text, language=_optional_str(t.language))
        for t in translated.translation
    )


def _decode_alert(alert) -> AlertPayload:
    route_ids = []
    for informed_entity in alert.informed_entity:
        # Route can be specified directly in route_id OR in trip.route_id
        route_id = informed_entity.route_id
        if not route_id and informed_entity.HasField("trip"):
            route_id = informed_entity.trip.route_id
        if route_id:
            route_ids.append(route_id)

    active_periods = tuple(
        TimeRange(
            start=period.start if period.HasField("start") else None,
            end=period.end if period.HasField("end") else None,
        )
        for period in alert.active_period
    )

    return AlertPayload(
        route_ids=tuple(route_ids),
        active_periods=active_periods,
        header=_decode_translations(alert.header_text),
        description=_decode_translations(alert.description_text),
    )
