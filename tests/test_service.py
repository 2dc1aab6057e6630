"""Tests for the aggregation service."""

import random
import time
import unittest
from unittest.mock import MagicMock

import requests

from feed_builders import (
    TEST_CONFIG,
    TEST_STATIONS,
    add_alert,
    add_trip_update,
    add_vehicle,
    build_message,
    error_response,
    ok_response,
    routed_session,
)

from subwayfeed.cache import FeedCache
from subwayfeed.fetcher import FeedFetcher
from subwayfeed.mock_feed import SEED_TRAINS
from subwayfeed.models import Direction, FeedEndpoint, FeedMode, Snapshot, VehiclePosition
from subwayfeed.service import SubwayService, deduplicate_vehicles

SEED_IDS = {seed[0] for seed in SEED_TRAINS}


def ace_feed() -> bytes:
    now = int(time.time())
    feed = build_message()
    add_trip_update(feed, "tu-a", "020600_A..N", "A", [("A01N", now + 60, None), ("A02N", now + 120, None)])
    add_vehicle(feed, "train-1", "A", "A01N", trip_id="020600_A..N")
    add_vehicle(feed, "train-2", "C", "A03S", trip_id="020700_C..S")
    add_alert(feed, "alert-ace", route_ids=["A"], header=[("A delays", "en")])
    return feed.SerializeToString()


def l_feed() -> bytes:
    now = int(time.time())
    feed = build_message()
    add_trip_update(feed, "tu-l", "030000_L..S", "L", [("B01S", now + 30, None), ("A01S", now + 300, None)])
    add_vehicle(feed, "train-1", "L", "B01S", trip_id="030000_L..S")
    add_alert(feed, "alert-l", route_ids=["L"], header=[("L weekend work", "en")])
    return feed.SerializeToString()


class ServiceTestCase(unittest.TestCase):
    def _service(self, responses=None, session=None):
        if session is None:
            outcomes = {endpoint.value: (lambda: error_response(503)) for endpoint in FeedEndpoint}
            outcomes.update(responses or {})
            session = routed_session(outcomes)
        self.session = session
        fetcher = FeedFetcher(config=TEST_CONFIG, cache=FeedCache(), session=session)
        return SubwayService(fetcher=fetcher, stations=TEST_STATIONS, no_retry=True, rng=random.Random(7))


class TestTotalFailure(ServiceTestCase):
    """Every endpoint down falls back to mock data."""

    def setUp(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        self.service = self._service(session=session)

    def test_fetch_vehicles_returns_mock_trains(self):
        """Total failure gives seed trains and logs the errors."""
        with self.assertLogs("subwayfeed.service", level="WARNING") as logs:
            vehicles = self.service.fetch_vehicles()

        self.assertEqual(self.service.mode, FeedMode.MOCK)
        self.assertTrue(vehicles)
        self.assertTrue({v.id for v in vehicles} <= SEED_IDS)
        self.assertIn("offline", logs.output[0])
        self.assertEqual(self.session.get.call_count, len(FeedEndpoint))

    def test_arrivals_and_alerts_are_empty(self):
        """Total failure gives no arrivals or alerts."""
        self.assertEqual(self.service.fetch_arrivals("A01"), [])
        self.assertEqual(self.service.mode, FeedMode.MOCK)
        self.assertEqual(self.service.fetch_alerts(), [])

    def test_fetch_all_snapshot(self):
        """Total failure gives a snapshot of mock trains only."""
        snapshot = self.service.fetch_all(["A"])
        self.assertIsInstance(snapshot, Snapshot)
        self.assertEqual(len(snapshot.vehicles), len(SEED_TRAINS))
        self.assertEqual((snapshot.arrivals, snapshot.alerts), ((), ()))


class TestLiveService(ServiceTestCase):
    """At least one endpoint up gives live data."""

    def setUp(self):
        self.service = self._service(
            {
                FeedEndpoint.ACE.value: lambda: ok_response(ace_feed()),
                FeedEndpoint.L.value: lambda: ok_response(l_feed()),
            }
        )

    def test_partial_success_is_live(self):
        """One working endpoint keeps the service live."""
        vehicles = self.service.fetch_vehicles()
        self.assertEqual(self.service.mode, FeedMode.LIVE)
        self.assertTrue(vehicles)

    def test_duplicate_ids_keep_last_endpoint(self):
        """ACE is fetched before L, so L's train-1 wins."""
        vehicles = self.service.fetch_vehicles()

        by_id = {v.id: v for v in vehicles}
        self.assertEqual(len(by_id), len(vehicles))
        self.assertEqual(by_id["train-1"].line_id, "L")
        self.assertEqual(by_id["train-1"].direction, Direction.S)

    def test_line_filter_narrows_vehicles_and_endpoints(self):
        """A line filter fetches only its feed and its trains."""
        vehicles = self.service.fetch_vehicles(["c"])

        self.assertEqual([v.id for v in vehicles], ["train-2"])
        self.assertEqual(self.session.get.call_count, 1)
        self.assertIn("gtfs-ace", self.session.get.call_args.args[0])

    def test_arrivals_for_station_sorted(self):
        """Station arrivals cover both directions in time order."""
        arrivals = self.service.fetch_arrivals("A01")

        self.assertEqual([a.stop_id for a in arrivals], ["A01N", "A01S"])
        self.assertEqual([a.line_id for a in arrivals], ["A", "L"])
        self.assertLessEqual(arrivals[0].arrival_time, arrivals[1].arrival_time)

    def test_alerts_filtered_by_line(self):
        """Alerts can be narrowed to given lines."""
        self.assertEqual([a.id for a in self.service.fetch_alerts()], ["alert-ace", "alert-l"])
        self.assertEqual([a.id for a in self.service.fetch_alerts(["l"])], ["alert-l"])

    def test_alert_lines_normalized_like_vehicle_lines(self):
        """Padded or blank line ids filter alerts the same way they filter trains."""
        self.assertEqual([a.id for a in self.service.fetch_alerts([" a "])], ["alert-ace"])
        self.assertEqual([a.id for a in self.service.fetch_alerts([""])], ["alert-ace", "alert-l"])
        self.assertEqual(
            {v.line_id for v in self.service.fetch_vehicles([" a "])},
            {"A"},
        )

    def test_fetch_all(self):
        """A snapshot holds filtered trains, all arrivals, and filtered alerts."""
        snapshot = self.service.fetch_all(["A", "L"])

        self.assertEqual(self.service.mode, FeedMode.LIVE)
        self.assertEqual({v.id for v in snapshot.vehicles}, {"train-1"})
        self.assertEqual(len(snapshot.arrivals), 4)
        self.assertEqual({a.id for a in snapshot.alerts}, {"alert-ace", "alert-l"})
        self.assertIsInstance(snapshot.vehicles, tuple)

    def test_mode_recovers_after_outage(self):
        """Mode returns to live once a feed answers again."""
        self.service.fetcher._session.get.side_effect = requests.ConnectionError("offline")
        self.service.clear_all()
        self.service.fetch_vehicles()
        self.assertEqual(self.service.mode, FeedMode.MOCK)

        self.service.fetcher._session.get.side_effect = lambda url, **kwargs: ok_response(ace_feed())
        self.service.fetch_vehicles(["A"])
        self.assertEqual(self.service.mode, FeedMode.LIVE)

    def test_cache_serves_repeat_calls_until_invalidated(self):
        """Repeat calls hit the cache until the endpoint is invalidated."""
        self.service.fetch_vehicles(["A"])
        self.service.fetch_vehicles(["A"])
        self.assertEqual(self.session.get.call_count, 1)

        self.service.invalidate(FeedEndpoint.ACE)
        self.service.fetch_vehicles(["A"])
        self.assertEqual(self.session.get.call_count, 2)


class TestDeduplicateVehicles(unittest.TestCase):
    def test_last_occurrence_wins_in_first_position(self):
        """A later duplicate replaces the earlier one in place."""
        def vehicle(vehicle_id, line_id):
            return VehiclePosition(vehicle_id, line_id, 0.0, 0.0, 0.0, Direction.N)

        result = deduplicate_vehicles([vehicle("a", "1"), vehicle("b", "2"), vehicle("a", "3")])
        self.assertEqual([(v.id, v.line_id) for v in result], [("a", "3"), ("b", "2")])


if __name__ == "__main__":
    unittest.main()
