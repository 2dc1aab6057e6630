"""Tests for synthetic fallback data."""

import random
import unittest

import feed_builders  # noqa: F401

from subwayfeed.geo import cardinal_from_bearing
from subwayfeed.mock_feed import POSITION_JITTER, SEED_TRAINS, mock_vehicles


class TestMockVehicles(unittest.TestCase):
    def test_one_vehicle_per_seed(self):
        """Every seed train yields one vehicle."""
        vehicles = mock_vehicles(random.Random(1))
        self.assertEqual([v.id for v in vehicles], [seed[0] for seed in SEED_TRAINS])

    def test_jitter_stays_near_seed(self):
        """Jittered positions stay close to their seed."""
        rng = random.Random(2)
        for _ in range(20):
            for vehicle, (_, line_id, lat, lng, bearing) in zip(mock_vehicles(rng), SEED_TRAINS):
                self.assertEqual(vehicle.line_id, line_id)
                self.assertLessEqual(abs(vehicle.latitude - lat), POSITION_JITTER / 2)
                self.assertLessEqual(abs(vehicle.longitude - lng), POSITION_JITTER / 2)
                self.assertGreaterEqual(vehicle.bearing, 0.0)
                self.assertLess(vehicle.bearing, 360.0)
                self.assertEqual(vehicle.direction, cardinal_from_bearing(vehicle.bearing))


if __name__ == "__main__":
    unittest.main()
