"""Synthetic vehicle positions used when every live feed is down."""

import random
import time
from typing import List, Optional

from .geo import cardinal_from_bearing, normalize_bearing
from .models import VehiclePosition

# (id, line, latitude, longitude, bearing)
SEED_TRAINS = [
    ("mock-A-1", "A", 40.7502, -73.9934, 190.0),
    ("mock-7-1", "7", 40.7528, -73.9772, 92.0),
    ("mock-Q-1", "Q", 40.7348, -73.9901, 15.0),
    ("mock-4-1", "4", 40.7053, -74.0139, 10.0),
    ("mock-L-1", "L", 40.7323, -73.9546, 265.0),
    ("mock-F-1", "F", 40.7212, -73.9984, 38.0),
]

POSITION_JITTER = 0.0045  # Degrees, full width
BEARING_JITTER = 16.0


def mock_vehicles(rng: Optional[random.Random] = None) -> List[VehiclePosition]:
    """Return one jittered position per seed train."""
    rng = rng or random.Random()
    now_ms = int(time.time() * 1000)

    vehicles = []
    for train_id, line_id, latitude, longitude, bearing in SEED_TRAINS:
        next_bearing = normalize_bearing(bearing + (rng.random() - 0.5) * BEARING_JITTER)
        vehicles.append(
            VehiclePosition(
                id=train_id,
                line_id=line_id,
                latitude=latitude + (rng.random() - 0.5) * POSITION_JITTER,
                longitude=longitude + (rng.random() - 0.5) * POSITION_JITTER,
                bearing=next_bearing,
                direction=cardinal_from_bearing(next_bearing),
                observed_at_ms=now_ms,
            )
        )
    return vehicles
