"""Example usage of SubwayService."""

import logging
import sys
import time
from pathlib import Path

# Add src to path so we can import subwayfeed
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from subwayfeed import SubwayService

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_station_arrivals(service: SubwayService, station_id: str):
    """
    Fetch and display upcoming arrivals for a station.

    Args:
        service: Shared service instance.
        station_id: GTFS stop ID with or without direction (e.g., "127" or "A15N")
    """
    print(f"\n{'='*70}")
    print(f"Arrivals at: {station_id}  [{service.mode.value}]")
    print(f"{'='*70}\n")

    arrivals = service.fetch_arrivals(station_id)
    if not arrivals:
        print("  No arrivals found")
        return

    now = int(time.time())
    for arrival in arrivals[:10]:
        minutes_away = max(0, (arrival.arrival_time - now) // 60)
        print(f"  {arrival.line_id:>3} {arrival.direction.value:<3} {arrival.stop_id:<5} {minutes_away:2d} min")


def print_lines(service: SubwayService, lines):
    """Display trains and alerts for a set of lines."""
    snapshot = service.fetch_all(lines)

    print(f"\nTRAINS ({service.mode.value}):")
    print("-" * 70)
    for vehicle in snapshot.vehicles:
        heading = "?" if vehicle.direction.value == "UNK" else f"{vehicle.bearing:5.1f}°"
        print(
            f"  {vehicle.line_id:>3} {vehicle.id:<30} "
            f"{vehicle.latitude:.5f},{vehicle.longitude:.5f} {vehicle.direction.value:<3} {heading}"
        )

    print("\nSERVICE ALERTS:")
    print("-" * 70)
    if snapshot.alerts:
        for alert in snapshot.alerts:
            print(f"\n{', '.join(sorted(alert.line_ids))}: {alert.header}")
            if alert.description:
                print(f"  {alert.description}")
    else:
        print("  No service alerts")


if __name__ == "__main__":
    service = SubwayService()
    try:
        if len(sys.argv) > 1 and sys.argv[1] == "--station":
            print_station_arrivals(service, sys.argv[2])
        else:
            print_lines(service, sys.argv[1:])
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
    finally:
        service.cleanup()
