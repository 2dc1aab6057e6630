"""Maps subway lines to the MTA feed endpoints that carry them."""

from typing import Dict, Iterable, List, Optional

from .models import FeedEndpoint

LINE_TO_ENDPOINT: Dict[str, FeedEndpoint] = {
    # Numbered lines + 42nd St Shuttle
    "1": FeedEndpoint.DEFAULT,
    "2": FeedEndpoint.DEFAULT,
    "3": FeedEndpoint.DEFAULT,
    "4": FeedEndpoint.DEFAULT,
    "5": FeedEndpoint.DEFAULT,
    "6": FeedEndpoint.DEFAULT,
    "6X": FeedEndpoint.DEFAULT,
    "7": FeedEndpoint.DEFAULT,
    "7X": FeedEndpoint.DEFAULT,
    "S": FeedEndpoint.DEFAULT,
    "GS": FeedEndpoint.DEFAULT,
    # ACE + Rockaway Shuttle
    "A": FeedEndpoint.ACE,
    "C": FeedEndpoint.ACE,
    "E": FeedEndpoint.ACE,
    "H": FeedEndpoint.ACE,
    "B": FeedEndpoint.BDFM,
    "D": FeedEndpoint.BDFM,
    "F": FeedEndpoint.BDFM,
    "M": FeedEndpoint.BDFM,
    "G": FeedEndpoint.G,
    "J": FeedEndpoint.JZ,
    "Z": FeedEndpoint.JZ,
    "L": FeedEndpoint.L,
    "N": FeedEndpoint.NQRW,
    "Q": FeedEndpoint.NQRW,
    "R": FeedEndpoint.NQRW,
    "W": FeedEndpoint.NQRW,
    # Staten Island Railway
    "SI": FeedEndpoint.SI,
    "FS": FeedEndpoint.SI,
}

ALL_ENDPOINTS: List[FeedEndpoint] = list(FeedEndpoint)


def endpoint_for_line(line: str) -> FeedEndpoint:
    """
    Get the endpoint that carries a line.

    Unknown lines fall back to FeedEndpoint.DEFAULT.
    """
    return LINE_TO_ENDPOINT.get(line.strip().upper(), FeedEndpoint.DEFAULT)


def resolve_endpoints(lines: Optional[Iterable[str]] = None) -> List[FeedEndpoint]:
    """
    Get the minimal set of endpoints covering the given lines.

    Args:
        lines: Line IDs (e.g., ["A", "C", "7"]). None or empty means all lines.

    Returns:
        Deduplicated endpoints in first-seen order, e.g. ["A", "C", "7"]
        resolves to [ACE, DEFAULT]. All endpoints when no lines are given.
    """
    endpoints: List[FeedEndpoint] = []
    for line in lines or ():
        endpoint = endpoint_for_line(line)
        if endpoint not in endpoints:
            endpoints.append(endpoint)

    if not endpoints:
        return list(ALL_ENDPOINTS)
    return endpoints


def lines_for_endpoint(endpoint: FeedEndpoint) -> List[str]:
    """Get all line IDs served by an endpoint."""
    return [line for line, served_by in LINE_TO_ENDPOINT.items() if served_by == endpoint]
