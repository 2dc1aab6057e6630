"""Maps alert entities in a decoded feed to ServiceAlert records."""

import logging
from typing import Iterable, List, Optional, Sequence

from .decode import AlertPayload, DecodedFeed, Translation
from .models import ActivePeriod, ServiceAlert

logger = logging.getLogger(__name__)


def _optional_seconds(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def translated_text(translations: Sequence[Translation]) -> str:
    """
    Pick the English (or untagged) translation, else the first one.

    Returns an empty string when there are no translations.
    """
    if not translations:
        return ""
    for translation in translations:
        if not translation.language or translation.language.lower() == "en":
            return translation.text or ""
    return translations[0].text or ""


def map_alerts(feed: DecodedFeed) -> List[ServiceAlert]:
    """
    Extract service alerts from a decoded feed.

    Alerts with neither a header nor a description are dropped.
    """
    alerts: List[ServiceAlert] = []

    for entity in feed.entities:
        alert = entity.payload
        if not isinstance(alert, AlertPayload):
            continue

        header = translated_text(alert.header)
        description = translated_text(alert.description)
        if not header and not description:
            logger.debug(f"Dropping empty alert {entity.id!r}")
            continue

        alerts.append(
            ServiceAlert(
                id=entity.id or f"alert-{len(alerts)}",
                line_ids=frozenset(route_id.upper() for route_id in alert.route_ids if route_id),
                header=header,
                description=description,
                active_periods=tuple(
                    ActivePeriod(start=_optional_seconds(p.start), end=_optional_seconds(p.end))
                    for p in alert.active_periods
                ),
            )
        )

    logger.debug(f"Parsed {len(alerts)} alerts")
    return alerts


def filter_for_lines(alerts: Iterable[ServiceAlert], lines: Optional[Iterable[str]] = None) -> List[ServiceAlert]:
    """
    Alerts affecting any of the given lines.

    Returns every alert when lines is None or empty.
    """
    alerts = list(alerts)
    line_set = {line.upper() for line in lines or ()}
    if not line_set:
        return alerts
    return [alert for alert in alerts if alert.line_ids & line_set]
