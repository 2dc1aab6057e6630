"""Tests for service alerts."""

import unittest

from feed_builders import add_alert, add_vehicle, build_message, decoded

from subwayfeed.alert_mapper import filter_for_lines, map_alerts, translated_text
from subwayfeed.decode import Translation
from subwayfeed.models import ActivePeriod


class TestMapAlerts(unittest.TestCase):
    def test_maps_lines_text_and_periods(self):
        """Line ids, header, description, and active periods are carried over."""
        feed = build_message()
        add_alert(
            feed,
            "alert-1",
            route_ids=["a", "C"],
            header=[("Delays", "en")],
            description=[("Signal problems at 59 St", "en")],
            periods=[(1_700_000_000, 1_700_003_600), (1_700_010_000, None)],
        )

        alerts = map_alerts(decoded(feed))

        self.assertEqual(len(alerts), 1)
        alert = alerts[0]
        self.assertEqual(alert.id, "alert-1")
        self.assertEqual(alert.line_ids, frozenset({"A", "C"}))
        self.assertEqual(alert.header, "Delays")
        self.assertEqual(alert.description, "Signal problems at 59 St")
        self.assertEqual(
            alert.active_periods,
            (ActivePeriod(1_700_000_000, 1_700_003_600), ActivePeriod(1_700_010_000, None)),
        )
        self.assertIsInstance(alert.active_periods[0].start, int)

    def test_empty_alert_is_dropped(self):
        """An alert with no text after translation is skipped."""
        feed = build_message()
        add_alert(feed, "empty", route_ids=["A"])
        add_alert(feed, "blank", route_ids=["A"], header=[("", "en")], description=[("", None)])
        add_alert(feed, "kept", route_ids=["A"], description=[("Only a description", "en")])

        alerts = map_alerts(decoded(feed))
        self.assertEqual([a.id for a in alerts], ["kept"])
        self.assertEqual(alerts[0].header, "")

    def test_prefers_english_translation(self):
        """English text is chosen over other languages."""
        feed = build_message()
        add_alert(
            feed,
            "a1",
            route_ids=["7"],
            header=[("Retrasos", "es"), ("Delays", "en"), ("<b>Delays</b>", "en-html")],
        )
        self.assertEqual(map_alerts(decoded(feed))[0].header, "Delays")

    def test_route_from_trip_descriptor(self):
        """The trip's route id is used when route_id is unset."""
        feed = build_message()
        entity = add_alert(feed, "a1", header=[("Delays", "en")])
        entity.alert.informed_entity.add().trip.route_id = "g"

        self.assertEqual(map_alerts(decoded(feed))[0].line_ids, frozenset({"G"}))

    def test_ignores_non_alert_entities(self):
        """Vehicle and trip update entities produce no alerts."""
        feed = build_message()
        add_vehicle(feed, "v1", "A", "A01N")
        self.assertEqual(map_alerts(decoded(feed)), [])


class TestTranslatedText(unittest.TestCase):
    def test_untagged_counts_as_english(self):
        """A translation without a language tag is treated as English."""
        translations = (Translation("Hola", "es"), Translation("Hello", None))
        self.assertEqual(translated_text(translations), "Hello")

    def test_first_translation_when_no_english(self):
        """Without English, the first translation is used."""
        translations = (Translation("Hola", "es"), Translation("Bonjour", "fr"))
        self.assertEqual(translated_text(translations), "Hola")

    def test_no_translations(self):
        """No translations gives an empty string."""
        self.assertEqual(translated_text(()), "")


class TestFilterForLines(unittest.TestCase):
    def setUp(self):
        feed = build_message()
        add_alert(feed, "ace", route_ids=["A", "C", "E"], header=[("ACE delays", "en")])
        add_alert(feed, "l", route_ids=["L"], header=[("L suspended", "en")])
        add_alert(feed, "none", header=[("System-wide notice", "en")])
        self.alerts = map_alerts(decoded(feed))

    def test_no_lines_returns_everything(self):
        """No line filter keeps every alert."""
        self.assertEqual(filter_for_lines(self.alerts), self.alerts)
        self.assertEqual(filter_for_lines(self.alerts, []), self.alerts)

    def test_intersects_requested_lines(self):
        """Alerts are kept when they share any requested line."""
        self.assertEqual([a.id for a in filter_for_lines(self.alerts, ["c"])], ["ace"])
        self.assertEqual([a.id for a in filter_for_lines(self.alerts, {"L", "E"})], ["ace", "l"])
        self.assertEqual(filter_for_lines(self.alerts, ["7"]), [])


if __name__ == "__main__":
    unittest.main()
