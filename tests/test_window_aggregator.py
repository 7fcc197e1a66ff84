import unittest
from operator import attrgetter

from flight_telemetry.enrichment import assign_vertical_direction
from flight_telemetry.models import TimestampedEntry, VerticalDirection
from flight_telemetry.operators.aggregations import all_of, linear_trend, summing, to_list
from flight_telemetry.operators.windowing import WindowAggregator
from flight_telemetry.processing.watermark import WatermarkTracker
from flight_telemetry.processing.windows import SlidingWindow
from flight_telemetry.utils.metrics import MetricsManager
from tests.helpers import report


def direction_aggregator(name: str, allowed_lateness_ms: int = 0) -> WindowAggregator:
    return WindowAggregator(
        SlidingWindow(size_ms=60000, slide_ms=30000),
        key_fn=attrgetter("id"),
        timestamp_fn=attrgetter("pos_time"),
        operation=all_of(to_list(), linear_trend(attrgetter("pos_time"), attrgetter("alt")),
                         assign_vertical_direction),
        allowed_lateness_ms=allowed_lateness_ms,
        name=name,
    )


def summing_aggregator(name: str) -> WindowAggregator:
    return WindowAggregator(
        SlidingWindow(size_ms=60000, slide_ms=30000),
        key_fn=attrgetter("key"),
        timestamp_fn=attrgetter("timestamp"),
        operation=summing(attrgetter("value")),
        name=name,
    )


class TestWindowAggregator(unittest.TestCase):
    def test_element_folds_into_its_windows_only(self):
        agg = summing_aggregator("SumFold")

        self.assertTrue(agg.accumulate(TimestampedEntry(45000, "London", 5.0)))

        self.assertEqual(agg.open_windows, [0, 30000])
        self.assertEqual(agg.accumulator(0, "London"), 5.0)
        self.assertEqual(agg.accumulator(30000, "London"), 5.0)
        self.assertIsNone(agg.accumulator(-30000, "London"))
        self.assertIsNone(agg.accumulator(0, "Paris"))

    def test_keys_accumulate_independently(self):
        agg = summing_aggregator("SumKeys")
        agg.accumulate(TimestampedEntry(10000, "London", 1.0))
        agg.accumulate(TimestampedEntry(20000, "Paris", 2.0))
        agg.accumulate(TimestampedEntry(25000, "London", 3.0))

        results = agg.try_close(60000)

        self.assertEqual(
            [(e.timestamp, e.key, e.value) for e in results],
            [(30000, "London", 4.0), (30000, "Paris", 2.0),
             (60000, "London", 4.0), (60000, "Paris", 2.0)],
        )
        self.assertEqual(agg.open_windows, [])

    def test_try_close_is_idempotent(self):
        agg = summing_aggregator("SumIdempotent")
        agg.accumulate(TimestampedEntry(10000, "London", 1.0))

        first = agg.try_close(30000)
        self.assertEqual([(e.timestamp, e.value) for e in first], [(30000, 1.0)])
        self.assertEqual(agg.try_close(30000), [])
        # A lower watermark never reopens or re-closes anything
        self.assertEqual(agg.try_close(0), [])
        self.assertEqual(agg.current_watermark, 30000)

    def test_late_event_is_dropped_and_counted(self):
        agg = summing_aggregator("SumLate")
        agg.accumulate(TimestampedEntry(70000, "London", 1.0))
        agg.try_close(90000)
        before = MetricsManager().value("late_events_dropped", {"operator": "SumLate"})

        # Both windows containing t=40000 ended at or before 90000
        self.assertFalse(agg.accumulate(TimestampedEntry(40000, "London", 99.0)))

        self.assertEqual(agg.late_events, 1)
        self.assertEqual(MetricsManager().value("late_events_dropped", {"operator": "SumLate"}), before + 1)
        self.assertEqual(agg.open_windows, [60000])
        self.assertEqual(agg.accumulator(60000, "London"), 1.0)
        self.assertEqual(agg.try_close(90000), [])

    def test_partially_late_event_folds_into_open_window(self):
        agg = summing_aggregator("SumPartial")
        agg.try_close(60000)

        # [0, 60000) is closed, [30000, 90000) is still open
        self.assertTrue(agg.accumulate(TimestampedEntry(45000, "London", 2.0)))
        self.assertEqual(agg.open_windows, [30000])
        self.assertEqual(agg.late_events, 0)

    def test_fold_into_closed_window_is_ignored(self):
        agg = summing_aggregator("SumClosedFold")
        agg.accumulate(TimestampedEntry(10000, "London", 1.0))
        self.assertEqual(len(agg.try_close(60000)), 2)

        self.assertFalse(agg.fold(0, "London", TimestampedEntry(10000, "London", 5.0)))
        self.assertTrue(agg.fold(30000, "London", TimestampedEntry(40000, "London", 2.0)))

        self.assertEqual(agg.open_windows, [30000])
        self.assertEqual([(e.timestamp, e.value) for e in agg.try_close(90000)], [(90000, 2.0)])

    def test_flush_closes_everything(self):
        agg = summing_aggregator("SumFlush")
        agg.accumulate(TimestampedEntry(10000, "London", 1.0))
        agg.accumulate(TimestampedEntry(100000, "London", 2.0))

        results = agg.flush()

        self.assertEqual([e.timestamp for e in results], [30000, 60000, 120000, 150000])
        self.assertEqual(agg.open_windows, [])
        self.assertEqual(agg.stats()["open_windows"], 0)

    def test_london_aircraft_classified_ascending(self):
        agg = direction_aggregator("DirectionLondon", allowed_lateness_ms=15000)
        tracker = WatermarkTracker(allowed_lateness_ms=15000)
        samples = [
            report(pos_time=0, alt=1000).with_airport("London"),
            report(pos_time=30000, alt=1500).with_airport("London"),
            report(pos_time=60000, alt=2000).with_airport("London"),
        ]

        early = []
        for sample in samples:
            agg.accumulate(sample)
            early.extend(agg.try_close(tracker.observe(sample.pos_time)))

        # Watermark 45000 closed [-30000, 30000), which only saw t=0
        self.assertEqual([(e.timestamp, e.key) for e in early], [(30000, 42)])
        self.assertEqual(early[0].value.vertical_direction, VerticalDirection.UNKNOWN)

        results = agg.try_close(75000)

        self.assertEqual(len(results), 1)
        entry = results[0]
        self.assertEqual(entry.timestamp, 60000)
        self.assertEqual(entry.key, 42)
        self.assertEqual(entry.value.vertical_direction, VerticalDirection.ASCENDING)
        self.assertEqual(entry.value.airport, "London")
        self.assertEqual(entry.value.pos_time, 30000)
        self.assertEqual(agg.open_windows, [30000, 60000])

    def test_stats_report_windows_and_late_events(self):
        agg = direction_aggregator("DirectionStats")
        agg.accumulate(report(pos_time=1000).with_airport("London"))

        stats = agg.stats()
        self.assertEqual(stats["name"], "DirectionStats")
        self.assertEqual(stats["open_windows"], 2)
        self.assertEqual(stats["late_events"], 0)
        self.assertEqual(stats["watermark"], float("-inf"))


if __name__ == "__main__":
    unittest.main()
