import random
import unittest

from flight_telemetry.processing.watermark import WatermarkTracker


class TestWatermarkTracker(unittest.TestCase):
    def test_trails_max_event_time_by_lateness(self):
        tracker = WatermarkTracker(allowed_lateness_ms=15000)

        self.assertEqual(tracker.current, float("-inf"))
        self.assertEqual(tracker.observe(60000), 45000)
        self.assertEqual(tracker.observe(90000), 75000)

    def test_out_of_order_event_does_not_move_watermark_back(self):
        tracker = WatermarkTracker(allowed_lateness_ms=15000)
        tracker.observe(90000)

        self.assertEqual(tracker.observe(10000), 75000)
        self.assertEqual(tracker.max_event_time, 90000)

    def test_monotonic_over_shuffled_input(self):
        rng = random.Random(7)
        tracker = WatermarkTracker(allowed_lateness_ms=5000)
        times = list(range(0, 200000, 1000))
        rng.shuffle(times)

        observed = [tracker.observe(t) for t in times]
        self.assertEqual(observed, sorted(observed))
        self.assertEqual(observed[-1], 199000 - 5000)

    def test_negative_lateness_rejected(self):
        with self.assertRaises(ValueError):
            WatermarkTracker(allowed_lateness_ms=-1)


if __name__ == "__main__":
    unittest.main()
