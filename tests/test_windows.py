import unittest
from flight_telemetry.processing.windows import SlidingWindow

class TestWindows(unittest.TestCase):
    def test_sliding_window(self):
        # Size=10s, Slide=5s
        window = SlidingWindow(size_ms=10000, slide_ms=5000)

        # TS = 12s
        # Should belong to:
        # [5, 15)  (started at 5)
        # [10, 20) (started at 10)
        # NOT [0, 10) (ends at 10)
        # NOT [15, 25) (start at 15)
        self.assertEqual(window.windows_for(12000), [5000, 10000])
        self.assertEqual(window.assign_windows(12000), [(5000, 15000), (10000, 20000)])

    def test_reference_configuration_gives_two_windows(self):
        window = SlidingWindow(size_ms=60000, slide_ms=30000)

        self.assertEqual(window.windows_for(45000), [0, 30000])
        # Window boundaries are inclusive at the start, exclusive at the end
        self.assertEqual(window.windows_for(60000), [30000, 60000])
        self.assertEqual(window.windows_for(0), [-30000, 0])
        self.assertEqual(window.end_of(30000), 90000)

    def test_uneven_slide_gives_ceil_windows(self):
        # ceil(50 / 20) = 3 candidate windows
        window = SlidingWindow(size_ms=50000, slide_ms=20000)

        starts = window.windows_for(41000)
        self.assertEqual(starts, [0, 20000, 40000])
        for start in starts:
            self.assertTrue(start <= 41000 < start + 50000)
            self.assertEqual(start % 20000, 0)

    def test_tumbling_when_slide_equals_size(self):
        window = SlidingWindow(size_ms=10000, slide_ms=10000)

        self.assertEqual(window.windows_for(12500), [10000])
        self.assertEqual(window.windows_for(9999), [0])

    def test_invalid_definitions(self):
        with self.assertRaises(ValueError):
            SlidingWindow(size_ms=0, slide_ms=1000)
        with self.assertRaises(ValueError):
            SlidingWindow(size_ms=1000, slide_ms=2000)

if __name__ == '__main__':
    unittest.main()
