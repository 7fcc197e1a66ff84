from typing import List, Tuple


class SlidingWindow:
    """
    Fixed-size, overlapping event-time windows.

    Windows are aligned to multiples of ``slide_ms`` and identified by their
    start timestamp; a window covers ``[start, start + size_ms)``.
    """
    def __init__(self, size_ms: int, slide_ms: int):
        if size_ms <= 0 or slide_ms <= 0:
            raise ValueError("Window size and slide must be positive")
        if slide_ms > size_ms:
            raise ValueError("Slide must not exceed the window size")
        self.size_ms = size_ms
        self.slide_ms = slide_ms

    def windows_for(self, timestamp: int) -> List[int]:
        """
        Returns the start of every window containing ``timestamp``, oldest first.
        """
        last_start = timestamp - (timestamp % self.slide_ms)
        starts = []
        # Backtrack to find all windows that overlap this timestamp
        current_start = last_start
        while current_start + self.size_ms > timestamp:
            starts.append(current_start)
            current_start -= self.slide_ms
        starts.reverse()
        return starts

    def end_of(self, start: int) -> int:
        return start + self.size_ms

    def assign_windows(self, timestamp: int) -> List[Tuple[int, int]]:
        """Returns ``(start, end)`` pairs for every window containing ``timestamp``."""
        return [(start, self.end_of(start)) for start in self.windows_for(timestamp)]

    def __repr__(self) -> str:
        return f"SlidingWindow(size_ms={self.size_ms}, slide_ms={self.slide_ms})"


def sliding(size_ms: int, slide_ms: int) -> SlidingWindow:
    return SlidingWindow(size_ms, slide_ms)
