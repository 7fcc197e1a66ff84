class WatermarkTracker:
    """
    Bounded-out-of-orderness watermark.

    The watermark is the highest event time observed so far minus
    ``allowed_lateness_ms``. It never moves backwards: an event older than
    the current maximum leaves it unchanged.
    """

    def __init__(self, allowed_lateness_ms: int):
        if allowed_lateness_ms < 0:
            raise ValueError("allowed_lateness_ms must be >= 0")
        self.allowed_lateness_ms = allowed_lateness_ms
        self.max_event_time: float = float("-inf")

    @property
    def current(self) -> float:
        return self.max_event_time - self.allowed_lateness_ms

    def observe(self, event_time: int) -> float:
        if event_time > self.max_event_time:
            self.max_event_time = event_time
        return self.current
