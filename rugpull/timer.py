"""Round timer and day counter."""

import math
import time


class RoundTimer:
    """Elapsed/remaining time for one round, read from an injected clock."""

    def __init__(self, clock=time.monotonic):
        self.clock = clock
        self.reset()

    def start(self, duration: float):
        self.duration = duration
        self.start_time = self.clock()
        self.paused_at = 0.0
        self.is_active = True
        self.is_paused = False

    def reset(self):
        self.duration = 0.0
        self.start_time = 0.0
        self.paused_at = 0.0
        self.is_active = False
        self.is_paused = False

    def stop(self):
        self.is_active = False

    def elapsed_time(self) -> float:
        if not self.is_active:
            return 0.0
        if self.is_paused:
            return min(self.paused_at - self.start_time, self.duration)
        return min(self.clock() - self.start_time, self.duration)

    def remaining_time(self) -> float:
        return max(0.0, self.duration - self.elapsed_time())

    def current_day(self) -> int:
        # display only
        return math.floor(self.elapsed_time()) + 1

    def is_over(self) -> bool:
        if not self.is_active:
            return False
        return self.elapsed_time() >= self.duration

    def progress(self) -> float:
        """Percent of the round elapsed, 0-100."""
        if not self.is_active or self.duration == 0:
            return 0.0
        return min(100.0, self.elapsed_time() / self.duration * 100)

    def pause(self):
        if not self.is_active or self.is_paused:
            return
        self.is_paused = True
        self.paused_at = self.clock()

    def resume(self):
        if not self.is_paused:
            return
        self.start_time += self.clock() - self.paused_at
        self.is_paused = False
