"""Rolling averages over the 1-second samples.

Samples are summed per sensor on every sampling tick. Once ``average_period``
ticks have been accumulated the sums are flushed into a fixed-length history
(one point per sensor) and cleared.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from itertools import islice

from thermdash.config import ConfigError


class AggregationEngine:
    """Per-sensor running sums plus fixed-window average history."""

    def __init__(self, sensor_count: int, average_period: int, history_length: int) -> None:
        if average_period < 1:
            raise ConfigError(f"average period must be positive, got {average_period}")
        if history_length < 1:
            raise ConfigError(f"history length must be positive, got {history_length}")
        self.sensor_count = sensor_count
        self.average_period = average_period
        self.history_length = history_length
        self.rotate = 0
        # Number of history points that hold a real average, capped at H
        self.filled = 0
        self._sums: list[float] = [0.0] * sensor_count
        self._history: list[deque[float]] = [
            deque([0.0] * history_length, maxlen=history_length)
            for _ in range(sensor_count)
        ]

    @property
    def sums(self) -> tuple[float, ...]:
        return tuple(self._sums)

    def accumulate(self, samples: Sequence[int]) -> bool:
        """Add one tick of samples. Returns True when a flush is due."""
        if len(samples) != self.sensor_count:
            raise ValueError(
                f"expected {self.sensor_count} samples, got {len(samples)}"
            )
        for i, value in enumerate(samples):
            self._sums[i] += value
        self.rotate += 1
        if self.rotate == self.average_period:
            self.rotate = 0
            return True
        return False

    def flush(self) -> tuple[float, ...]:
        """Append one average per sensor to history and clear the sums."""
        points = tuple(s / self.average_period for s in self._sums)
        for series, point in zip(self._history, points):
            series.append(point)
        self._sums = [0.0] * self.sensor_count
        self.filled = min(self.filled + 1, self.history_length)
        return points

    def history(self, index: int) -> tuple[float, ...]:
        return tuple(self._history[index])

    def window(self, index: int, offset: int) -> list[float]:
        """History points of one sensor from *offset* to the newest."""
        offset = max(0, min(offset, self.history_length - 1))
        return list(islice(self._history[index], offset, None))
