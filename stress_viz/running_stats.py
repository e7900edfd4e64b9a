"""
Single-pass statistics for one measurement channel.

RunningStatistics implements Welford's recurrence so mean and variance are
available in O(1) per sample without keeping the sample history.
"""

import math


class RunningStatistics:
    """Welford online mean / unbiased sample variance."""

    __slots__ = ("count", "_mean", "_accum")

    def __init__(self) -> None:
        self.count: int = 0
        self._mean: float = 0.0
        self._accum: float = 0.0

    def add_sample(self, sample: float) -> None:
        self.count += 1
        if self.count == 1:
            self._mean = sample
            self._accum = 0.0
            return
        old_mean = self._mean
        self._mean = old_mean + (sample - old_mean) / self.count
        self._accum = self._accum + (sample - old_mean) * (sample - self._mean)

    def mean(self) -> float:
        if self.count > 0:
            return self._mean
        return 0.0

    def variance(self) -> float:
        if self.count > 1:
            return self._accum / (self.count - 1)
        return 0.0

    def std(self) -> float:
        variance = self.variance()
        # IEEE sqrt of a negative is nan
        if variance < 0:
            return math.nan
        return math.sqrt(variance)

    def __repr__(self) -> str:
        return (
            f"RunningStatistics(count={self.count}, mean={self.mean()!r}, "
            f"variance={self.variance()!r})"
        )


class SampleSet:
    """
    Min / max / running statistics of one channel at one x-key.

    range_start and range_end form a +/- 2 sigma display band around the mean.
    They are not clamped, so the band may extend past the observed min or max.
    """

    __slots__ = ("value_min", "value_max", "statistics")

    def __init__(self) -> None:
        self.value_min: float = 0.0
        self.value_max: float = 0.0
        self.statistics = RunningStatistics()

    @property
    def count(self) -> int:
        return self.statistics.count

    def add_sample(self, sample: float) -> None:
        # NaN never wins a comparison, so it only survives while every sample is NaN
        if self.statistics.count == 0 or math.isnan(self.value_min) or sample < self.value_min:
            self.value_min = sample
        if self.statistics.count == 0 or math.isnan(self.value_max) or sample > self.value_max:
            self.value_max = sample
        self.statistics.add_sample(sample)

    def mean(self) -> float:
        return self.statistics.mean()

    def variance(self) -> float:
        return self.statistics.variance()

    def _half_range(self) -> float:
        return self.statistics.std() * 2.0

    def range_start(self) -> float:
        return self.statistics.mean() - self._half_range()

    def range_end(self) -> float:
        return self.statistics.mean() + self._half_range()
