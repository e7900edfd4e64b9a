import math
import random

import numpy as np
import pytest

from stress_viz.running_stats import RunningStatistics, SampleSet


def _feed(values):
    stats = RunningStatistics()
    for v in values:
        stats.add_sample(v)
    return stats


def test_empty_statistics_are_zero():
    stats = RunningStatistics()
    assert stats.count == 0
    assert stats.mean() == 0.0
    assert stats.variance() == 0.0


def test_single_sample_has_zero_variance():
    stats = _feed([4.25])
    assert stats.mean() == 4.25
    assert stats.variance() == 0.0
    assert stats.std() == 0.0


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_mean_and_variance_match_naive_formulas(seed):
    rng = random.Random(seed)
    values = [rng.uniform(-1000.0, 1000.0) for _ in range(rng.randint(2, 200))]

    stats = _feed(values)

    naive_mean = sum(values) / len(values)
    naive_var = sum((v - naive_mean) ** 2 for v in values) / (len(values) - 1)
    assert stats.mean() == pytest.approx(naive_mean, rel=1e-9, abs=1e-9)
    assert stats.variance() == pytest.approx(naive_var, rel=1e-9)
    # numpy reference (ddof=1 -> unbiased sample variance)
    assert stats.variance() == pytest.approx(np.var(values, ddof=1), rel=1e-9)


def test_large_offset_stays_numerically_stable():
    # Classic catastrophic-cancellation case for sum-of-squares variance
    values = [1e9 + 4, 1e9 + 7, 1e9 + 13, 1e9 + 16]
    stats = _feed(values)
    assert stats.mean() == pytest.approx(1e9 + 10)
    assert stats.variance() == pytest.approx(30.0)


def test_nan_propagates():
    stats = _feed([1.0, float("nan"), 3.0])
    assert math.isnan(stats.mean())
    assert math.isnan(stats.variance())


def test_sample_set_tracks_min_max_and_band():
    s = SampleSet()
    for v in [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]:
        s.add_sample(v)

    assert s.count == 8
    assert s.value_min == 2.0
    assert s.value_max == 9.0
    assert s.mean() == pytest.approx(5.0)
    std = math.sqrt(s.variance())
    assert s.range_start() == pytest.approx(5.0 - 2 * std)
    assert s.range_end() == pytest.approx(5.0 + 2 * std)


def test_sample_set_band_is_not_clamped_to_observed_range():
    s = SampleSet()
    s.add_sample(0.0)
    s.add_sample(10.0)
    # mean 5, std ~7.07 -> band exceeds [0, 10] on both sides
    assert s.range_start() < s.value_min
    assert s.range_end() > s.value_max


def test_sample_set_first_negative_sample_sets_both_bounds():
    s = SampleSet()
    s.add_sample(-3.0)
    assert s.value_min == -3.0
    assert s.value_max == -3.0


@pytest.mark.parametrize(
    "values",
    [
        [float("nan"), 1.0, 5.0],
        [1.0, float("nan"), 5.0],
        [1.0, 5.0, float("nan")],
        [5.0, float("nan"), 1.0],
    ],
)
def test_sample_set_min_max_ignore_nan_in_any_position(values):
    s = SampleSet()
    for v in values:
        s.add_sample(v)
    assert s.value_min == 1.0
    assert s.value_max == 5.0
    assert math.isnan(s.mean())


def test_sample_set_all_nan_keeps_nan_bounds():
    s = SampleSet()
    s.add_sample(float("nan"))
    s.add_sample(float("nan"))
    assert math.isnan(s.value_min)
    assert math.isnan(s.value_max)


def test_overflowed_variance_gives_nan_band_instead_of_raising():
    s = SampleSet()
    s.add_sample(1e308)
    s.add_sample(-1e308)
    assert s.variance() < 0 or math.isnan(s.variance())
    assert math.isnan(s.statistics.std())
    assert math.isnan(s.range_start())
    assert math.isnan(s.range_end())
