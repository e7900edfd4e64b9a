"""
Series registry: groups samples into named series keyed by base name and full
parameter set.

Each series keeps its per-x-key ValueSets in ascending x-key order and tracks
running maxima per measurement channel; the registry tracks the same maxima
across all series for shared axis scaling. Everything is append-only within one
ingestion pass.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Optional, Union

import pandas as pd

from .filters import ParameterFilterSet
from .parameters import BoolValue, ParameterSet, ParameterValue, series_name
from .running_stats import SampleSet

logger = logging.getLogger(__name__)

# Measurement channels produced from one telemetry row, in column order.
MEASUREMENT_CHANNELS: tuple[str, ...] = (
    "commit_time",
    "commits_per_second",
    "queries_per_second",
)

SUMMARY_COLUMNS = [
    "series",
    "x_key",
    "channel",
    "count",
    "mean",
    "variance",
    "min",
    "max",
    "range_start",
    "range_end",
]


@dataclass(frozen=True)
class Sample:
    """One ingested row."""

    base_name: str
    parameters: ParameterSet
    x_key: int
    measurements: tuple[float, ...]


class ValueSet:
    """All channel SampleSets for one series at one x-key."""

    __slots__ = ("x_key", "channels", "sample_sets")

    def __init__(self, x_key: int, channels: Sequence[str]) -> None:
        self.x_key = x_key
        self.channels = tuple(channels)
        self.sample_sets: tuple[SampleSet, ...] = tuple(SampleSet() for _ in self.channels)

    def add_sample(self, measurements: Sequence[float]) -> None:
        for sample_set, value in zip(self.sample_sets, measurements):
            sample_set.add_sample(value)

    def channel(self, channel: Union[str, int]) -> SampleSet:
        if isinstance(channel, int):
            return self.sample_sets[channel]
        return self.sample_sets[self.channels.index(channel)]


class DataSet:
    """
    One series: a base name plus its full parameter set.

    sorted_values is kept in ascending x-key order by ordered insertion, so it never
    needs re-sorting.
    """

    def __init__(
        self, base_name: str, parameters: ParameterSet, channels: Sequence[str]
    ) -> None:
        self.base_name = base_name
        self.parameters = parameters
        self.channels = tuple(channels)
        self.sorted_values: list[ValueSet] = []
        self.max_x_key: int = 0
        self.max_values: list[float] = [0.0] * len(self.channels)

    @property
    def key(self) -> tuple[str, ParameterSet]:
        return (self.base_name, self.parameters)

    @property
    def name(self) -> str:
        return series_name(self.base_name, self.parameters)

    def sort_key(self) -> tuple:
        """Total order: canonical name first, then base name and typed values for ties."""
        values = tuple(
            (name, isinstance(value, BoolValue), int(value.value))
            for name, value in self.parameters.items()
        )
        return (self.name, self.base_name, values)

    def channel_max(self, channel: Union[str, int]) -> float:
        if isinstance(channel, int):
            return self.max_values[channel]
        return self.max_values[self.channels.index(channel)]

    def value_at(self, x_key: int) -> Optional[ValueSet]:
        idx = bisect.bisect_left(self.sorted_values, x_key, key=lambda v: v.x_key)
        if idx < len(self.sorted_values) and self.sorted_values[idx].x_key == x_key:
            return self.sorted_values[idx]
        return None

    def add_sample(self, x_key: int, measurements: Sequence[float]) -> None:
        self.max_x_key = max(self.max_x_key, x_key)
        for i, value in enumerate(measurements):
            self.max_values[i] = max(self.max_values[i], value)

        idx = bisect.bisect_left(self.sorted_values, x_key, key=lambda v: v.x_key)
        if idx < len(self.sorted_values) and self.sorted_values[idx].x_key == x_key:
            value_set = self.sorted_values[idx]
        else:
            value_set = ValueSet(x_key, self.channels)
            self.sorted_values.insert(idx, value_set)
        value_set.add_sample(measurements)


class StressTestData:
    """
    Registry of series keyed by (base name, parameter set), plus global maxima.

    Two samples share a series iff the base name and every parameter value match.
    Lookup by canonical name is also supported; when distinct series render the same
    name, the first one in iteration order is returned.
    """

    def __init__(self, channels: Sequence[str] = MEASUREMENT_CHANNELS) -> None:
        if not channels:
            raise ValueError("At least one measurement channel is required")
        self.channels: tuple[str, ...] = tuple(channels)
        self._datasets: dict[tuple[str, ParameterSet], DataSet] = {}
        self.max_x_key: int = 0
        self.max_values: list[float] = [0.0] * len(self.channels)

    def __len__(self) -> int:
        return len(self._datasets)

    def _lookup(self, key: Union[str, tuple[str, ParameterSet]]) -> Optional[DataSet]:
        if isinstance(key, tuple):
            return self._datasets.get(key)
        for name, dataset in self.datasets():
            if name == key:
                return dataset
        return None

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (str, tuple)):
            return False
        return self._lookup(key) is not None

    def __getitem__(self, key: Union[str, tuple[str, ParameterSet]]) -> DataSet:
        dataset = self._lookup(key)
        if dataset is None:
            raise KeyError(key)
        return dataset

    def __iter__(self) -> Iterator[DataSet]:
        for _, dataset in self.datasets():
            yield dataset

    def datasets(self) -> list[tuple[str, DataSet]]:
        """(name, DataSet) pairs in ascending name order."""
        ordered = sorted(self._datasets.values(), key=DataSet.sort_key)
        return [(dataset.name, dataset) for dataset in ordered]

    def passing(self, filter_set: ParameterFilterSet) -> list[tuple[str, DataSet]]:
        return [
            (name, dataset)
            for name, dataset in self.datasets()
            if filter_set.passes_filters(dataset.parameters)
        ]

    def channel_max(self, channel: Union[str, int]) -> float:
        if isinstance(channel, int):
            return self.max_values[channel]
        return self.max_values[self.channels.index(channel)]

    def add_sample(
        self,
        base_name: str,
        parameters: Union[ParameterSet, Mapping[str, Union[ParameterValue, bool, int]]],
        x_key: int,
        *measurements: float,
    ) -> DataSet:
        """
        Add one sample and return the series it landed in.

        The series is created on first sight of its (base name, parameter set); later
        samples with the same identity update it in place.
        """
        if isinstance(x_key, bool) or not isinstance(x_key, int) or x_key < 0:
            raise ValueError(f"x_key must be a non-negative integer, got {x_key!r}")
        if len(measurements) != len(self.channels):
            raise ValueError(
                f"Expected {len(self.channels)} measurements {self.channels}, "
                f"got {len(measurements)}"
            )
        if not isinstance(parameters, ParameterSet):
            parameters = ParameterSet(parameters)

        self.max_x_key = max(self.max_x_key, x_key)
        for i, value in enumerate(measurements):
            self.max_values[i] = max(self.max_values[i], value)

        key = (base_name, parameters)
        dataset = self._datasets.get(key)
        if dataset is None:
            dataset = DataSet(base_name, parameters, self.channels)
            self._datasets[key] = dataset
            logger.debug("New series: %s", dataset.name)
        dataset.add_sample(x_key, measurements)
        return dataset

    def add(self, sample: Sample) -> DataSet:
        return self.add_sample(
            sample.base_name, sample.parameters, sample.x_key, *sample.measurements
        )

    def summary_frame(self) -> pd.DataFrame:
        """One row per (series, x_key, channel) with the accumulated statistics."""
        rows = []
        for name, dataset in self.datasets():
            for value_set in dataset.sorted_values:
                for channel, sample_set in zip(self.channels, value_set.sample_sets):
                    rows.append(
                        {
                            "series": name,
                            "x_key": value_set.x_key,
                            "channel": channel,
                            "count": sample_set.count,
                            "mean": sample_set.mean(),
                            "variance": sample_set.variance(),
                            "min": sample_set.value_min,
                            "max": sample_set.value_max,
                            "range_start": sample_set.range_start(),
                            "range_end": sample_set.range_end(),
                        }
                    )
        return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
