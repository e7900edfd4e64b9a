"""
Legend labels for the series shown on one chart.

Only parameters that vary among the visible series are worth showing. A parameter
is discriminating when it is not constant across all of them; a parameter present
in one series and missing from another counts as varying.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Optional

from .filters import ParameterFilterSet
from .parameters import series_name

if TYPE_CHECKING:
    from .registry import DataSet

_MISSING = object()


def discriminating_parameters(datasets: Iterable["DataSet"]) -> frozenset[str]:
    """Names of the parameters not constant across all of the given series."""
    parameter_sets = [dataset.parameters for dataset in datasets]
    if len(parameter_sets) < 2:
        return frozenset()

    names: set[str] = set()
    for parameters in parameter_sets:
        names.update(parameters)

    varying = set()
    for name in names:
        seen = {parameters.get(name, _MISSING) for parameters in parameter_sets}
        if len(seen) > 1:
            varying.add(name)
    return frozenset(varying)


def display_name(dataset: "DataSet", discriminating: Iterable[str]) -> str:
    return series_name(dataset.base_name, dataset.parameters, include=discriminating)


def chart_title(title: str, filter_set: Optional[ParameterFilterSet] = None) -> str:
    if filter_set:
        return f"{title} ({filter_set.display_text()})"
    return title
