"""
Filter clauses that select which series appear on a chart.

A clause is a comma-separated list of '<name><op><value>' terms, for example
'progressive==true, readers>0'. Each valid term becomes one predicate; the
predicates are kept sorted by parameter name so evaluation and display order do
not depend on how the clause was written.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .parameters import BoolValue, IntValue, ParameterValue, parse_bool, parse_uint

logger = logging.getLogger(__name__)


class FilterContractError(ValueError):
    """Raised when a boolean filter term uses an operator other than '=='."""


class Comparison(Enum):
    LESS = "<"
    LESS_EQUAL = "<="
    EQUAL = "=="
    GREATER_EQUAL = ">="
    GREATER = ">"

    @property
    def text(self) -> str:
        return self.value

    def evaluate(self, left: int, right: int) -> bool:
        if self is Comparison.LESS:
            return left < right
        if self is Comparison.LESS_EQUAL:
            return left <= right
        if self is Comparison.EQUAL:
            return left == right
        if self is Comparison.GREATER_EQUAL:
            return left >= right
        return left > right


# Order in which operators are matched against term text. '<=' and '>=' contain
# '<' and '>', so the two-character forms must be tried first.
COMPARISON_PRECEDENCE: tuple[Comparison, ...] = (
    Comparison.EQUAL,
    Comparison.LESS_EQUAL,
    Comparison.GREATER_EQUAL,
    Comparison.LESS,
    Comparison.GREATER,
)


@dataclass(frozen=True)
class BoolFilter:
    """Equality test against a boolean parameter."""

    name: str
    value: bool

    comparison = Comparison.EQUAL

    def matches(self, parameter: ParameterValue) -> bool:
        if isinstance(parameter, BoolValue):
            return parameter.value == self.value
        return True

    def display_text(self) -> str:
        return f"{self.name}{self.comparison.text}{'true' if self.value else 'false'}"


@dataclass(frozen=True)
class IntFilter:
    """Ordered comparison 'parameter <op> value' against an integer parameter."""

    name: str
    comparison: Comparison
    value: int

    def matches(self, parameter: ParameterValue) -> bool:
        if isinstance(parameter, IntValue):
            return self.comparison.evaluate(parameter.value, self.value)
        return True

    def display_text(self) -> str:
        return f"{self.name}{self.comparison.text}{self.value}"


ParameterFilter = Union[BoolFilter, IntFilter]


def split_term(term: str) -> Optional[tuple[str, Comparison, str]]:
    """
    Split one term on the first operator found in precedence order.

    Returns (name, comparison, value_text) with whitespace trimmed, or None when
    the term contains no operator.
    """
    for comparison in COMPARISON_PRECEDENCE:
        pos = term.find(comparison.text)
        if pos >= 0:
            name = term[:pos].strip()
            value_text = term[pos + len(comparison.text):].strip()
            return name, comparison, value_text
    return None


def parse_term(term: str) -> Optional[ParameterFilter]:
    """
    Build a predicate from one term.

    Terms without an operator, or whose value is neither a boolean nor an
    unsigned integer literal, yield None.

    Raises:
        FilterContractError: boolean value combined with a non-equality operator.
    """
    parts = split_term(term)
    if parts is None:
        return None
    name, comparison, value_text = parts

    as_bool = parse_bool(value_text)
    if as_bool is not None:
        if comparison is not Comparison.EQUAL:
            raise FilterContractError(
                f"Boolean filter '{term.strip()}' must use '==', got '{comparison.text}'"
            )
        return BoolFilter(name, as_bool)

    as_int = parse_uint(value_text)
    if as_int is not None:
        return IntFilter(name, comparison, as_int)

    return None


class ParameterFilterSet:
    """Ordered set of parameter predicates parsed from a filter clause."""

    def __init__(self, filter_text: str = "") -> None:
        filters: list[ParameterFilter] = []
        for term in filter_text.split(","):
            if not term.strip():
                continue
            parsed = parse_term(term)
            if parsed is None:
                logger.debug("Dropping unparseable filter term: %r", term.strip())
                continue
            filters.append(parsed)
        filters.sort(key=lambda f: f.name)
        self._filters: tuple[ParameterFilter, ...] = tuple(filters)

    @property
    def filters(self) -> tuple[ParameterFilter, ...]:
        return self._filters

    def __len__(self) -> int:
        return len(self._filters)

    def __bool__(self) -> bool:
        return bool(self._filters)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterFilterSet):
            return self._filters == other._filters
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._filters)

    def __repr__(self) -> str:
        return f"ParameterFilterSet({self.display_text()!r})"

    def passes_filters(self, parameters: Mapping[str, ParameterValue]) -> bool:
        # Absent parameters and kind mismatches do not reject a series.
        for predicate in self._filters:
            parameter = parameters.get(predicate.name)
            if parameter is None:
                continue
            if not predicate.matches(parameter):
                return False
        return True

    def display_text(self) -> str:
        return ", ".join(f.display_text() for f in self._filters)
