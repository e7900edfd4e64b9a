"""
Run parameters attached to every stress-test sample.

A parameter value is either a boolean flag or an unsigned integer. Parameter sets
iterate in lexicographic key order so that series names and filter evaluation are
reproducible from run to run.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Optional, Union

UINT_MAX = 2**64 - 1

_UINT_PATTERN = re.compile(r"\+?[0-9]+")


@dataclass(frozen=True)
class BoolValue:
    value: bool

    def __post_init__(self) -> None:
        if not isinstance(self.value, bool):
            raise TypeError(f"BoolValue requires a bool, got {self.value!r}")

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class IntValue:
    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"IntValue requires an int, got {self.value!r}")
        if self.value < 0 or self.value > UINT_MAX:
            raise ValueError(f"IntValue must be an unsigned 64-bit value, got {self.value}")

    def __str__(self) -> str:
        return str(self.value)


ParameterValue = Union[BoolValue, IntValue]


def parse_bool(text: str) -> Optional[bool]:
    """Return the boolean for the literals 'true'/'false', else None."""
    if text == "true":
        return True
    if text == "false":
        return False
    return None


def parse_uint(text: str) -> Optional[int]:
    """Return the unsigned integer for a '[+]digits' literal fitting 64 bits, else None."""
    if not _UINT_PATTERN.fullmatch(text):
        return None
    value = int(text)
    if value > UINT_MAX:
        return None
    return value


def to_parameter_value(value: Union[ParameterValue, bool, int]) -> ParameterValue:
    # bool before int: bool is an int subclass
    if isinstance(value, (BoolValue, IntValue)):
        return value
    if isinstance(value, bool):
        return BoolValue(value)
    if isinstance(value, int):
        return IntValue(value)
    raise TypeError(f"Unsupported parameter value: {value!r}")


class ParameterSet(Mapping):
    """
    Read-only mapping of parameter name -> ParameterValue, iterated in key order.

    Plain bool/int values are wrapped into BoolValue/IntValue on construction.
    """

    __slots__ = ("_items",)

    def __init__(
        self,
        values: Union[
            Mapping[str, Union[ParameterValue, bool, int]],
            Iterable[tuple[str, Union[ParameterValue, bool, int]]],
            None,
        ] = None,
    ) -> None:
        pairs = values.items() if isinstance(values, Mapping) else (values or ())
        items: dict[str, ParameterValue] = {}
        for name, value in pairs:
            if not isinstance(name, str):
                raise TypeError(f"Parameter names must be strings, got {name!r}")
            items[name] = to_parameter_value(value)
        self._items = dict(sorted(items.items()))

    def __getitem__(self, name: str) -> ParameterValue:
        return self._items[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterSet):
            return self._items == other._items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._items.items()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v}" for k, v in self._items.items())
        return f"ParameterSet({inner})"


def render_parameter(name: str, value: ParameterValue) -> Optional[str]:
    """
    Render one parameter as a name token.

    True flags render as the bare name, false flags render nothing and integers
    render as name=value.
    """
    if isinstance(value, BoolValue):
        return name if value.value else None
    return f"{name}={value.value}"


def series_name(
    base_name: str,
    parameters: Mapping[str, ParameterValue],
    include: Optional[Iterable[str]] = None,
) -> str:
    """
    Canonical series name: 'base (tok tok ...)', or just 'base' when nothing renders.

    When include is given, only those parameter names contribute tokens.
    """
    allowed = None if include is None else set(include)
    tokens = []
    for name in sorted(parameters):
        if allowed is not None and name not in allowed:
            continue
        token = render_parameter(name, parameters[name])
        if token is not None:
            tokens.append(token)
    if not tokens:
        return base_name
    return f"{base_name} ({' '.join(tokens)})"
