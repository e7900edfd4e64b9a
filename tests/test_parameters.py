import pytest

from stress_viz.parameters import (
    UINT_MAX,
    BoolValue,
    IntValue,
    ParameterSet,
    parse_bool,
    parse_uint,
    series_name,
)


def test_parameter_set_iterates_in_key_order():
    params = ParameterSet({"uniform": True, "archive": False, "readers": 4})
    assert list(params) == ["archive", "readers", "uniform"]
    assert params["readers"] == IntValue(4)
    assert params["archive"] == BoolValue(False)


def test_bool_is_not_wrapped_as_int():
    params = ParameterSet({"flag": True, "count": 1})
    assert isinstance(params["flag"], BoolValue)
    assert isinstance(params["count"], IntValue)
    assert params["flag"] != params["count"]


def test_parameter_set_equality_ignores_input_order():
    a = ParameterSet({"b": 1, "a": True})
    b = ParameterSet([("a", True), ("b", 1)])
    assert a == b
    assert hash(a) == hash(b)


def test_values_reject_bad_input():
    with pytest.raises(ValueError):
        IntValue(-1)
    with pytest.raises(ValueError):
        IntValue(UINT_MAX + 1)
    with pytest.raises(TypeError):
        IntValue(True)
    with pytest.raises(TypeError):
        BoolValue(1)
    with pytest.raises(TypeError):
        ParameterSet({"x": 1.5})


def test_literal_parsing():
    assert parse_bool("true") is True
    assert parse_bool("false") is False
    assert parse_bool("True") is None
    assert parse_bool("1") is None

    assert parse_uint("0") == 0
    assert parse_uint("+12") == 12
    assert parse_uint("-1") is None
    assert parse_uint("1.5") is None
    assert parse_uint("1_000") is None
    assert parse_uint(str(UINT_MAX)) == UINT_MAX
    assert parse_uint(str(UINT_MAX + 1)) is None


def test_series_name_renders_flags_and_integers():
    params = ParameterSet({"progressive": True, "archive": False, "readers": 2})
    assert series_name("Store", params) == "Store (progressive readers=2)"


def test_series_name_without_tokens_is_base_name():
    assert series_name("Store", ParameterSet({"archive": False})) == "Store"
    assert series_name("Store", ParameterSet()) == "Store"


def test_series_name_restricted_to_included_names():
    params = ParameterSet({"progressive": True, "readers": 2, "writers": 1})
    assert series_name("Store", params, include={"writers"}) == "Store (writers=1)"
    assert series_name("Store", params, include=set()) == "Store"
