import math

import pytest
from hypothesis import given, strategies as st

from shard.errors import InvalidCastError
from shard.evaluation import runtime


@pytest.mark.parametrize(
    "target,value,expected",
    [
        (int, 2.9, 2),
        (int, -2.9, -2),
        (int, "A", 65),
        (float, 3, 3.0),
        (str, "s", "s"),
        (object, [1], [1]),
        (str, None, None),
        (list, [1, 2], [1, 2]),
    ],
)
def test_cast(target, value, expected):
    assert runtime.cast(target, value) == expected


@pytest.mark.parametrize("target,value", [(int, None), (int, "AB"), (str, 1), (dict, [])])
def test_invalid_cast(target, value):
    with pytest.raises(InvalidCastError):
        runtime.cast(target, value)


def test_invalid_cast_is_a_type_error():
    with pytest.raises(TypeError, match="Unable to cast object of type 'str' to type 'int'"):
        runtime.cast(int, "no")


def test_as_type_and_chars():
    assert runtime.as_type("x", str) == "x"
    assert runtime.as_type(1, str) is None
    assert runtime.to_char(97) == "a"
    with pytest.raises(InvalidCastError):
        runtime.to_char(True)


@pytest.mark.parametrize(
    "a,b,quotient,remainder",
    [(7, 2, 3, 1), (-7, 2, -3, -1), (7, -2, -3, 1), (-7, -2, 3, -1)],
)
def test_integer_division_truncates(a, b, quotient, remainder):
    assert runtime.div(a, b) == quotient
    assert runtime.mod(a, b) == remainder


@given(st.integers(), st.integers().filter(lambda n: n != 0))
def test_division_identity(a, b):
    assert runtime.div(a, b) * b + runtime.mod(a, b) == a
    assert abs(runtime.mod(a, b)) < abs(b)


def test_division_by_zero():
    with pytest.raises(ZeroDivisionError):
        runtime.div(1, 0)
    assert runtime.div(1.0, 0) == math.inf
    assert runtime.div(-1.0, 0) == -math.inf
    assert math.isnan(runtime.div(0.0, 0))
    assert math.isnan(runtime.mod(1.0, 0))


def test_string_concatenation():
    assert runtime.add("n=", 3) == "n=3"
    assert runtime.add(None, "x") == "x"
    assert runtime.add(1, 2) == 3
    assert runtime.add([1], [2]) == [1, 2]


def test_coalesce_is_lazy():
    def fail():
        raise AssertionError("fallback evaluated")

    assert runtime.coalesce(0, fail) == 0
    assert runtime.coalesce(None, lambda: "x") == "x"


def test_assignments_and_increments_yield_values():
    class Box:
        n = 1

    box = Box()
    assert runtime.set_attr(box, "n", 5) == 5
    assert runtime.incr_attr(box, "n", 1, True) == 5
    assert runtime.incr_attr(box, "n", 1, False) == 7
    items = {"k": 0}
    assert runtime.set_item(items, "k", 2) == 2
    assert runtime.incr_item(items, "k", -1, True) == 2
    assert items["k"] == 1


def test_new_array():
    assert runtime.new_array(0, 3) == [0, 0, 0]
    assert runtime.new_array(0, 2, int).element_type is int
    assert runtime.array(str, ["a"]) == ["a"]
    assert runtime.array(None, []).element_type is None
    with pytest.raises(ValueError):
        runtime.new_array(None, -1)
