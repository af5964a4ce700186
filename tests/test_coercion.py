"""类型转换测试."""

import math

import pytest

from engine.coercion import (
    convert_value,
    loose_greater,
    loose_less,
    strict_equals,
    text_contains,
    to_text,
)


class TestConvertValue:
    '''覆盖布尔、数字、字符串三种转换结果.'''

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("true", True),
            ("false", False),
            (True, True),
            (False, False),
        ],
    )
    def test_boolean_literals(self, raw, expected):
        assert convert_value(raw) is expected

    @pytest.mark.parametrize("raw", ["True", "FALSE", " true"])
    def test_only_exact_lowercase_literals_become_booleans(self, raw):
        result = convert_value(raw)
        assert isinstance(result, str)
        assert result == raw.lower()

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("10", 10.0),
            (10, 10.0),
            ("2.5", 2.5),
            (" 7 ", 7.0),
            ("-3", -3.0),
            ("1e3", 1000.0),
            ("+4", 4.0),
            (".5", 0.5),
        ],
    )
    def test_numbers(self, raw, expected):
        result = convert_value(raw)
        assert isinstance(result, float)
        assert result == expected

    @pytest.mark.parametrize("raw", ["inf", "NaN", "1_000", "", "   ", "10abc", "1e400"])
    def test_non_finite_or_malformed_numbers_stay_strings(self, raw):
        assert isinstance(convert_value(raw), str)

    @pytest.mark.parametrize("raw", ["0x10", "0b1", "\u0663", "\uff15"])
    def test_only_ascii_decimal_literals_parse(self, raw):
        assert convert_value(raw) == raw.lower()

    def test_strings_are_lower_cased(self):
        assert convert_value("Firefox") == "firefox"

    def test_non_finite_floats_become_text(self):
        assert convert_value(math.nan) == "nan"
        assert convert_value(math.inf) == "infinity"


class TestComparisons:
    def test_strict_equals_is_type_aware(self):
        assert strict_equals(10.0, 10.0)
        assert not strict_equals(True, 1.0)
        assert not strict_equals("true", True)
        assert strict_equals("premium", "premium")

    def test_string_pairs_compare_lexicographically(self):
        assert loose_greater("b", "a")
        assert loose_less("apple", "banana")

    def test_number_pairs_compare_numerically(self):
        assert loose_greater(10.0, 9.0)
        assert not loose_greater(9.0, 10.0)
        assert loose_less(2.0, 20.0)

    def test_mixed_pairs_never_raise(self):
        assert not loose_greater("abc", 5.0)
        assert not loose_less("abc", 5.0)
        assert loose_greater(True, 0.5)
        assert loose_less("", 1.0)

    def test_contains_uses_text_form(self):
        assert text_contains("firefox", "fire")
        assert text_contains(10.0, "1")
        assert not text_contains(10.0, ".0")
        assert text_contains(True, "ru")


@pytest.mark.parametrize(
    "value, expected",
    [(True, "true"), (10.0, "10"), (2.5, "2.5"), (3, "3"), ("Abc", "Abc"), (None, "null")],
)
def test_to_text(value, expected):
    assert to_text(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (1e21, "1e+21"),
        (1.5e22, "1.5e+22"),
        (1e20, "100000000000000000000"),
        (1e-7, "1e-7"),
        (-2.5e-8, "-2.5e-8"),
        (1e-6, "0.000001"),
        (0.1 + 0.2, "0.30000000000000004"),
        (-0.0, "0"),
    ],
)
def test_to_text_number_notation(value, expected):
    assert to_text(value) == expected
