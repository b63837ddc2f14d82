"""Tests for status-code severity classification."""

import logging

import pytest

from src.severity import Severity, classify


class TestClassify:
    @pytest.mark.parametrize("status, expected", [
        (100, Severity.DEBUG),
        (199, Severity.DEBUG),
        (200, Severity.INFO),
        (204, Severity.INFO),
        (301, Severity.NOTICE),
        (404, Severity.WARNING),
        (499, Severity.WARNING),
        (500, Severity.ERROR),
        (503, Severity.ERROR),
        (600, Severity.CRITICAL),
        (799, Severity.ALERT),
        (800, Severity.EMERGENCY),
        (812, Severity.EMERGENCY),
    ])
    def test_bands(self, status, expected):
        assert classify(status) is expected

    def test_absent_status_is_default(self):
        assert classify(None) is Severity.DEFAULT

    def test_below_lowest_band_is_default(self):
        assert classify(0) is Severity.DEFAULT
        assert classify(99) is Severity.DEFAULT
        assert classify(-5) is Severity.DEFAULT

    def test_non_integer_is_default(self):
        assert classify("500") is Severity.DEFAULT
        assert classify(True) is Severity.DEFAULT

    def test_monotonic(self):
        previous = classify(100)
        for status in range(100, 1000):
            current = classify(status)
            assert current <= previous
            previous = current


class TestSeverity:
    def test_order_indices(self):
        assert [s.value for s in Severity] == list(range(9))
        assert Severity.EMERGENCY < Severity.DEFAULT

    def test_parse_is_case_insensitive(self):
        assert Severity.parse("warning") is Severity.WARNING
        assert Severity.parse(" Info ") is Severity.INFO

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            Severity.parse("LOUD")

    @pytest.mark.parametrize("value", [None, 5, ["INFO"]])
    def test_parse_non_string_raises_value_error(self, value):
        with pytest.raises(ValueError):
            Severity.parse(value)

    def test_python_levels(self):
        assert Severity.ERROR.python_level == logging.ERROR
        assert Severity.EMERGENCY.python_level == logging.CRITICAL
        assert Severity.NOTICE.python_level == logging.INFO
        assert Severity.DEFAULT.python_level == logging.DEBUG
