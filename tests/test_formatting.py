#!/usr/bin/env python3
"""
Tests for amount and address formatting
"""

import pytest

from auction_reader.utils.formatting import format_units, parse_units, short_address


class TestFormatUnits:

    @pytest.mark.parametrize("value,decimals,expected", [
        (0, 18, "0"),
        (10**18, 18, "1"),
        (15 * 10**17, 18, "1.5"),
        (1, 18, "0.000000000000000001"),
        (123456789 * 10**18, 18, "123456789"),
        (2500, 2, "25"),
        (2550, 2, "25.5"),
        (7, 0, "7"),
    ])
    def test_format(self, value, decimals, expected):
        assert format_units(value, decimals) == expected

    def test_large_values_keep_precision(self):
        value = 10**30 + 1
        assert format_units(value) == "1000000000000.000000000000000001"


class TestParseUnits:

    @pytest.mark.parametrize("amount,expected", [
        ("1", 10**18),
        ("1.5", 15 * 10**17),
        ("0.000000000000000001", 1),
        (" 2 ", 2 * 10**18),
        (3, 3 * 10**18),
    ])
    def test_parse(self, amount, expected):
        assert parse_units(amount) == expected

    @pytest.mark.parametrize("amount", ["", "abc", "1.2.3", "NaN", "Infinity"])
    def test_invalid(self, amount):
        with pytest.raises(ValueError):
            parse_units(amount)

    def test_too_precise(self):
        with pytest.raises(ValueError):
            parse_units("0.001", decimals=2)


class TestShortAddress:

    def test_abbreviates(self):
        assert short_address("0x5FbDB2315678afecb367f032d93F642f64180aa3") == "0x5FbD..0aa3"

    @pytest.mark.parametrize("value", ["", None, "0x1234"])
    def test_short_values_unchanged(self, value):
        assert short_address(value) == (value or "")
