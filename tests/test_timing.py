"""Tests for elapsed time formatting."""

import pytest
from livetree.timing import format_elapsed


class TestFormatElapsed:
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "(0s)"),
            (5.9, "(5s)"),
            (59, "(59s)"),
            (60, "(1m 0s)"),
            (150, "(2m 30s)"),
            (3599, "(59m 59s)"),
            (3600, "(1h 0m)"),
            (4500, "(1h 15m)"),
            (90061, "(25h 1m)"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_elapsed(seconds) == expected

    def test_none(self):
        assert format_elapsed(None) == ""

    def test_negative(self):
        assert format_elapsed(-1) == ""
