"""Tests for formatting helpers."""

import pytest

from pymirror.utils import format_duration, format_size


class TestFormatSize:
    """Tests for format_size."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5.0 MB"),
            (3 * 1024**3, "3.0 GB"),
        ],
    )
    def test_format_size(self, size, expected):
        assert format_size(size) == expected


class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "0.00s"),
            (0.25, "0.25s"),
            (59.5, "59.50s"),
            (75, "1m 15s"),
            (3600, "1h 0m 0s"),
            (3725, "1h 2m 5s"),
        ],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected
