"""Tests for utils module."""

import pytest

from backup_extract.utils import Colors, format_count


class TestFormatCount:
    """Tests for format_count."""

    @pytest.mark.parametrize(
        "count,expected",
        [
            (0, "0 files"),
            (1, "1 file"),
            (2, "2 files"),
            (1234, "1,234 files"),
        ],
    )
    def test_pluralization(self, count, expected):
        assert format_count(count, "file") == expected


class TestColors:
    """Tests for Colors."""

    def test_codes_are_escape_sequences(self):
        for name in ("HEADER", "OKGREEN", "FAIL", "ENDC", "BOLD"):
            assert getattr(Colors, name).startswith("\033[")
