"""Tests for shared utility functions."""

import re
from datetime import date, datetime

import pytest

from bookingcore.utils import (
    combine,
    covering_ticks,
    day_name,
    format_minutes,
    generate_short_code,
    overlaps,
    parse_hhmm,
    shift,
)


class TestShortCode:
    def test_format(self):
        assert re.fullmatch(r"BK[A-Z]{2}\d{8}", generate_short_code())

    def test_custom_prefix_is_uppercased(self):
        assert generate_short_code("rx").startswith("RX")

    def test_codes_differ(self):
        codes = {generate_short_code() for _ in range(50)}
        assert len(codes) > 1


class TestParseHHMM:
    def test_parses_morning(self):
        assert parse_hhmm("09:30") == 570

    def test_single_digit_hour(self):
        assert parse_hhmm("9:05") == 545

    def test_end_of_day(self):
        assert parse_hhmm("24:00") == 1440

    @pytest.mark.parametrize("value", ["", "9", "09:60", "25:00", "24:30", "ab:cd", "0930"])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value)

    def test_format_round_trip(self):
        assert format_minutes(parse_hhmm("17:45")) == "17:45"


class TestDateHelpers:
    def test_day_name(self):
        assert day_name(date(2025, 3, 17)) == "monday"
        assert day_name(date(2025, 3, 23)) == "sunday"

    def test_combine(self):
        assert combine(date(2025, 3, 17), 10, 30) == datetime(2025, 3, 17, 10, 30)

    def test_shift_same_day(self):
        assert shift(date(2025, 3, 17), 10, 0, 30) == (date(2025, 3, 17), 10, 30)

    def test_shift_rolls_over_midnight(self):
        assert shift(date(2025, 3, 17), 23, 45, 30) == (date(2025, 3, 18), 0, 15)

    def test_shift_compounds(self):
        on, h, m = shift(date(2025, 3, 17), 10, 0, 30)
        assert shift(on, h, m, 30) == (date(2025, 3, 17), 11, 0)


class TestIntervals:
    def test_aligned_booking_covers_its_ticks(self):
        assert covering_ticks(600, 60, 30) == [600, 630]

    def test_unaligned_start_covers_enclosing_tick(self):
        assert covering_ticks(615, 30, 30) == [600, 630]

    def test_short_service_single_tick(self):
        assert covering_ticks(600, 10, 30) == [600]

    def test_overlap(self):
        assert overlaps(600, 630, 615, 645)

    def test_touching_intervals_do_not_overlap(self):
        assert not overlaps(600, 630, 630, 660)
        assert not overlaps(630, 660, 600, 630)

    def test_containment_overlaps(self):
        assert overlaps(600, 720, 630, 660)
