"""Tests for age and date-interval helpers."""

from datetime import date

import pytest

from tripmatch.predicates import age, overlaps, parse_epoch_ms

TODAY = date(2026, 6, 1)


class TestAge:
    def test_birthday_already_passed(self):
        assert age("1990-01-01", TODAY) == 36

    def test_birthday_later_this_year(self):
        assert age("1990-12-31", TODAY) == 35

    def test_birthday_today(self):
        assert age("2000-06-01", TODAY) == 26

    def test_datetime_string(self):
        assert age("1990-01-01T00:00:00Z", TODAY) == 36

    @pytest.mark.parametrize("dob", [None, "", "   ", "not-a-date", "1990-13-45", 19900101])
    def test_invalid_inputs(self, dob):
        assert age(dob, TODAY) is None

    def test_future_date_is_invalid(self):
        assert age("2030-01-01", TODAY) is None

    def test_over_150_is_invalid(self):
        assert age("1800-01-01", TODAY) is None

    def test_newborn_is_zero(self):
        assert age("2026-05-01", TODAY) == 0

    @pytest.mark.parametrize("dob", ["01/15/1996", "Jan 15 1996", "January 15, 1996"])
    def test_non_iso_layouts(self, dob):
        assert age(dob, TODAY) == 30


class TestOverlaps:
    def test_contained(self):
        assert overlaps(1, 10, 3, 5)

    def test_touching_endpoints_overlap(self):
        assert overlaps(1, 5, 5, 9)
        assert overlaps(5, 9, 1, 5)

    def test_disjoint(self):
        assert not overlaps(1, 4, 5, 9)
        assert not overlaps(6, 9, 1, 5)


class TestParseEpochMs:
    def test_date_only_is_utc_midnight(self):
        assert parse_epoch_ms("1970-01-02") == 86_400_000

    def test_month_first_layout(self):
        assert parse_epoch_ms("01/02/1970") == 86_400_000

    def test_year_only_is_new_year(self):
        assert parse_epoch_ms("1970") == 0

    def test_invalid(self):
        assert parse_epoch_ms("someday") is None
        assert parse_epoch_ms(None) is None
