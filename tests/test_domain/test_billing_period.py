"""Tests for billing periods and cycle advancing"""
from datetime import date, datetime

from kivee.domain.billing_period import (
    add_months, add_duration, next_due_date, parse_date, format_billing_period,
)


class TestAddMonths:
    def test_simple(self):
        assert add_months(date(2024, 1, 15), 1) == date(2024, 2, 15)

    def test_clamps_to_leap_february(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_clamps_to_common_february(self):
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_crosses_year(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)

    def test_clamped_day_is_not_restored(self):
        feb = add_months(date(2024, 1, 31), 1)
        assert add_months(feb, 1) == date(2024, 3, 29)


class TestNextDueDate:
    def test_monthly(self):
        assert next_due_date(date(2024, 1, 1), "monthly") == date(2024, 2, 1)

    def test_semi_annual(self):
        assert next_due_date(date(2024, 8, 31), "semi-annual") == date(2025, 2, 28)

    def test_annual_from_leap_day(self):
        assert next_due_date(date(2024, 2, 29), "annual") == date(2025, 2, 28)

    def test_custom_duration_days(self):
        assert next_due_date(date(2024, 1, 1), "custom-duration", "days", 10) == date(2024, 1, 11)

    def test_custom_duration_weeks(self):
        assert next_due_date(date(2024, 1, 1), "custom-duration", "weeks", 2) == date(2024, 1, 15)

    def test_custom_duration_months(self):
        assert next_due_date(date(2024, 1, 31), "custom-duration", "months", 3) == date(2024, 4, 30)

    def test_custom_term_is_terminal(self):
        assert next_due_date(date(2024, 1, 1), "custom-term") is None

    def test_missing_period_is_terminal(self):
        assert next_due_date(date(2024, 1, 1), None) is None

    def test_unknown_period_is_terminal(self):
        assert next_due_date(date(2024, 1, 1), "weekly") is None

    def test_custom_duration_without_unit_is_terminal(self):
        assert next_due_date(date(2024, 1, 1), "custom-duration", None, 3) is None


class TestAddDuration:
    def test_zero_amount(self):
        assert add_duration(date(2024, 1, 1), "days", 0) is None

    def test_non_numeric_amount(self):
        assert add_duration(date(2024, 1, 1), "days", "abc") is None

    def test_string_amount(self):
        assert add_duration(date(2024, 1, 1), "days", "3") == date(2024, 1, 4)

    def test_unknown_unit(self):
        assert add_duration(date(2024, 1, 1), "years", 1) is None


class TestParseDate:
    def test_iso_date(self):
        assert parse_date("2024-03-05") == date(2024, 3, 5)

    def test_iso_timestamp(self):
        assert parse_date("2024-03-05T10:00:00.000Z") == date(2024, 3, 5)

    def test_datetime(self):
        assert parse_date(datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)

    def test_empty_and_invalid(self):
        assert parse_date("") is None
        assert parse_date("not a date") is None
        assert parse_date(None) is None


def test_format_billing_period():
    assert format_billing_period("semi-annual") == "Semi-Annual"
    assert format_billing_period("custom-duration") == "Custom Duration"
    assert format_billing_period(None) == ""
