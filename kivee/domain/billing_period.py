"""
Billing periods and cycle advancing.

Uses date only (no timezone). Calendar arithmetic clamps to the last day of
the target month, so Jan 31 + 1 month is Feb 28/29 and Feb 29 + 1 year is
Feb 28 on non-leap years.

Periods:
- monthly:          +1 month
- semi-annual:      +6 months
- annual:           +12 months
- custom-term:      fixed term (termStartDate..termEndDate), never advanced
- custom-duration:  +N days / weeks / months
"""
import calendar
from datetime import date, timedelta

MONTHLY = "monthly"
SEMI_ANNUAL = "semi-annual"
ANNUAL = "annual"
CUSTOM_TERM = "custom-term"
CUSTOM_DURATION = "custom-duration"

STANDARD_PERIODS = frozenset({MONTHLY, SEMI_ANNUAL, ANNUAL})
VALID_PERIODS = frozenset({MONTHLY, SEMI_ANNUAL, ANNUAL, CUSTOM_TERM, CUSTOM_DURATION})

DURATION_UNITS = frozenset({"days", "weeks", "months"})

_PERIOD_MONTHS = {MONTHLY: 1, SEMI_ANNUAL: 6, ANNUAL: 12}

_PERIOD_LABELS = {
    MONTHLY: "Monthly",
    SEMI_ANNUAL: "Semi-Annual",
    ANNUAL: "Annual",
    CUSTOM_TERM: "Custom Term",
    CUSTOM_DURATION: "Custom Duration",
}


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: date, n: int) -> date:
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    last = last_day_of_month(year, month)
    day = min(d.day, last)
    return date(year, month, day)


def add_duration(d: date, unit: str | None, amount) -> date | None:
    """Add `amount` days/weeks/months. None when the duration is unusable."""
    try:
        n = int(amount)
    except (TypeError, ValueError):
        return None
    if n < 1:
        return None
    if unit == "days":
        return d + timedelta(days=n)
    if unit == "weeks":
        return d + timedelta(weeks=n)
    if unit == "months":
        return add_months(d, n)
    return None


def next_due_date(
    d: date,
    billing_period: str | None,
    duration_unit: str | None = None,
    duration_amount=None,
) -> date | None:
    """Next cycle start after `d`.

    Returns None when the period is terminal: custom terms, an unknown or
    missing period, or a custom duration without a usable unit/amount.
    """
    if billing_period in _PERIOD_MONTHS:
        return add_months(d, _PERIOD_MONTHS[billing_period])
    if billing_period == CUSTOM_DURATION:
        return add_duration(d, duration_unit, duration_amount)
    return None


def variant_key(
    billing_period: str | None,
    duration_unit: str | None = None,
    duration_amount=None,
    term_start_date: date | None = None,
    term_end_date: date | None = None,
) -> str | None:
    """Stable identity of a price variant within one variant list.

    Standard periods are their own key. Custom durations are keyed by amount
    and unit, custom terms by their dates. None when a custom variant lacks
    the fields that identify it.
    """
    if not billing_period:
        return None
    if billing_period == CUSTOM_DURATION:
        if not duration_unit or not duration_amount:
            return None
        return f"{CUSTOM_DURATION}:{duration_amount}:{duration_unit}"
    if billing_period == CUSTOM_TERM:
        if not term_end_date:
            return None
        start = term_start_date.isoformat() if term_start_date else ""
        return f"{CUSTOM_TERM}:{start}:{term_end_date.isoformat()}"
    return billing_period


def parse_date(value) -> date | None:
    """Parse 'YYYY-MM-DD' (or a longer ISO timestamp) into a date."""
    if value is None:
        return None
    if isinstance(value, date):
        return value if type(value) is date else value.date()
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def format_billing_period(billing_period: str | None) -> str:
    """Human label for a billing period."""
    if not billing_period:
        return ""
    return _PERIOD_LABELS.get(billing_period, billing_period)
