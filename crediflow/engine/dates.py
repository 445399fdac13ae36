"""Payment-day resolution: nominal day settings to concrete calendar days."""

import calendar
from datetime import date

from crediflow.models.billing import END_OF_MONTH


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in a 0-based month (leap years included)."""
    return calendar.monthrange(year, month + 1)[1]


def resolve_day(year: int, month: int, setting_day: int) -> int:
    """
    Resolve a day setting against a concrete 0-based month.

    END_OF_MONTH resolves to the last day. Any other setting is clamped to
    the last day, so 31 in April resolves to 30; it never rolls forward
    into the next month. Inputs are not validated.
    """
    last_day = last_day_of_month(year, month)

    if setting_day == END_OF_MONTH:
        return last_day

    return min(setting_day, last_day)


def resolve_date(year: int, month: int, setting_day: int) -> date:
    """Same as resolve_day() but returns the full date."""
    return date(year, month + 1, resolve_day(year, month, setting_day))
