"""Tax year arithmetic and filing deadlines used by recommendations and reports."""

from __future__ import annotations

from datetime import date, timedelta

from directortax.backend.config.schema import validate_tax_year

TAX_YEAR_START_MONTH = 4
TAX_YEAR_START_DAY = 6
RTI_PAYMENT_DAY = 19


def tax_year_start_year(tax_year: str) -> int:
    return int(validate_tax_year(tax_year)[:4])


def tax_year_label(start_year: int) -> str:
    return f"{start_year}-{(start_year + 1) % 100:02d}"


def tax_year_for_date(day: date) -> str:
    """Return the ``YYYY-YY`` tax year containing ``day`` (years start on 6 April)."""

    if (day.month, day.day) >= (TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY):
        return tax_year_label(day.year)
    return tax_year_label(day.year - 1)


def tax_year_dates(tax_year: str) -> tuple[date, date]:
    start_year = tax_year_start_year(tax_year)
    return (
        date(start_year, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY),
        date(start_year + 1, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY - 1),
    )


def next_tax_year_end(reference: date) -> date:
    """Return the next 5 April on or after ``reference``."""

    year_end = date(reference.year, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY - 1)
    if reference > year_end:
        return year_end.replace(year=reference.year + 1)
    return year_end


def days_until_tax_year_end(reference: date) -> int:
    return (next_tax_year_end(reference) - reference).days


def rti_deadline(reference: date) -> date:
    """RTI payments fall due on the 19th of the month after ``reference``."""

    if reference.month == 12:
        return date(reference.year + 1, 1, RTI_PAYMENT_DAY)
    return date(reference.year, reference.month + 1, RTI_PAYMENT_DAY)


def corporation_tax_return_deadline(tax_year: str) -> date:
    return date(tax_year_start_year(tax_year) + 1, 12, 31)


def self_assessment_deadline(tax_year: str) -> date:
    return date(tax_year_start_year(tax_year) + 2, 1, 31)


def accounting_period(end_year: int, month: int = 3, day: int = 31) -> tuple[date, date]:
    """Return the twelve-month accounting period ending on ``day``/``month``.

    Days past the end of a short month clamp to its last day.
    """

    period_end = _clamped_date(end_year, month, day)
    period_start = _clamped_date(end_year - 1, month, day) + timedelta(days=1)
    return period_start, period_end


def _clamped_date(year: int, month: int, day: int) -> date:
    if month == 12:
        last_day = 31
    else:
        last_day = (date(year, month + 1, 1) - timedelta(days=1)).day
    return date(year, month, min(day, last_day))


__all__ = [
    "accounting_period",
    "corporation_tax_return_deadline",
    "days_until_tax_year_end",
    "next_tax_year_end",
    "rti_deadline",
    "self_assessment_deadline",
    "tax_year_dates",
    "tax_year_for_date",
    "tax_year_label",
    "tax_year_start_year",
]
