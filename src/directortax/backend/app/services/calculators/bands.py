"""Allocate income across the UK income tax, dividend and NI bands.

Every helper here is a pure function of its arguments and a rate table.
Allowances already consumed elsewhere (for instance by a second employment)
are passed in explicitly so callers can stack several income sources.
"""

from __future__ import annotations

from directortax.backend.app.models.scenario import (
    NO_DIVIDEND_TAX,
    BandAmounts,
    DividendTaxBands,
    IncomeTaxBands,
)
from directortax.backend.config.schema import (
    IncomeTaxRates,
    NationalInsuranceRates,
    RateTable,
    SelfEmploymentRates,
)

from .utils import non_negative


def tapered_personal_allowance(income: float, rates: IncomeTaxRates) -> float:
    """Return the personal allowance after the high-income taper.

    The allowance falls by one pound for every ``allowance_taper_ratio``
    pounds of income above the taper threshold and never drops below zero.
    """

    excess = income - rates.allowance_taper_threshold
    if excess <= 0:
        return rates.personal_allowance

    reduction = min(rates.personal_allowance, excess / rates.allowance_taper_ratio)
    return non_negative(rates.personal_allowance - reduction)


def calculate_income_tax_bands(
    non_dividend_income: float,
    rates: RateTable,
    *,
    personal_allowance_used: float = 0.0,
    allowance_income: float | None = None,
) -> IncomeTaxBands:
    """Split ``non_dividend_income`` across the income tax bands.

    ``allowance_income`` is the income used to taper the personal allowance;
    it defaults to ``non_dividend_income`` but callers with dividends pass the
    combined total so the taper reflects all income.
    """

    income_tax = rates.income_tax
    basis = non_dividend_income if allowance_income is None else allowance_income
    allowance = non_negative(
        tapered_personal_allowance(basis, income_tax) - personal_allowance_used
    )

    taxable = non_negative(non_dividend_income - allowance)
    basic_limit = non_negative(income_tax.basic_rate_threshold - allowance)
    higher_limit = non_negative(income_tax.higher_rate_threshold - allowance)

    income_by_band = BandAmounts(
        basic_rate=min(taxable, basic_limit),
        higher_rate=min(
            non_negative(taxable - basic_limit),
            non_negative(higher_limit - basic_limit),
        ),
        additional_rate=non_negative(taxable - higher_limit),
    )
    tax_by_band = BandAmounts(
        basic_rate=income_by_band.basic_rate * income_tax.basic_rate,
        higher_rate=income_by_band.higher_rate * income_tax.higher_rate,
        additional_rate=income_by_band.additional_rate * income_tax.additional_rate,
    )

    return IncomeTaxBands(
        taxable_income=taxable,
        personal_allowance=allowance,
        income_by_band=income_by_band,
        tax_by_band=tax_by_band,
    )


def _apply_allowance(bands: BandAmounts, allowance: float) -> tuple[BandAmounts, float]:
    # Consumes the allowance from the lowest band upwards.
    remaining = allowance
    taxable: list[float] = []
    for amount in (bands.basic_rate, bands.higher_rate, bands.additional_rate):
        absorbed = min(amount, remaining)
        remaining -= absorbed
        taxable.append(amount - absorbed)
    return BandAmounts(*taxable), allowance - remaining


def calculate_dividend_tax_bands(
    dividend: float,
    non_dividend_income: float,
    rates: RateTable,
    *,
    personal_allowance_used: float = 0.0,
    dividend_allowance_used: float = 0.0,
) -> DividendTaxBands:
    """Compute dividend tax with dividends stacked on top of other income.

    Any personal allowance left after ``non_dividend_income`` shelters
    dividends first. The rest fills the remaining basic band capacity, then
    the higher band, then the additional band. The dividend allowance (less
    ``dividend_allowance_used``) is applied band by band from the basic band
    upwards before each band's dividend rate is charged.
    """

    if dividend <= 0:
        return NO_DIVIDEND_TAX

    income_tax = rates.income_tax
    dividend_tax = rates.dividend_tax

    allowance = non_negative(
        tapered_personal_allowance(non_dividend_income + dividend, income_tax)
        - personal_allowance_used
    )
    remaining_allowance = non_negative(allowance - non_dividend_income)
    dividend_after_allowance = non_negative(dividend - remaining_allowance)
    if dividend_after_allowance <= 0:
        return NO_DIVIDEND_TAX

    available_dividend_allowance = non_negative(
        dividend_tax.allowance - dividend_allowance_used
    )

    taxable_non_dividend = non_negative(non_dividend_income - allowance)
    basic_limit = non_negative(income_tax.basic_rate_threshold - allowance)
    higher_limit = non_negative(income_tax.higher_rate_threshold - allowance)
    basic_remaining = non_negative(basic_limit - taxable_non_dividend)
    higher_remaining = non_negative(higher_limit - taxable_non_dividend - basic_remaining)

    in_basic = min(dividend_after_allowance, basic_remaining)
    in_higher = min(dividend_after_allowance - in_basic, higher_remaining)
    in_additional = dividend_after_allowance - in_basic - in_higher
    dividend_by_band = BandAmounts(in_basic, in_higher, in_additional)

    taxable_by_band, applied = _apply_allowance(
        dividend_by_band, available_dividend_allowance
    )
    tax_by_band = BandAmounts(
        basic_rate=taxable_by_band.basic_rate * dividend_tax.basic_rate,
        higher_rate=taxable_by_band.higher_rate * dividend_tax.higher_rate,
        additional_rate=taxable_by_band.additional_rate * dividend_tax.additional_rate,
    )

    return DividendTaxBands(
        taxable_dividend=taxable_by_band.total,
        personal_allowance=allowance,
        dividend_allowance_applied=applied,
        dividend_by_band=dividend_by_band,
        taxable_by_band=taxable_by_band,
        tax_by_band=tax_by_band,
    )


def _three_tier_charge(
    amount: float,
    threshold: float,
    upper_threshold: float,
    rate: float,
    additional_rate: float,
) -> float:
    if amount <= threshold:
        return 0.0

    main_band = min(amount, upper_threshold) - threshold
    upper_band = non_negative(amount - upper_threshold)
    return non_negative(main_band) * rate + upper_band * additional_rate


def calculate_employee_ni(salary: float, rates: NationalInsuranceRates) -> float:
    """Class 1 primary contributions deducted from ``salary``."""

    return _three_tier_charge(
        salary,
        rates.employee_primary_threshold,
        rates.employee_upper_earnings_limit,
        rates.employee_rate,
        rates.employee_additional_rate,
    )


def calculate_employer_ni(salary: float, rates: NationalInsuranceRates) -> float:
    """Class 1 secondary contributions the company pays on ``salary``."""

    return _three_tier_charge(
        salary,
        rates.employer_secondary_threshold,
        rates.employer_upper_secondary_threshold,
        rates.employer_rate,
        rates.employer_additional_rate,
    )


def calculate_class4_nic(profit: float, rates: SelfEmploymentRates) -> float:
    return _three_tier_charge(
        profit,
        rates.class4_lower_profits_limit,
        rates.class4_upper_profits_limit,
        rates.class4_main_rate,
        rates.class4_additional_rate,
    )


def calculate_class2_nic(
    profit: float, rates: SelfEmploymentRates, *, voluntary: bool
) -> float:
    """Voluntary Class 2 contributions for profits below the small profits threshold."""

    if not voluntary or profit >= rates.class2_small_profits_threshold:
        return 0.0
    return rates.class2_weekly_rate * 52


__all__ = [
    "calculate_class2_nic",
    "calculate_class4_nic",
    "calculate_dividend_tax_bands",
    "calculate_employee_ni",
    "calculate_employer_ni",
    "calculate_income_tax_bands",
    "tapered_personal_allowance",
]
