"""Utilities for validating rate table data and surfacing issues."""

from __future__ import annotations

import argparse
from typing import Mapping, Sequence

from .year_config import (
    ConfigurationError,
    CorporationTaxRates,
    DividendTaxRates,
    IncomeTaxRates,
    NationalInsuranceRates,
    RateTable,
    SelfEmploymentRates,
    available_tax_years,
    load_rate_table,
)

_CONTINUITY_TOLERANCE = 0.01


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_rates(scope: str, rates: Mapping[str, float]) -> list[str]:
    errors: list[str] = []
    for label, value in rates.items():
        if value < 0 or value > 1:
            errors.append(
                _format_scope(scope, f"{label} {value} must be between 0 and 1")
            )
    return errors


def _validate_income_tax(income_tax: IncomeTaxRates) -> list[str]:
    errors = _validate_rates(
        "income_tax",
        {
            "basic_rate": income_tax.basic_rate,
            "higher_rate": income_tax.higher_rate,
            "additional_rate": income_tax.additional_rate,
        },
    )

    thresholds = [
        income_tax.personal_allowance,
        income_tax.basic_rate_threshold,
        income_tax.higher_rate_threshold,
    ]
    if thresholds != sorted(set(thresholds)):
        errors.append(
            _format_scope("income_tax", "band thresholds must be strictly increasing")
        )

    if not income_tax.basic_rate <= income_tax.higher_rate <= income_tax.additional_rate:
        errors.append(_format_scope("income_tax", "band rates should not decrease"))

    if income_tax.allowance_taper_threshold < income_tax.personal_allowance:
        errors.append(
            _format_scope(
                "income_tax",
                "allowance taper threshold sits below the personal allowance",
            )
        )

    return errors


def _validate_national_insurance(ni: NationalInsuranceRates) -> list[str]:
    errors = _validate_rates(
        "national_insurance",
        {
            "employee_rate": ni.employee_rate,
            "employee_additional_rate": ni.employee_additional_rate,
            "employer_rate": ni.employer_rate,
            "employer_additional_rate": ni.employer_additional_rate,
        },
    )

    if ni.employee_upper_earnings_limit < ni.employee_primary_threshold:
        errors.append(
            _format_scope(
                "national_insurance",
                "upper earnings limit cannot be below the primary threshold",
            )
        )
    if ni.employer_upper_secondary_threshold < ni.employer_secondary_threshold:
        errors.append(
            _format_scope(
                "national_insurance",
                "upper secondary threshold cannot be below the secondary threshold",
            )
        )

    return errors


def _validate_corporation_tax(corporation_tax: CorporationTaxRates) -> list[str]:
    errors = _validate_rates(
        "corporation_tax",
        {
            "small_profits_rate": corporation_tax.small_profits_rate,
            "main_rate": corporation_tax.main_rate,
        },
    )

    if corporation_tax.main_rate < corporation_tax.small_profits_rate:
        errors.append(
            _format_scope(
                "corporation_tax", "main rate cannot be below the small profits rate"
            )
        )

    if corporation_tax.has_marginal_relief:
        lower = corporation_tax.marginal_relief_lower_threshold
        upper = corporation_tax.marginal_relief_upper_threshold
        relieved = (
            lower * corporation_tax.main_rate
            - (upper - lower) * corporation_tax.marginal_relief_fraction
        )
        small_profits = lower * corporation_tax.small_profits_rate
        if abs(relieved - small_profits) > _CONTINUITY_TOLERANCE:
            errors.append(
                _format_scope(
                    "corporation_tax",
                    (
                        "marginal relief fraction "
                        f"{corporation_tax.marginal_relief_fraction} leaves a "
                        f"discontinuity of {relieved - small_profits:.2f} at the "
                        "lower threshold"
                    ),
                )
            )

    return errors


def _validate_dividend_tax(dividend_tax: DividendTaxRates) -> list[str]:
    errors = _validate_rates(
        "dividend_tax",
        {
            "basic_rate": dividend_tax.basic_rate,
            "higher_rate": dividend_tax.higher_rate,
            "additional_rate": dividend_tax.additional_rate,
        },
    )
    if dividend_tax.allowance < 0:
        errors.append(_format_scope("dividend_tax", "allowance must be non-negative"))
    return errors


def _validate_self_employment(self_employment: SelfEmploymentRates) -> list[str]:
    errors = _validate_rates(
        "self_employment",
        {
            "class4_main_rate": self_employment.class4_main_rate,
            "class4_additional_rate": self_employment.class4_additional_rate,
        },
    )
    if self_employment.class4_upper_profits_limit < self_employment.class4_lower_profits_limit:
        errors.append(
            _format_scope(
                "self_employment",
                "upper profits limit cannot be below the lower profits limit",
            )
        )
    return errors


def validate_rate_table(table: RateTable) -> list[str]:
    """Return a list of human-readable issues detected in ``table``."""

    errors: list[str] = []
    errors.extend(_validate_income_tax(table.income_tax))
    errors.extend(_validate_national_insurance(table.national_insurance))
    errors.extend(_validate_corporation_tax(table.corporation_tax))
    errors.extend(_validate_dividend_tax(table.dividend_tax))
    errors.extend(_validate_self_employment(table.self_employment))

    if table.pensions.annual_allowance <= 0:
        errors.append(_format_scope("pensions", "annual allowance must be positive"))

    return errors


def validate_all_years(tax_years: Sequence[str] | None = None) -> dict[str, list[str]]:
    """Validate each requested tax year and return the collected issues."""

    years = list(tax_years) if tax_years is not None else list(available_tax_years())
    results: dict[str, list[str]] = {}
    for tax_year in years:
        table = load_rate_table(tax_year)
        results[tax_year] = validate_rate_table(table)
    return results


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate the configured rate tables and report any issues."
    )
    parser.add_argument(
        "tax_years",
        nargs="*",
        help="Specific tax years to validate, e.g. 2024-25 (defaults to all)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    tax_years = args.tax_years or list(available_tax_years())

    exit_code = 0
    for tax_year in tax_years:
        try:
            table = load_rate_table(tax_year)
        except (FileNotFoundError, ConfigurationError) as error:
            print(f"[{tax_year}] failed to load rate table: {error}")
            exit_code = 1
            continue

        issues = validate_rate_table(table)
        if issues:
            exit_code = 1
            print(f"[{tax_year}] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print(f"[{tax_year}] OK")

    return exit_code


__all__ = ["main", "validate_all_years", "validate_rate_table"]
