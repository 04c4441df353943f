"""Evaluate one salary/dividend split end to end.

The company pays salary and employer NI out of available profit, settles
corporation tax on what remains and distributes the rest as dividends. The
director then pays income tax and employee NI on salary (plus any other
income) and dividend tax on the dividends stacked on top.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from directortax.backend.app.models import (
    CompanyResult,
    PersonalResult,
    ScenarioInput,
    ScenarioResult,
    format_validation_error,
)
from directortax.backend.config.schema import RateTable
from directortax.backend.config.year_config import resolve_rate_table

from .calculators import (
    calculate_corporation_tax,
    calculate_dividend_tax_bands,
    calculate_employee_ni,
    calculate_employer_ni,
    calculate_income_tax_bands,
    non_negative,
)


def _evaluate_company(
    scenario: ScenarioInput, rates: RateTable
) -> CompanyResult:
    employer_ni = calculate_employer_ni(scenario.salary, rates.national_insurance)
    taxable_profit = scenario.available_profit - scenario.salary - employer_ni
    corporation_tax = calculate_corporation_tax(taxable_profit, rates.corporation_tax)
    profit_after_tax = taxable_profit - corporation_tax
    dividend_pool = non_negative(profit_after_tax)

    if scenario.dividend is None:
        dividends_paid = dividend_pool
    else:
        dividends_paid = min(scenario.dividend, dividend_pool)

    return CompanyResult(
        profit_before_tax=scenario.available_profit,
        salary_expense=scenario.salary,
        employer_ni=employer_ni,
        taxable_profit=non_negative(taxable_profit),
        corporation_tax=corporation_tax,
        profit_after_tax=profit_after_tax,
        dividend_pool=dividend_pool,
        dividends_paid=dividends_paid,
    )


def evaluate_personal(
    salary: float,
    dividends: float,
    rates: RateTable,
    *,
    other_income: float = 0.0,
    personal_allowance_used: float = 0.0,
    dividend_allowance_used: float = 0.0,
) -> PersonalResult:
    """Director's income tax, employee NI and dividend tax for one year.

    The personal allowance tapers on total income, dividends included.
    """

    non_dividend_income = salary + other_income
    income_tax = calculate_income_tax_bands(
        non_dividend_income,
        rates,
        personal_allowance_used=personal_allowance_used,
        allowance_income=non_dividend_income + dividends,
    )
    dividend_tax = calculate_dividend_tax_bands(
        dividends,
        non_dividend_income,
        rates,
        personal_allowance_used=personal_allowance_used,
        dividend_allowance_used=dividend_allowance_used,
    )
    return PersonalResult(
        salary=salary,
        dividends=dividends,
        other_income=other_income,
        income_tax=income_tax,
        employee_ni=calculate_employee_ni(salary, rates.national_insurance),
        dividend_tax=dividend_tax,
    )


def evaluate_scenario(scenario: ScenarioInput, rates: RateTable) -> ScenarioResult:
    """Evaluate ``scenario`` against an already resolved rate table."""

    company = _evaluate_company(scenario, rates)
    personal = evaluate_personal(
        scenario.salary,
        company.dividends_paid,
        rates,
        other_income=scenario.other_income,
        personal_allowance_used=scenario.personal_allowance_used,
        dividend_allowance_used=scenario.dividend_allowance_used,
    )
    return ScenarioResult(input=scenario, company=company, personal=personal)


def evaluate(
    profit: float,
    salary: float,
    tax_year: str,
    *,
    other_income: float = 0.0,
    dividend: float | None = None,
    rates: RateTable | None = None,
    **flags: Any,
) -> ScenarioResult:
    """Evaluate a salary level for ``tax_year``.

    ``flags`` accepts the remaining :class:`ScenarioInput` options such as
    ``personal_allowance_used`` or ``scottish_taxpayer``. Unknown tax years
    fall back to the latest configured rates.
    """

    try:
        scenario = ScenarioInput(
            available_profit=profit,
            salary=salary,
            tax_year=tax_year,
            other_income=other_income,
            dividend=dividend,
            **flags,
        )
    except ValidationError as exc:
        raise ValueError(format_validation_error(exc)) from exc

    table = rates if rates is not None else resolve_rate_table(scenario.tax_year)
    return evaluate_scenario(scenario, table)


__all__ = ["evaluate", "evaluate_personal", "evaluate_scenario"]
