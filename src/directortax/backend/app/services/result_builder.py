"""Convert engine results into the stored and reported record shapes.

Reports carry every figure a document renderer needs so nothing downstream
recomputes tax. Monetary values are rounded to pence and rates to four
decimal places; the engine itself works with unrounded floats.
"""

from __future__ import annotations

from typing import Sequence
from uuid import uuid4

from directortax.backend.app.models import (
    BandAmounts,
    CalculationType,
    CompanyReport,
    ComparisonCompany,
    ComparisonPersonal,
    ComparisonSummary,
    CorporationTaxOutcome,
    NationalInsuranceReport,
    OptimisationReport,
    PersonalReport,
    PersonalResult,
    Range,
    ReportInputs,
    ReportResults,
    ScenarioComparisonEntry,
    ScenarioComparisonSummary,
    ScenarioRecord,
    ScenarioResult,
    TaxBandBreakdown,
    TaxCalculationReport,
)
from directortax.backend.config.schema import RateTable

from .calculators import format_currency, non_negative, round_currency, round_rate


def new_calculation_id() -> str:
    return uuid4().hex


def scenario_name(scenario: ScenarioResult, name: str | None = None) -> str:
    label = name or scenario.input.name
    return label or f"Salary {format_currency(scenario.salary)}"


def scenario_record(scenario: ScenarioResult, name: str | None = None) -> ScenarioRecord:
    """Flatten ``scenario`` into its rounded headline figures."""

    company = scenario.company
    personal = scenario.personal
    return ScenarioRecord(
        name=scenario_name(scenario, name),
        salary=round_currency(scenario.salary),
        dividend=round_currency(scenario.dividends),
        other_income=round_currency(personal.other_income),
        available_profit=round_currency(company.profit_before_tax),
        employer_ni=round_currency(company.employer_ni),
        taxable_profit=round_currency(company.taxable_profit),
        corporation_tax=round_currency(company.corporation_tax),
        profit_after_tax=round_currency(company.profit_after_tax),
        dividend_pool=round_currency(company.dividend_pool),
        income_tax=round_currency(personal.income_tax.total_tax),
        employee_ni=round_currency(personal.employee_ni),
        dividend_tax=round_currency(personal.dividend_tax.total_tax),
        total_personal_tax=round_currency(personal.total_tax),
        take_home=round_currency(scenario.take_home),
        total_tax=round_currency(scenario.total_tax),
        cost_to_company=round_currency(scenario.cost_to_company),
        effective_rate=round_rate(scenario.effective_rate),
        effective_total_rate=round_rate(scenario.effective_total_rate),
        is_fundable=scenario.is_fundable,
    )


def _band_breakdown(bands: BandAmounts) -> TaxBandBreakdown:
    return TaxBandBreakdown(
        basic_rate=round_currency(bands.basic_rate),
        higher_rate=round_currency(bands.higher_rate),
        additional_rate=round_currency(bands.additional_rate),
        total=round_currency(bands.total),
    )


def personal_report(
    personal: PersonalResult, rates: RateTable, *, employer_ni: float = 0.0
) -> PersonalReport:
    gross = personal.gross_income
    return PersonalReport(
        total_gross_income=round_currency(gross),
        taxable_income=round_currency(
            personal.income_tax.taxable_income + personal.dividend_tax.taxable_dividend
        ),
        income_tax_by_band=_band_breakdown(personal.income_tax.tax_by_band),
        dividend_tax_by_band=_band_breakdown(personal.dividend_tax.tax_by_band),
        national_insurance=NationalInsuranceReport(
            employee_nic=round_currency(personal.employee_ni),
            employer_nic=round_currency(employer_ni),
        ),
        personal_allowance=round_currency(personal.income_tax.personal_allowance),
        dividend_allowance=round_currency(rates.dividend_tax.allowance),
        total_tax=round_currency(personal.total_tax),
        net_take_home=round_currency(gross - personal.total_tax),
    )


def company_report(scenario: ScenarioResult) -> CompanyReport:
    company = scenario.company
    return CompanyReport(
        profit_before_tax=round_currency(company.profit_before_tax),
        salary_expense=round_currency(company.salary_expense),
        employer_nic=round_currency(company.employer_ni),
        taxable_profit=round_currency(company.taxable_profit),
        corporation_tax=round_currency(company.corporation_tax),
        dividends_paid=round_currency(company.dividends_paid),
        net_company_cash_after_tax=round_currency(company.net_company_cash_after_tax),
    )


def optimisation_report(scenario: ScenarioResult) -> OptimisationReport:
    personal = scenario.personal
    return OptimisationReport(
        optimal_salary=round_currency(scenario.salary),
        optimal_dividends=round_currency(scenario.dividends),
        take_home_optimised=round_currency(scenario.take_home),
        effective_tax_rate=round_rate(scenario.effective_rate),
        total_tax_and_ni=round_currency(scenario.total_tax),
        net_take_home=round_currency(
            non_negative(personal.gross_income - personal.total_tax)
        ),
    )


def comparison_entry(
    scenario: ScenarioResult, name: str | None = None
) -> ScenarioComparisonEntry:
    company = scenario.company
    personal = scenario.personal
    net_personal_income = personal.gross_income - personal.total_tax
    return ScenarioComparisonEntry(
        scenario_name=scenario_name(scenario, name),
        company=ComparisonCompany(
            available_profit=round_currency(company.profit_before_tax),
            salary=round_currency(scenario.salary),
            employer_ni=round_currency(company.employer_ni),
            taxable_profit=round_currency(company.taxable_profit),
            corporation_tax=round_currency(company.corporation_tax),
            dividend_pool=round_currency(company.dividend_pool),
        ),
        personal=ComparisonPersonal(
            salary=round_currency(scenario.salary),
            dividends=round_currency(scenario.dividends),
            other_income=round_currency(personal.other_income),
            income_tax=round_currency(personal.income_tax.total_tax),
            employee_ni=round_currency(personal.employee_ni),
            dividend_tax=round_currency(personal.dividend_tax.total_tax),
            total_personal_tax=round_currency(personal.total_tax),
            net_personal_income=round_currency(net_personal_income),
        ),
        summary=ComparisonSummary(
            total_tax_and_ni=round_currency(scenario.total_tax),
            net_take_home=round_currency(non_negative(net_personal_income)),
            effective_rate=round_rate(scenario.effective_total_rate),
        ),
    )


def build_scenario_report(
    calculation_id: str,
    client_id: str,
    calculation_type: CalculationType,
    scenario: ScenarioResult,
    rates: RateTable,
    *,
    comparison: Sequence[ScenarioResult] = (),
) -> TaxCalculationReport:
    """Assemble the report for a salary/dividend calculation.

    ``comparison`` lists the scenarios shown side by side; pass the ranked
    candidates for an optimisation or the user's scenarios for a comparison.
    """

    company = scenario.company
    tax_year = scenario.input.tax_year
    return TaxCalculationReport(
        calculation_id=calculation_id,
        client_id=client_id,
        calculation_type=calculation_type.value,
        inputs=ReportInputs(
            salary_gross=round_currency(scenario.salary),
            other_income=round_currency(scenario.personal.other_income),
            dividends=round_currency(scenario.dividends),
            personal_tax_year=tax_year,
            company_profit_before_tax=round_currency(company.profit_before_tax),
            salary_expense=round_currency(company.salary_expense),
            employer_nic=round_currency(company.employer_ni),
            tax_year=tax_year,
            dividends_paid=round_currency(company.dividends_paid),
        ),
        results=ReportResults(
            personal=personal_report(
                scenario.personal, rates, employer_ni=company.employer_ni
            ),
            company=company_report(scenario),
            optimisation=optimisation_report(scenario),
            scenario_comparison=tuple(comparison_entry(item) for item in comparison),
        ),
    )


def build_personal_report(
    calculation_id: str,
    client_id: str,
    personal: PersonalResult,
    rates: RateTable,
) -> TaxCalculationReport:
    return TaxCalculationReport(
        calculation_id=calculation_id,
        client_id=client_id,
        calculation_type=CalculationType.INCOME_TAX.value,
        inputs=ReportInputs(
            salary_gross=round_currency(personal.salary),
            other_income=round_currency(personal.other_income),
            dividends=round_currency(personal.dividends),
            personal_tax_year=rates.tax_year,
            tax_year=rates.tax_year,
        ),
        results=ReportResults(personal=personal_report(personal, rates)),
    )


def build_corporation_report(
    calculation_id: str,
    client_id: str,
    outcome: CorporationTaxOutcome,
    tax_year: str,
) -> TaxCalculationReport:
    return TaxCalculationReport(
        calculation_id=calculation_id,
        client_id=client_id,
        calculation_type=CalculationType.CORPORATION_TAX.value,
        inputs=ReportInputs(
            company_profit_before_tax=outcome.profit_before_tax,
            salary_expense=outcome.salary_expense,
            employer_nic=outcome.employer_nic,
            tax_year=tax_year,
            expenses=outcome.expenses,
            year_end_date=outcome.accounting_period_end,
        ),
        results=ReportResults(
            company=CompanyReport(
                profit_before_tax=outcome.profit_before_tax,
                salary_expense=outcome.salary_expense,
                employer_nic=outcome.employer_nic,
                taxable_profit=outcome.taxable_profit,
                corporation_tax=outcome.corporation_tax,
                dividends_paid=0.0,
                net_company_cash_after_tax=outcome.net_profit,
            )
        ),
    )


def _range(values: Sequence[float]) -> Range:
    return Range(min=round_currency(min(values)), max=round_currency(max(values)))


def summarise_comparison(
    records: Sequence[ScenarioRecord],
) -> ScenarioComparisonSummary:
    """Summarise compared scenarios: ranges plus the best by take-home and rate.

    Ranges cover every scenario; only fundable ones can be named best.
    """

    if not records:
        raise ValueError("At least one scenario is required for a comparison")

    candidates = [record for record in records if record.is_fundable]
    if not candidates:
        raise ValueError("None of the scenarios can be funded from the available profit")

    take_homes = [record.take_home for record in candidates]
    rates = [record.effective_total_rate for record in candidates]

    best_take_home = candidates[0]
    for record in candidates[1:]:
        if record.take_home > best_take_home.take_home:
            best_take_home = record

    most_efficient = candidates[0]
    for record in candidates[1:]:
        if record.effective_total_rate < most_efficient.effective_total_rate:
            most_efficient = record

    return ScenarioComparisonSummary(
        total_scenarios=len(records),
        income_range=_range([record.salary + record.dividend for record in records]),
        tax_range=_range([record.total_tax for record in records]),
        take_home_range=_range([record.take_home for record in records]),
        best_for_take_home=best_take_home.name or "",
        most_tax_efficient=most_efficient.name or "",
        take_home_advantage=round_currency(best_take_home.take_home - min(take_homes)),
        effective_rate_advantage=round_rate(
            max(rates) - most_efficient.effective_total_rate
        ),
    )


__all__ = [
    "build_corporation_report",
    "build_personal_report",
    "build_scenario_report",
    "company_report",
    "comparison_entry",
    "new_calculation_id",
    "optimisation_report",
    "personal_report",
    "scenario_name",
    "scenario_record",
    "summarise_comparison",
]
