"""Orchestrate request validation, rate lookup and the tax engine.

Every entry point accepts either a raw mapping (for example a decoded JSON
body) or the matching request model, validates it, resolves the rate table
for the requested tax year and returns an immutable
:class:`TaxCalculationResult`. Unknown tax years fall back to the latest
configured rates with a logged warning. Profiling hooks live here so the
engine modules stay free of instrumentation.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from directortax.backend.app.models import (
    CalculationType,
    CorporationTaxOutcome,
    CorporationTaxRequest,
    PersonalTaxOutcome,
    PersonalTaxRequest,
    SalaryOptimisationOutcome,
    SalaryOptimisationRequest,
    ScenarioComparisonOutcome,
    ScenarioComparisonRequest,
    ScenarioInput,
    SoleTraderOutcome,
    SoleTraderRequest,
    TaxCalculationResult,
    format_validation_error,
)
from directortax.backend.config.year_config import resolve_rate_table

from .calculators import (
    calculate_class2_nic,
    calculate_class4_nic,
    calculate_corporation_tax,
    calculate_employer_ni,
    calculate_income_tax_bands,
    non_negative,
    round_currency,
    round_rate,
    safe_ratio,
)
from .optimizer import search, select_optimal
from .recommendations import generate_recommendations
from .result_builder import (
    build_corporation_report,
    build_personal_report,
    build_scenario_report,
    new_calculation_id,
    scenario_record,
    summarise_comparison,
)
from .scenario_evaluator import evaluate_personal, evaluate_scenario
from .tax_calendar import (
    accounting_period,
    tax_year_for_date,
    tax_year_label,
    tax_year_start_year,
)

_LOGGER = logging.getLogger(__name__)

REPORT_SCENARIO_LIMIT = 10
CURRENT_ARRANGEMENT_NAME = "Current arrangement"

RequestT = TypeVar("RequestT", bound=BaseModel)


def _profiling_enabled() -> bool:
    """Return ``True`` when calculation profiling should be captured."""

    flag = os.getenv("DIRECTORTAX_PROFILE_CALCULATIONS", "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


@contextmanager
def _profile_section(name: str, store: dict[str, float] | None):
    """Capture the duration of a named section when profiling is enabled."""

    if store is None:
        yield
        return

    start = perf_counter()
    try:
        yield
    finally:
        store[name] = perf_counter() - start


def _log_timings(label: str, timings: dict[str, float] | None, start: float | None) -> None:
    if timings is None or start is None:
        return
    timings["total"] = perf_counter() - start
    _LOGGER.debug(
        "%s timings (ms): %s",
        label,
        {name: round(duration * 1000, 3) for name, duration in timings.items()},
    )


def _validate(model: type[RequestT], payload: Mapping[str, Any] | RequestT) -> RequestT:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(format_validation_error(exc)) from exc


def _parameters(request: BaseModel) -> dict[str, Any]:
    return request.model_dump(mode="json", by_alias=True)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def calculate_optimal_salary(
    payload: Mapping[str, Any] | SalaryOptimisationRequest,
    *,
    calculation_id: str | None = None,
    calculated_at: datetime | None = None,
    max_workers: int | None = None,
) -> TaxCalculationResult:
    """Find the salary/dividend split that best meets the requested objective.

    The optimiser minimises cost to the company when ``considerEmployerNI`` is
    set (the default) and maximises take-home pay otherwise. When the current
    arrangement is supplied it is evaluated alongside so the recommendations
    can quantify the gain from switching.
    """

    request = _validate(SalaryOptimisationRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None
    overall_start = perf_counter() if timings is not None else None

    rates = resolve_rate_table(request.tax_year)
    profit = request.available_profit or 0.0
    calculation_id = calculation_id or new_calculation_id()
    calculated_at = calculated_at or _utc_now()

    with _profile_section("search", timings):
        ranked = search(
            profit, rates, request.search_constraints(), max_workers=max_workers
        )
    optimal = select_optimal(ranked, request.objective)

    current = None
    if request.has_current_arrangement:
        with _profile_section("current", timings):
            current = evaluate_scenario(
                ScenarioInput(
                    available_profit=profit,
                    salary=request.current_salary or 0.0,
                    tax_year=rates.tax_year,
                    other_income=request.other_income,
                    dividend=request.current_dividend,
                    personal_allowance_used=request.personal_allowance_used,
                    dividend_allowance_used=request.dividend_allowance_used,
                    scottish_taxpayer=request.scottish_taxpayer,
                    student_loan=request.student_loan,
                    name=CURRENT_ARRANGEMENT_NAME,
                ),
                rates,
            )

    estimated_savings = 0.0
    if current is not None:
        estimated_savings = non_negative(optimal.take_home - current.take_home)

    with _profile_section("assemble", timings):
        result = TaxCalculationResult(
            id=calculation_id,
            client_id=request.client_id,
            company_id=request.company_id,
            calculation_type=CalculationType.SALARY_OPTIMIZATION,
            tax_year=rates.tax_year,
            parameters=_parameters(request),
            outcome=SalaryOptimisationOutcome(
                objective=request.objective.value,
                optimal=scenario_record(optimal),
                current=scenario_record(current) if current is not None else None,
                estimated_savings=round_currency(estimated_savings),
                candidates_evaluated=len(ranked),
            ),
            total_take_home=round_currency(optimal.take_home),
            total_tax_liability=round_currency(optimal.total_tax),
            scenarios=tuple(scenario_record(scenario) for scenario in ranked),
            report=build_scenario_report(
                calculation_id,
                request.client_id,
                CalculationType.SALARY_OPTIMIZATION,
                optimal,
                rates,
                comparison=ranked[:REPORT_SCENARIO_LIMIT],
            ),
            calculated_at=calculated_at,
        )

    with _profile_section("recommendations", timings):
        recommendations = generate_recommendations(result, rates)

    _log_timings("calculate_optimal_salary", timings, overall_start)
    _LOGGER.debug(
        "Optimal salary %.2f for profit %.2f (%s); %d recommendations",
        optimal.salary,
        profit,
        request.objective.value,
        len(recommendations),
    )
    return result.model_copy(update={"recommendations": tuple(recommendations)})


def compare_scenarios(
    payload: Mapping[str, Any] | ScenarioComparisonRequest,
    *,
    calculation_id: str | None = None,
    calculated_at: datetime | None = None,
) -> TaxCalculationResult:
    """Evaluate user-defined salary/dividend splits side by side.

    The fundable scenario with the highest take-home pay is reported as the
    best. Scenarios the company cannot pay for stay in the comparison, marked
    with ``isFundable: false``.
    """

    request = _validate(ScenarioComparisonRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None
    overall_start = perf_counter() if timings is not None else None

    rates = resolve_rate_table(request.tax_year)
    profit = request.available_profit or 0.0
    calculation_id = calculation_id or new_calculation_id()
    calculated_at = calculated_at or _utc_now()

    with _profile_section("scenarios", timings):
        evaluated = [
            evaluate_scenario(
                ScenarioInput(
                    available_profit=profit,
                    salary=definition.salary,
                    tax_year=rates.tax_year,
                    other_income=request.other_income,
                    dividend=definition.dividend,
                    personal_allowance_used=request.personal_allowance_used,
                    dividend_allowance_used=request.dividend_allowance_used,
                    scottish_taxpayer=request.scottish_taxpayer,
                    student_loan=request.student_loan,
                    name=definition.name,
                ),
                rates,
            )
            for definition in request.scenarios
        ]

    fundable = [scenario for scenario in evaluated if scenario.is_fundable]
    if not fundable:
        raise ValueError("None of the scenarios can be funded from the available profit")

    best = fundable[0]
    for scenario in fundable[1:]:
        if scenario.take_home > best.take_home:
            best = scenario

    records = tuple(scenario_record(scenario) for scenario in evaluated)
    result = TaxCalculationResult(
        id=calculation_id,
        client_id=request.client_id,
        company_id=request.company_id,
        calculation_type=CalculationType.SCENARIO_COMPARISON,
        tax_year=rates.tax_year,
        parameters=_parameters(request),
        outcome=ScenarioComparisonOutcome(
            best=scenario_record(best),
            summary=summarise_comparison(records),
        ),
        total_take_home=round_currency(best.take_home),
        total_tax_liability=round_currency(best.total_tax),
        scenarios=records,
        report=build_scenario_report(
            calculation_id,
            request.client_id,
            CalculationType.SCENARIO_COMPARISON,
            best,
            rates,
            comparison=evaluated,
        ),
        calculated_at=calculated_at,
    )

    with _profile_section("recommendations", timings):
        recommendations = generate_recommendations(result, rates)

    _log_timings("compare_scenarios", timings, overall_start)
    return result.model_copy(update={"recommendations": tuple(recommendations)})


def calculate_corporation_tax_liability(
    payload: Mapping[str, Any] | CorporationTaxRequest,
    *,
    calculation_id: str | None = None,
    calculated_at: datetime | None = None,
) -> TaxCalculationResult:
    """Corporation tax for one accounting period.

    Profit is taken as given or derived as revenue less expenses, pension
    contributions, salaries and the employer NI on those salaries. The
    accounting period ends on the reference date (31 March by default) of
    the year the tax year ends in.
    """

    request = _validate(CorporationTaxRequest, payload)
    calculation_id = calculation_id or new_calculation_id()
    calculated_at = calculated_at or _utc_now()

    if request.accounting_period_end_year is not None:
        end_year = request.accounting_period_end_year
    elif request.tax_year is not None:
        end_year = tax_year_start_year(request.tax_year) + 1
    else:
        end_year = tax_year_start_year(tax_year_for_date(calculated_at.date())) + 1

    period_start, period_end = accounting_period(
        end_year,
        request.accounting_reference_month,
        request.accounting_reference_day,
    )
    rates = resolve_rate_table(request.tax_year or tax_year_label(end_year - 1))

    employer_nic = calculate_employer_ni(request.salary_expense, rates.national_insurance)
    total_expenses = (
        request.expenses
        + request.pension_contributions
        + request.salary_expense
        + employer_nic
    )
    if request.profit is not None:
        profit_before_tax = request.profit
    else:
        profit_before_tax = (request.revenue or 0.0) - total_expenses

    taxable_profit = non_negative(profit_before_tax)
    corporation_tax = calculate_corporation_tax(taxable_profit, rates.corporation_tax)
    net_profit = taxable_profit - corporation_tax

    outcome = CorporationTaxOutcome(
        revenue=round_currency(request.revenue or 0.0),
        expenses=round_currency(request.expenses),
        pension_contributions=round_currency(request.pension_contributions),
        salary_expense=round_currency(request.salary_expense),
        employer_nic=round_currency(employer_nic),
        profit_before_tax=round_currency(profit_before_tax),
        taxable_profit=round_currency(taxable_profit),
        corporation_tax=round_currency(corporation_tax),
        effective_rate=round_rate(safe_ratio(corporation_tax, taxable_profit)),
        net_profit=round_currency(net_profit),
        accounting_period_start=period_start,
        accounting_period_end=period_end,
    )

    return TaxCalculationResult(
        id=calculation_id,
        client_id=request.client_id,
        company_id=request.company_id,
        calculation_type=CalculationType.CORPORATION_TAX,
        tax_year=rates.tax_year,
        parameters=_parameters(request),
        outcome=outcome,
        total_take_home=outcome.net_profit,
        total_tax_liability=outcome.corporation_tax,
        report=build_corporation_report(
            calculation_id, request.client_id, outcome, rates.tax_year
        ),
        calculated_at=calculated_at,
    )


def calculate_personal_tax(
    payload: Mapping[str, Any] | PersonalTaxRequest,
    *,
    calculation_id: str | None = None,
    calculated_at: datetime | None = None,
) -> TaxCalculationResult:
    """Income tax, employee NI and dividend tax on known personal income."""

    request = _validate(PersonalTaxRequest, payload)
    calculation_id = calculation_id or new_calculation_id()
    rates = resolve_rate_table(request.tax_year)

    personal = evaluate_personal(
        request.salary,
        request.dividends,
        rates,
        other_income=request.other_income,
    )
    gross_income = personal.gross_income
    total_tax = personal.total_tax
    net_income = gross_income - total_tax

    outcome = PersonalTaxOutcome(
        salary=round_currency(request.salary),
        dividends=round_currency(request.dividends),
        other_income=round_currency(request.other_income),
        gross_income=round_currency(gross_income),
        income_tax=round_currency(personal.income_tax.total_tax),
        employee_ni=round_currency(personal.employee_ni),
        dividend_tax=round_currency(personal.dividend_tax.total_tax),
        total_tax=round_currency(total_tax),
        net_income=round_currency(net_income),
        effective_rate=round_rate(safe_ratio(total_tax, gross_income)),
    )

    return TaxCalculationResult(
        id=calculation_id,
        client_id=request.client_id,
        company_id=request.company_id,
        calculation_type=CalculationType.INCOME_TAX,
        tax_year=rates.tax_year,
        parameters=_parameters(request),
        outcome=outcome,
        total_take_home=outcome.net_income,
        total_tax_liability=outcome.total_tax,
        report=build_personal_report(calculation_id, request.client_id, personal, rates),
        calculated_at=calculated_at or _utc_now(),
    )


def calculate_sole_trader_tax(
    payload: Mapping[str, Any] | SoleTraderRequest,
    *,
    calculation_id: str | None = None,
    calculated_at: datetime | None = None,
) -> TaxCalculationResult:
    """Income tax and Class 2/4 NIC on self-employed trading profit."""

    request = _validate(SoleTraderRequest, payload)
    rates = resolve_rate_table(request.tax_year)

    profit = non_negative(request.revenue - request.expenses)
    income_tax = calculate_income_tax_bands(profit, rates).total_tax
    class4_nic = calculate_class4_nic(profit, rates.self_employment)
    class2_nic = calculate_class2_nic(
        profit, rates.self_employment, voluntary=request.pay_class2
    )
    total_tax = income_tax + class4_nic + class2_nic
    net_profit = profit - total_tax

    outcome = SoleTraderOutcome(
        revenue=round_currency(request.revenue),
        expenses=round_currency(request.expenses),
        profit_before_tax=round_currency(profit),
        income_tax=round_currency(income_tax),
        class4_nic=round_currency(class4_nic),
        class2_nic=round_currency(class2_nic),
        total_tax=round_currency(total_tax),
        net_profit_after_tax=round_currency(net_profit),
        effective_rate=round_rate(safe_ratio(total_tax, profit)),
    )

    return TaxCalculationResult(
        id=calculation_id or new_calculation_id(),
        client_id=request.client_id,
        company_id=request.company_id,
        calculation_type=CalculationType.SOLE_TRADER,
        tax_year=rates.tax_year,
        parameters=_parameters(request),
        outcome=outcome,
        total_take_home=outcome.net_profit_after_tax,
        total_tax_liability=outcome.total_tax,
        calculated_at=calculated_at or _utc_now(),
    )


_CALCULATORS: Mapping[CalculationType, Callable[..., TaxCalculationResult]] = {
    CalculationType.SALARY_OPTIMIZATION: calculate_optimal_salary,
    CalculationType.SCENARIO_COMPARISON: compare_scenarios,
    CalculationType.CORPORATION_TAX: calculate_corporation_tax_liability,
    CalculationType.INCOME_TAX: calculate_personal_tax,
    CalculationType.SOLE_TRADER: calculate_sole_trader_tax,
}


def recalculate(
    record: TaxCalculationResult, *, calculated_at: datetime | None = None
) -> TaxCalculationResult:
    """Re-run a stored calculation against the current rate tables.

    The stored parameters are validated again and the result keeps the
    original calculation id.
    """

    calculator = _CALCULATORS[record.calculation_type]
    _LOGGER.debug(
        "Recalculating %s calculation %s", record.calculation_type.value, record.id
    )
    return calculator(
        dict(record.parameters),
        calculation_id=record.id,
        calculated_at=calculated_at,
    )


__all__ = [
    "calculate_corporation_tax_liability",
    "calculate_optimal_salary",
    "calculate_personal_tax",
    "calculate_sole_trader_tax",
    "compare_scenarios",
    "recalculate",
]
