"""Unit tests for the calculation service entry points."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

import pytest

from directortax.backend.app.models import (
    CalculationType,
    CorporationTaxOutcome,
    PersonalTaxOutcome,
    SalaryOptimisationOutcome,
    SalaryOptimisationRequest,
    ScenarioComparisonOutcome,
    SoleTraderOutcome,
)
from directortax.backend.app.services import calculation_service
from directortax.backend.app.services.calculation_service import (
    REPORT_SCENARIO_LIMIT,
    calculate_corporation_tax_liability,
    calculate_optimal_salary,
    calculate_personal_tax,
    calculate_sole_trader_tax,
    compare_scenarios,
    recalculate,
)

CALCULATED_AT = datetime(2024, 6, 15, 9, 30, tzinfo=timezone.utc)


def _optimisation_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "clientId": "client-1",
        "taxYear": "2024-25",
        "availableProfit": 60_000,
    }
    payload.update(overrides)
    return payload


def test_salary_optimisation_maximising_take_home() -> None:
    result = calculate_optimal_salary(
        _optimisation_payload(considerEmployerNI=False), calculated_at=CALCULATED_AT
    )

    outcome = result.outcome
    assert isinstance(outcome, SalaryOptimisationOutcome)
    assert outcome.objective == "maximise_take_home"
    assert result.calculation_type is CalculationType.SALARY_OPTIMIZATION
    assert result.tax_year == "2024-25"
    assert result.total_take_home == outcome.optimal.take_home
    assert result.total_take_home == max(record.take_home for record in result.scenarios)
    assert outcome.candidates_evaluated == len(result.scenarios)
    assert result.report is not None
    assert len(result.report.results.scenario_comparison) == min(
        REPORT_SCENARIO_LIMIT, len(result.scenarios)
    )
    assert result.recommendations


def test_salary_optimisation_minimising_cost_by_default() -> None:
    result = calculate_optimal_salary(_optimisation_payload(), calculated_at=CALCULATED_AT)

    outcome = result.outcome
    assert outcome.objective == "minimise_company_cost"
    assert outcome.optimal.cost_to_company == min(
        record.cost_to_company for record in result.scenarios
    )


def test_current_arrangement_drives_estimated_savings() -> None:
    result = calculate_optimal_salary(
        _optimisation_payload(
            considerEmployerNI=False, currentSalary=45_000, currentDividend=5_000
        ),
        calculated_at=CALCULATED_AT,
    )

    outcome = result.outcome
    assert outcome.current is not None
    assert outcome.current.name == "Current arrangement"
    assert outcome.estimated_savings == pytest.approx(
        outcome.optimal.take_home - outcome.current.take_home, abs=0.02
    )
    titles = [recommendation.title for recommendation in result.recommendations]
    assert "Optimize Salary/Dividend Split" in titles


def test_target_take_home_stands_in_for_profit() -> None:
    result = calculate_optimal_salary(
        {"clientId": "client-1", "taxYear": "2024-25", "targetTakeHome": 40_000}
    )

    assert result.parameters["availableProfit"] == 40_000
    assert result.outcome.optimal.available_profit == 40_000


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"availableProfit": None}, "availableProfit or targetTakeHome is required"),
        ({"availableProfit": 0}, "greater than zero"),
        ({"minSalary": 20_000, "maxSalary": 10_000}, "maxSalary cannot be below"),
        ({"taxYear": "2024"}, "YYYY-YY"),
        ({"clientId": ""}, "clientId"),
    ],
)
def test_invalid_optimisation_payloads(overrides: dict[str, Any], message: str) -> None:
    with pytest.raises(ValueError, match=message):
        calculate_optimal_salary(_optimisation_payload(**overrides))


def test_unsupported_year_uses_latest_rates(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        result = calculate_optimal_salary(_optimisation_payload(taxYear="2031-32"))

    assert result.tax_year == "2025-26"
    assert result.parameters["taxYear"] == "2031-32"
    assert "falling back" in caplog.text


def test_request_model_is_accepted_directly() -> None:
    request = SalaryOptimisationRequest(
        client_id="client-1", tax_year="2024-25", available_profit=60_000
    )

    result = calculate_optimal_salary(request, calculation_id="fixed-id")

    assert result.id == "fixed-id"
    assert result.report.calculation_id == "fixed-id"


def test_optimisation_is_deterministic() -> None:
    first = calculate_optimal_salary(
        _optimisation_payload(), calculation_id="calc", calculated_at=CALCULATED_AT
    )
    second = calculate_optimal_salary(
        _optimisation_payload(),
        calculation_id="calc",
        calculated_at=CALCULATED_AT,
        max_workers=4,
    )

    assert first == second


def test_profiling_logs_timings(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("DIRECTORTAX_PROFILE_CALCULATIONS", "true")

    with caplog.at_level(logging.DEBUG, logger=calculation_service.__name__):
        calculate_optimal_salary(_optimisation_payload())

    assert "calculate_optimal_salary timings" in caplog.text


def test_scenario_comparison_picks_highest_take_home() -> None:
    result = compare_scenarios(
        {
            "clientId": "client-1",
            "taxYear": "2024-25",
            "availableProfit": 80_000,
            "scenarios": [
                {"name": "Dividends only", "salary": 0},
                {"name": "Allowance", "salary": 12_570},
                {"name": "All salary", "salary": 60_000},
            ],
        },
        calculated_at=CALCULATED_AT,
    )

    outcome = result.outcome
    assert isinstance(outcome, ScenarioComparisonOutcome)
    assert [record.name for record in result.scenarios] == [
        "Dividends only",
        "Allowance",
        "All salary",
    ]
    best = max(result.scenarios, key=lambda record: record.take_home)
    assert outcome.best == best
    assert outcome.summary.best_for_take_home == best.name
    assert len(result.report.results.scenario_comparison) == 3
    assert result.recommendations


def test_scenario_comparison_infers_profit() -> None:
    result = compare_scenarios(
        {
            "clientId": "client-1",
            "taxYear": "2024-25",
            "scenarios": [
                {"salary": 12_570, "dividend": 30_000},
                {"salary": 20_000, "dividend": 20_000},
            ],
        }
    )

    assert result.parameters["availableProfit"] == 42_570
    first = result.scenarios[0]
    assert first.dividend < 30_000
    assert first.dividend == first.dividend_pool


def test_scenario_comparison_never_picks_unfundable_scenario() -> None:
    result = compare_scenarios(
        {
            "clientId": "client-1",
            "taxYear": "2024-25",
            "availableProfit": 30_000,
            "scenarios": [
                {"name": "Salary above profit", "salary": 40_000},
                {"name": "Allowance", "salary": 12_570},
            ],
        }
    )

    unfundable, allowance = result.scenarios
    assert not unfundable.is_fundable
    assert unfundable.take_home > allowance.take_home
    assert allowance.is_fundable
    assert result.outcome.best.name == "Allowance"
    assert result.outcome.summary.best_for_take_home == "Allowance"
    assert result.total_take_home == allowance.take_home


def test_scenario_comparison_rejects_only_unfundable_scenarios() -> None:
    with pytest.raises(ValueError, match="funded"):
        compare_scenarios(
            {
                "clientId": "client-1",
                "taxYear": "2024-25",
                "availableProfit": 10_000,
                "scenarios": [{"salary": 40_000}],
            }
        )


def test_scenario_comparison_requires_scenarios() -> None:
    with pytest.raises(ValueError, match="scenarios"):
        compare_scenarios({"clientId": "client-1", "taxYear": "2024-25", "scenarios": []})


def test_corporation_tax_from_revenue_and_expenses() -> None:
    result = calculate_corporation_tax_liability(
        {
            "clientId": "client-1",
            "revenue": 150_000,
            "expenses": 30_000,
            "pensionContributions": 5_000,
            "salaryExpense": 12_570,
            "taxYear": "2024-25",
        }
    )

    outcome = result.outcome
    assert isinstance(outcome, CorporationTaxOutcome)
    employer_nic = round(3_470 * 0.138, 2)
    profit = 150_000 - 30_000 - 5_000 - 12_570 - employer_nic
    assert outcome.employer_nic == employer_nic
    assert outcome.profit_before_tax == pytest.approx(profit, abs=0.01)
    assert outcome.corporation_tax == pytest.approx(
        profit * 0.25 - (250_000 - profit) * 0.015, abs=0.01
    )
    assert outcome.accounting_period_start == date(2024, 4, 1)
    assert outcome.accounting_period_end == date(2025, 3, 31)
    assert result.total_take_home == outcome.net_profit
    assert result.report.inputs.year_end_date == date(2025, 3, 31)
    assert result.recommendations == ()


def test_corporation_tax_loss_pays_nothing() -> None:
    result = calculate_corporation_tax_liability(
        {"clientId": "client-1", "revenue": 10_000, "expenses": 25_000, "taxYear": "2024-25"}
    )

    assert result.outcome.profit_before_tax == -15_000
    assert result.outcome.taxable_profit == 0
    assert result.outcome.corporation_tax == 0


def test_corporation_tax_year_from_accounting_period() -> None:
    result = calculate_corporation_tax_liability(
        {
            "clientId": "client-1",
            "profit": 40_000,
            "accountingPeriodEndYear": 2024,
            "accountingReferenceMonth": 12,
        }
    )

    assert result.tax_year == "2023-24"
    assert result.outcome.accounting_period_end == date(2024, 12, 31)
    assert result.outcome.accounting_period_start == date(2024, 1, 1)
    assert result.outcome.corporation_tax == pytest.approx(7_600)


def test_corporation_tax_requires_profit_or_revenue() -> None:
    with pytest.raises(ValueError, match="profit or revenue"):
        calculate_corporation_tax_liability({"clientId": "client-1"})


def test_personal_tax() -> None:
    result = calculate_personal_tax(
        {"clientId": "client-1", "taxYear": "2024-25", "salary": 30_000, "dividends": 10_000}
    )

    outcome = result.outcome
    assert isinstance(outcome, PersonalTaxOutcome)
    assert result.calculation_type is CalculationType.INCOME_TAX
    income_tax = (30_000 - 12_570) * 0.20
    employee_ni = (30_000 - 12_570) * 0.12
    dividend_tax = (10_000 - 500) * 0.0875
    assert outcome.income_tax == pytest.approx(income_tax, abs=0.01)
    assert outcome.employee_ni == pytest.approx(employee_ni, abs=0.01)
    assert outcome.dividend_tax == pytest.approx(dividend_tax, abs=0.01)
    assert outcome.net_income == pytest.approx(
        40_000 - income_tax - employee_ni - dividend_tax, abs=0.01
    )
    assert result.report.results.personal.total_gross_income == 40_000


def test_sole_trader_tax() -> None:
    result = calculate_sole_trader_tax(
        {"clientId": "client-1", "taxYear": "2024-25", "revenue": 45_000, "expenses": 5_000}
    )

    outcome = result.outcome
    assert isinstance(outcome, SoleTraderOutcome)
    profit = 40_000
    income_tax = (profit - 12_570) * 0.20
    class4 = (profit - 12_570) * 0.06
    assert outcome.profit_before_tax == profit
    assert outcome.income_tax == pytest.approx(income_tax, abs=0.01)
    assert outcome.class4_nic == pytest.approx(class4, abs=0.01)
    assert outcome.class2_nic == 0
    assert outcome.net_profit_after_tax == pytest.approx(
        profit - income_tax - class4, abs=0.01
    )
    assert result.report is None


def test_sole_trader_voluntary_class2() -> None:
    result = calculate_sole_trader_tax(
        {"clientId": "client-1", "taxYear": "2024-25", "revenue": 5_000, "payClass2": True}
    )

    assert result.outcome.class2_nic == pytest.approx(179.4)


@pytest.mark.parametrize(
    "calculate",
    [
        lambda: calculate_optimal_salary(_optimisation_payload(scottishTaxpayer=True)),
        lambda: compare_scenarios(
            {
                "clientId": "client-1",
                "taxYear": "2024-25",
                "scenarios": [{"salary": 12_570, "dividend": 20_000}],
            }
        ),
        lambda: calculate_corporation_tax_liability(
            {"clientId": "client-1", "profit": 90_000, "taxYear": "2024-25"}
        ),
        lambda: calculate_personal_tax(
            {"clientId": "client-1", "taxYear": "2024-25", "salary": 50_000}
        ),
        lambda: calculate_sole_trader_tax(
            {"clientId": "client-1", "taxYear": "2024-25", "revenue": 30_000}
        ),
    ],
)
def test_recalculate_reproduces_stored_result(calculate) -> None:
    original = calculate()

    repeated = recalculate(original, calculated_at=original.calculated_at)

    assert repeated.id == original.id
    assert repeated == original
