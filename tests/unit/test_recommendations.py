"""Unit tests for the recommendation rules."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import pytest

from directortax.backend.app.models import (
    CalculationType,
    Priority,
    Recommendation,
    RecommendationType,
    SalaryOptimisationOutcome,
    ScenarioRecord,
    TaxCalculationResult,
)
from directortax.backend.app.services.calculation_service import (
    calculate_corporation_tax_liability,
)
from directortax.backend.app.services.recommendations import (
    generate_recommendations,
    sort_recommendations,
)
from directortax.backend.config.schema import RateTable

CALCULATED_AT = datetime(2024, 6, 15, 9, 30, tzinfo=timezone.utc)


def _record(**overrides: Any) -> ScenarioRecord:
    values: dict[str, Any] = {
        "name": "Salary £12,570",
        "salary": 12_570,
        "dividend": 30_000,
        "available_profit": 60_000,
        "employer_ni": 478.86,
        "taxable_profit": 46_951.14,
        "corporation_tax": 8_920.72,
        "profit_after_tax": 38_030.42,
        "dividend_pool": 38_030.42,
        "income_tax": 0,
        "employee_ni": 0,
        "dividend_tax": 3_366.52,
        "total_personal_tax": 3_366.52,
        "take_home": 47_233.91,
        "total_tax": 12_766.10,
        "cost_to_company": 21_969.58,
        "effective_rate": 0.0665,
        "effective_total_rate": 0.2128,
    }
    values.update(overrides)
    return ScenarioRecord(**values)


def _result(
    optimal: ScenarioRecord,
    *,
    current: ScenarioRecord | None = None,
    total_tax: float = 12_766.10,
    parameters: dict[str, Any] | None = None,
    calculated_at: datetime = CALCULATED_AT,
) -> TaxCalculationResult:
    return TaxCalculationResult(
        id="calc-1",
        client_id="client-1",
        calculation_type=CalculationType.SALARY_OPTIMIZATION,
        tax_year="2024-25",
        parameters=parameters or {},
        outcome=SalaryOptimisationOutcome(
            objective="maximise_take_home",
            optimal=optimal,
            current=current,
            candidates_evaluated=1,
        ),
        total_take_home=optimal.take_home,
        total_tax_liability=total_tax,
        calculated_at=calculated_at,
    )


def _titles(recommendations: list[Recommendation]) -> list[str]:
    return [recommendation.title for recommendation in recommendations]


def _by_title(recommendations: list[Recommendation], title: str) -> Recommendation:
    matches = [item for item in recommendations if item.title == title]
    assert matches, f"missing recommendation {title!r}"
    return matches[0]


def test_baseline_recommendations_are_compliance_and_planning(rates: RateTable) -> None:
    recommendations = generate_recommendations(_result(_record()), rates)

    assert _titles(recommendations) == [
        "PAYE/RTI Compliance",
        "Corporation Tax Return",
        "Self Assessment Requirements",
        "Multi-Year Tax Planning",
    ]
    assert recommendations[0].deadline == date(2024, 7, 19)
    assert recommendations[1].deadline == date(2025, 12, 31)
    assert recommendations[2].deadline == date(2026, 1, 31)


@pytest.mark.parametrize(
    ("current_take_home", "priority"),
    [
        (44_000.0, Priority.HIGH),
        (45_733.91, Priority.MEDIUM),
        (46_733.91, Priority.LOW),
    ],
)
def test_salary_rebalancing_priority_follows_saving(
    rates: RateTable, current_take_home: float, priority: Priority
) -> None:
    current = _record(name="Current arrangement", take_home=current_take_home)

    recommendations = generate_recommendations(_result(_record(), current=current), rates)

    rebalancing = _by_title(recommendations, "Optimize Salary/Dividend Split")
    assert rebalancing.type is RecommendationType.SALARY_OPTIMIZATION
    assert rebalancing.priority is priority
    assert rebalancing.potential_saving == pytest.approx(47_233.91 - current_take_home)
    assert rebalancing.deadline == date(2025, 4, 5)


def test_no_rebalancing_when_current_is_better(rates: RateTable) -> None:
    current = _record(take_home=50_000)

    recommendations = generate_recommendations(_result(_record(), current=current), rates)

    assert "Optimize Salary/Dividend Split" not in _titles(recommendations)


def test_ni_threshold_heuristic(rates: RateTable) -> None:
    above = generate_recommendations(_result(_record(salary=50_000)), rates)
    near = generate_recommendations(_result(_record(salary=30_000)), rates)

    saving = _by_title(above, "National Insurance Threshold Optimization").potential_saving
    assert saving == pytest.approx((50_000 - 12_570) * 0.02)
    assert "National Insurance Threshold Optimization" not in _titles(near)


def test_pension_headroom_is_capped_by_annual_allowance(rates: RateTable) -> None:
    modest = generate_recommendations(_result(_record(dividend=60_000)), rates)
    large = generate_recommendations(_result(_record(dividend=700_000)), rates)
    small = generate_recommendations(_result(_record(dividend=20_000)), rates)

    title = "Pension Contribution Opportunity"
    assert _by_title(modest, title).potential_saving == pytest.approx(72_570 * 0.1 * 0.4)
    assert _by_title(large, title).potential_saving == pytest.approx(60_000 * 0.4)
    assert title not in _titles(small)


def test_marginal_relief_band_is_exclusive(rates: RateTable) -> None:
    inside = generate_recommendations(_result(_record(taxable_profit=80_000)), rates)
    boundary = generate_recommendations(_result(_record(taxable_profit=50_000)), rates)

    assert "Corporation Tax Marginal Relief" in _titles(inside)
    assert "Corporation Tax Marginal Relief" not in _titles(boundary)


def test_marginal_relief_quotes_effective_rate(rates: RateTable) -> None:
    recommendations = generate_recommendations(
        _result(_record(taxable_profit=100_000)), rates
    )

    recommendation = _by_title(recommendations, "Corporation Tax Marginal Relief")
    assert "effective 22.75%" in recommendation.description


def test_unused_dividend_allowance(rates: RateTable) -> None:
    recommendations = generate_recommendations(_result(_record(dividend=100)), rates)

    recommendation = _by_title(recommendations, "Dividend Allowance Utilization")
    assert recommendation.priority is Priority.LOW
    assert "£400" in recommendation.description
    assert "Self Assessment Requirements" not in _titles(recommendations)


def test_large_liability_triggers_structure_review(rates: RateTable) -> None:
    recommendations = generate_recommendations(
        _result(_record(), total_tax=25_000), rates
    )

    assert "Business Structure Review" in _titles(recommendations)


def test_year_end_planning_close_to_5_april(rates: RateTable) -> None:
    result = _result(_record())

    early = generate_recommendations(result, rates)
    late = generate_recommendations(result, rates, reference_date=date(2025, 2, 1))

    assert "Year-End Tax Planning" not in _titles(early)
    year_end = _by_title(late, "Year-End Tax Planning")
    assert year_end.priority is Priority.HIGH
    assert year_end.deadline == date(2025, 4, 5)
    assert _by_title(late, "PAYE/RTI Compliance").deadline == date(2025, 3, 19)


def test_unmodelled_flags_produce_warnings(rates: RateTable) -> None:
    result = _result(
        _record(), parameters={"scottishTaxpayer": True, "studentLoan": True}
    )

    warnings = [
        item
        for item in generate_recommendations(result, rates)
        if item.type is RecommendationType.WARNING
    ]

    assert len(warnings) == 2
    assert all(item.priority is Priority.HIGH for item in warnings)


def test_results_without_scenario_have_no_recommendations(rates: RateTable) -> None:
    result = calculate_corporation_tax_liability(
        {"clientId": "client-1", "profit": 100_000, "taxYear": "2024-25"}
    )

    assert generate_recommendations(result, rates) == []


def test_recommendations_are_deterministic(rates: RateTable) -> None:
    result = _result(_record(salary=50_000, dividend=60_000, taxable_profit=80_000))

    assert generate_recommendations(result, rates) == generate_recommendations(
        result, rates
    )


def test_sort_orders_by_priority_then_saving() -> None:
    def build(priority: Priority, saving: float) -> Recommendation:
        return Recommendation(
            type=RecommendationType.OPTIMIZATION,
            priority=priority,
            title=f"{priority.value}-{saving}",
            description="",
            potential_saving=saving,
        )

    ordered = sort_recommendations(
        [
            build(Priority.LOW, 900),
            build(Priority.HIGH, 10),
            build(Priority.MEDIUM, 50),
            build(Priority.HIGH, 500),
        ]
    )

    assert [(item.priority, item.potential_saving) for item in ordered] == [
        (Priority.HIGH, 500),
        (Priority.HIGH, 10),
        (Priority.MEDIUM, 50),
        (Priority.LOW, 900),
    ]
