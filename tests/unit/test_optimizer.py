"""Unit tests for the salary search and optimal selection."""

from __future__ import annotations

import pytest

from directortax.backend.app.models import (
    OptimisationObjective,
    ScenarioResult,
    SearchConstraints,
)
from directortax.backend.app.services.optimizer import (
    candidate_salaries,
    search,
    select_optimal,
    structural_thresholds,
)
from directortax.backend.app.services.scenario_evaluator import evaluate
from directortax.backend.config.schema import RateTable


def test_candidates_include_grid_and_thresholds(rates: RateTable) -> None:
    constraints = SearchConstraints(min_salary=0, max_salary=60_000, salary_increment=5_000)

    candidates = candidate_salaries(80_000, rates, constraints)

    assert candidates == sorted(set(candidates))
    assert {0, 5_000, 55_000, 60_000} <= set(candidates)
    assert {12_570, 50_270} <= set(candidates)
    assert 125_140 not in candidates


def test_candidates_include_range_end_off_grid(rates: RateTable) -> None:
    constraints = SearchConstraints(min_salary=1_000, max_salary=3_500, salary_increment=1_000)

    assert candidate_salaries(10_000, rates, constraints) == [1_000, 2_000, 3_000, 3_500]


def test_default_range_is_capped_by_profit(rates: RateTable) -> None:
    candidates = candidate_salaries(30_000, rates, SearchConstraints())

    assert max(candidates) == 30_000
    assert 12_570 in candidates


def test_structural_thresholds_follow_rate_table(rates: RateTable) -> None:
    assert structural_thresholds(rates) == (0.0, 12_570, 12_570, 50_270, 50_270, 125_140)


def test_search_ranks_by_take_home(rates: RateTable) -> None:
    ranked = search(80_000, rates)

    take_homes = [scenario.take_home for scenario in ranked]
    assert take_homes == sorted(take_homes, reverse=True)
    assert all(scenario.is_fundable for scenario in ranked)


def test_search_discards_unfundable_salaries(rates: RateTable) -> None:
    constraints = SearchConstraints(min_salary=0, max_salary=40_000, salary_increment=5_000)

    ranked = search(20_000, rates, constraints)

    assert ranked
    assert max(scenario.salary for scenario in ranked) <= 20_000


def test_parallel_search_matches_serial(rates: RateTable) -> None:
    serial = search(95_000, rates)
    parallel = search(95_000, rates, max_workers=4)

    assert [scenario.salary for scenario in parallel] == [
        scenario.salary for scenario in serial
    ]
    assert [scenario.take_home for scenario in parallel] == [
        scenario.take_home for scenario in serial
    ]


SCAN_STEP = 100


def _full_scan(profit: int, rates: RateTable) -> list[ScenarioResult]:
    """Evaluate every salary from 0 to ``profit`` in 100 pound steps."""

    scanned = [
        evaluate(profit, salary, "2024-25", rates=rates)
        for salary in range(0, profit + 1, SCAN_STEP)
    ]
    return [scenario for scenario in scanned if scenario.is_fundable]


def test_no_scanned_salary_has_lower_total_tax(rates: RateTable) -> None:
    """Profit 50,000 for 2024-25 checked against every 100 pound salary step."""

    chosen = select_optimal(
        search(50_000, rates), OptimisationObjective.MAXIMISE_TAKE_HOME
    )

    scanned = _full_scan(50_000, rates)
    assert chosen.salary == 12_570
    assert chosen.total_tax <= min(scenario.total_tax for scenario in scanned) + 1e-6


@pytest.mark.parametrize("profit", [30_000, 50_000])
def test_take_home_optimum_beats_full_scan(rates: RateTable, profit: int) -> None:
    chosen = select_optimal(search(profit, rates), OptimisationObjective.MAXIMISE_TAKE_HOME)

    best = max(scenario.take_home for scenario in _full_scan(profit, rates))
    assert chosen.take_home >= best - 1e-6


@pytest.mark.parametrize("profit", [30_000, 50_000])
def test_cost_optimum_beats_full_scan(rates: RateTable, profit: int) -> None:
    chosen = select_optimal(
        search(profit, rates), OptimisationObjective.MINIMISE_COMPANY_COST
    )

    cheapest = min(scenario.cost_to_company for scenario in _full_scan(profit, rates))
    assert chosen.cost_to_company <= cheapest + 1e-6


def test_cost_objective_does_not_minimise_total_tax(rates: RateTable) -> None:
    """Cost to company leaves out personal tax, so its optimum pays more tax overall."""

    ranked = search(50_000, rates)
    cheapest = select_optimal(ranked, OptimisationObjective.MINIMISE_COMPANY_COST)
    richest = select_optimal(ranked, OptimisationObjective.MAXIMISE_TAKE_HOME)

    assert cheapest.salary == 0
    assert cheapest.total_tax > richest.total_tax


def test_ties_resolve_to_lowest_salary(rates: RateTable) -> None:
    constraints = SearchConstraints(min_salary=0, max_salary=9_000, salary_increment=1_000)
    ranked = search(200_000, rates, constraints)

    optimal = select_optimal(ranked, OptimisationObjective.MINIMISE_COMPANY_COST)

    costs = [scenario.cost_to_company for scenario in ranked]
    tied = [scenario.salary for scenario in ranked if scenario.cost_to_company == min(costs)]
    assert optimal.salary == min(tied)


def test_select_optimal_requires_candidates() -> None:
    with pytest.raises(ValueError):
        select_optimal([], OptimisationObjective.MAXIMISE_TAKE_HOME)


def test_empty_range_is_rejected(rates: RateTable) -> None:
    constraints = SearchConstraints(min_salary=50_000)

    with pytest.raises(ValueError, match="range is empty"):
        candidate_salaries(30_000, rates, constraints)
