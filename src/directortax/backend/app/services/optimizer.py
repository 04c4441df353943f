"""Search salary levels for the best salary/dividend split.

Tax is piecewise linear in salary between the structural thresholds, so the
search evaluates a regular grid plus every threshold that falls inside the
requested range. Candidates are independent of one another and may be
evaluated in a thread pool; the output order never depends on scheduling.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Sequence

from directortax.backend.app.models import (
    OptimisationObjective,
    ScenarioInput,
    ScenarioResult,
    SearchConstraints,
)
from directortax.backend.config.schema import RateTable

from .scenario_evaluator import evaluate_scenario

_LOGGER = logging.getLogger(__name__)


def structural_thresholds(rates: RateTable) -> tuple[float, ...]:
    """Salary levels at which the marginal tax rate on salary changes."""

    return (
        0.0,
        rates.national_insurance.employee_primary_threshold,
        rates.income_tax.personal_allowance,
        rates.income_tax.basic_rate_threshold,
        rates.national_insurance.employee_upper_earnings_limit,
        rates.income_tax.higher_rate_threshold,
    )


def _grid(lower: float, upper: float, step: float) -> Iterable[float]:
    index = 0
    while True:
        value = lower + index * step
        if value > upper:
            break
        yield value
        index += 1
    if lower + (index - 1) * step < upper:
        yield upper


def candidate_salaries(
    profit: float, rates: RateTable, constraints: SearchConstraints
) -> list[float]:
    """Return the sorted, de-duplicated salary levels worth evaluating."""

    lower = constraints.min_salary
    upper = constraints.resolved_max_salary(profit)
    if upper < lower:
        raise ValueError(
            f"Salary search range is empty: maximum {upper:,.2f} is below "
            f"minimum {lower:,.2f}"
        )

    candidates = set(_grid(lower, upper, constraints.salary_increment))
    candidates.update(
        threshold
        for threshold in structural_thresholds(rates)
        if lower <= threshold <= upper
    )
    return sorted(candidates)


def _scenario_for(
    profit: float, salary: float, tax_year: str, constraints: SearchConstraints
) -> ScenarioInput:
    return ScenarioInput(
        available_profit=profit,
        salary=salary,
        tax_year=tax_year,
        other_income=constraints.other_income,
        personal_allowance_used=constraints.personal_allowance_used,
        dividend_allowance_used=constraints.dividend_allowance_used,
        scottish_taxpayer=constraints.scottish_taxpayer,
        student_loan=constraints.student_loan,
    )


def search(
    profit: float,
    rates: RateTable,
    constraints: SearchConstraints | None = None,
    *,
    max_workers: int | None = None,
) -> list[ScenarioResult]:
    """Evaluate every candidate salary and rank the fundable ones.

    Scenarios the company cannot fund (negative profit after corporation tax)
    are dropped. The result is sorted by take-home, highest first; equal
    take-home keeps ascending salary order.
    """

    constraints = constraints or SearchConstraints()
    salaries = candidate_salaries(profit, rates, constraints)
    inputs = [
        _scenario_for(profit, salary, rates.tax_year, constraints)
        for salary in salaries
    ]

    if max_workers is not None and max_workers > 1 and len(inputs) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            evaluated = list(
                executor.map(lambda scenario: evaluate_scenario(scenario, rates), inputs)
            )
    else:
        evaluated = [evaluate_scenario(scenario, rates) for scenario in inputs]

    fundable = [scenario for scenario in evaluated if scenario.is_fundable]
    _LOGGER.debug(
        "Evaluated %d salary candidates for profit %.2f; %d fundable",
        len(evaluated),
        profit,
        len(fundable),
    )
    return sorted(fundable, key=lambda scenario: -scenario.take_home)


def select_optimal(
    scenarios: Sequence[ScenarioResult], objective: OptimisationObjective
) -> ScenarioResult:
    """Pick the best scenario for ``objective``; ties go to the lowest salary."""

    if not scenarios:
        raise ValueError("No fundable salary scenarios to choose from")

    ordered = sorted(scenarios, key=lambda scenario: scenario.salary)
    if objective is OptimisationObjective.MINIMISE_COMPANY_COST:
        return min(ordered, key=lambda scenario: scenario.cost_to_company)
    return max(ordered, key=lambda scenario: scenario.take_home)


__all__ = [
    "candidate_salaries",
    "search",
    "select_optimal",
    "structural_thresholds",
]
