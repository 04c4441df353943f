"""Derive prioritised, quantified advice from a calculation result.

Each rule family inspects the chosen scenario independently and returns zero
or more :class:`Recommendation` records. Nothing here reads the clock: the
deadlines are computed from the tax year and a reference date, which defaults
to the day the result was calculated.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Mapping

from directortax.backend.app.models import (
    Priority,
    Recommendation,
    RecommendationType,
    ScenarioRecord,
    TaxCalculationResult,
)
from directortax.backend.config.schema import RateTable

from .calculators import (
    effective_corporation_tax_rate,
    format_currency,
    format_percentage,
)
from .tax_calendar import (
    corporation_tax_return_deadline,
    days_until_tax_year_end,
    next_tax_year_end,
    rti_deadline,
    self_assessment_deadline,
)

NI_THRESHOLD_HEURISTIC_RATE = 0.02
NI_THRESHOLD_MINIMUM_SAVING = 500.0
PENSION_INCOME_THRESHOLD = 50_000.0
PENSION_CONTRIBUTION_SHARE = 0.10
PENSION_RELIEF_RATE = 0.40
DIVIDEND_ALLOWANCE_HEADROOM = 0.80
BUSINESS_STRUCTURE_TAX_THRESHOLD = 20_000.0
YEAR_END_WINDOW_DAYS = 90


@dataclass(frozen=True)
class _RuleContext:
    """Inputs shared by every rule for one calculation."""

    result: TaxCalculationResult
    optimal: ScenarioRecord
    rates: RateTable
    current: ScenarioRecord | None
    reference_date: date

    @property
    def parameters(self) -> Mapping[str, Any]:
        return self.result.parameters


def _salary_rebalancing(context: _RuleContext) -> list[Recommendation]:
    current = context.current
    optimal = context.optimal
    if current is None or optimal.take_home <= current.take_home:
        return []

    saving = optimal.take_home - current.take_home
    if saving > 2_000:
        priority = Priority.HIGH
    elif saving > 1_000:
        priority = Priority.MEDIUM
    else:
        priority = Priority.LOW

    return [
        Recommendation(
            type=RecommendationType.SALARY_OPTIMIZATION,
            priority=priority,
            title="Optimize Salary/Dividend Split",
            description=(
                f"Adjusting your salary to {format_currency(optimal.salary)} and "
                f"dividend to {format_currency(optimal.dividend)} could increase "
                f"your take-home pay by {format_currency(saving)} annually."
            ),
            potential_saving=saving,
            action_required=(
                "Review and implement new salary/dividend structure with payroll provider"
            ),
            deadline=next_tax_year_end(context.reference_date),
        )
    ]


def _ni_threshold(context: _RuleContext) -> list[Recommendation]:
    threshold = context.rates.national_insurance.employee_primary_threshold
    margin = context.optimal.salary - threshold
    if margin <= 0:
        return []

    saving = margin * NI_THRESHOLD_HEURISTIC_RATE
    if saving <= NI_THRESHOLD_MINIMUM_SAVING:
        return []

    return [
        Recommendation(
            type=RecommendationType.OPTIMIZATION,
            priority=Priority.MEDIUM,
            title="National Insurance Threshold Optimization",
            description=(
                "Consider salary adjustments around National Insurance thresholds "
                "to minimize contributions while maximizing benefits."
            ),
            potential_saving=saving,
            action_required="Review salary structure against NI thresholds",
        )
    ]


def _pension_headroom(context: _RuleContext) -> list[Recommendation]:
    income = context.optimal.salary + context.optimal.dividend
    if income <= PENSION_INCOME_THRESHOLD:
        return []

    contribution = min(
        income * PENSION_CONTRIBUTION_SHARE,
        context.rates.pensions.annual_allowance,
    )
    return [
        Recommendation(
            type=RecommendationType.PENSION_CONTRIBUTION,
            priority=Priority.MEDIUM,
            title="Pension Contribution Opportunity",
            description=(
                f"Consider pension contributions up to {format_currency(contribution)} "
                "to reduce tax liability and build retirement savings."
            ),
            potential_saving=contribution * PENSION_RELIEF_RATE,
            action_required="Review pension contribution options with pension provider",
        )
    ]


def _marginal_relief(context: _RuleContext) -> list[Recommendation]:
    corporation_tax = context.rates.corporation_tax
    if not corporation_tax.has_marginal_relief:
        return []

    profit = context.optimal.taxable_profit
    if not (
        corporation_tax.marginal_relief_lower_threshold
        < profit
        < corporation_tax.marginal_relief_upper_threshold
    ):
        return []

    effective = effective_corporation_tax_rate(profit, corporation_tax)
    return [
        Recommendation(
            type=RecommendationType.OPTIMIZATION,
            priority=Priority.MEDIUM,
            title="Corporation Tax Marginal Relief",
            description=(
                "Company profits fall within marginal relief band, taxed at an "
                f"effective {format_percentage(effective)}. Consider timing "
                "of income and expenses to optimize corporation tax."
            ),
            action_required="Review timing of income recognition and expense claims",
        )
    ]


def _dividend_allowance(context: _RuleContext) -> list[Recommendation]:
    allowance = context.rates.dividend_tax.allowance
    dividend = context.optimal.dividend
    if not 0 < dividend < allowance * DIVIDEND_ALLOWANCE_HEADROOM:
        return []

    return [
        Recommendation(
            type=RecommendationType.OPTIMIZATION,
            priority=Priority.LOW,
            title="Dividend Allowance Utilization",
            description=(
                f"You could take an additional {format_currency(allowance - dividend)} "
                "in tax-free dividends within your annual allowance."
            ),
            action_required="Consider increasing dividend within allowance",
        )
    ]


def _compliance(context: _RuleContext) -> list[Recommendation]:
    tax_year = context.result.tax_year
    recommendations: list[Recommendation] = []

    if context.optimal.salary > 0:
        recommendations.append(
            Recommendation(
                type=RecommendationType.COMPLIANCE,
                priority=Priority.HIGH,
                title="PAYE/RTI Compliance",
                description=(
                    "Ensure PAYE and RTI submissions are updated to reflect new "
                    "salary structure."
                ),
                action_required="Update payroll system and submit RTI returns",
                deadline=rti_deadline(context.reference_date),
            )
        )

    recommendations.append(
        Recommendation(
            type=RecommendationType.COMPLIANCE,
            priority=Priority.MEDIUM,
            title="Corporation Tax Return",
            description=(
                "Salary and dividend changes will affect corporation tax "
                "calculations and CT600 preparation."
            ),
            action_required="Review CT600 preparation with accountant",
            deadline=corporation_tax_return_deadline(tax_year),
        )
    )

    if context.optimal.dividend > context.rates.dividend_tax.allowance:
        recommendations.append(
            Recommendation(
                type=RecommendationType.COMPLIANCE,
                priority=Priority.MEDIUM,
                title="Self Assessment Requirements",
                description=(
                    "Dividend income above the allowance requires Self Assessment "
                    "registration and filing."
                ),
                action_required="Ensure Self Assessment registration and prepare SA100",
                deadline=self_assessment_deadline(tax_year),
            )
        )

    return recommendations


def _strategic(context: _RuleContext) -> list[Recommendation]:
    recommendations = [
        Recommendation(
            type=RecommendationType.PLANNING,
            priority=Priority.LOW,
            title="Multi-Year Tax Planning",
            description=(
                "Consider spreading income across tax years to optimize overall "
                "tax efficiency."
            ),
            action_required="Review multi-year income and tax planning strategy",
        )
    ]

    if context.result.total_tax_liability > BUSINESS_STRUCTURE_TAX_THRESHOLD:
        recommendations.append(
            Recommendation(
                type=RecommendationType.PLANNING,
                priority=Priority.MEDIUM,
                title="Business Structure Review",
                description=(
                    "High tax liability suggests potential benefits from reviewing "
                    "business structure and incorporation alternatives."
                ),
                action_required=(
                    "Consult with tax advisor on business structure optimization"
                ),
            )
        )

    if days_until_tax_year_end(context.reference_date) <= YEAR_END_WINDOW_DAYS:
        recommendations.append(
            Recommendation(
                type=RecommendationType.PLANNING,
                priority=Priority.HIGH,
                title="Year-End Tax Planning",
                description=(
                    "The tax year ends soon. Confirm final salary payments, dividend "
                    "declarations and pension contributions before 5 April."
                ),
                action_required="Schedule a year-end review with your accountant",
                deadline=next_tax_year_end(context.reference_date),
            )
        )

    return recommendations


def _unmodelled_flags(context: _RuleContext) -> list[Recommendation]:
    recommendations: list[Recommendation] = []
    if context.parameters.get("scottishTaxpayer"):
        recommendations.append(
            Recommendation(
                type=RecommendationType.WARNING,
                priority=Priority.HIGH,
                title="Scottish Income Tax Not Modelled",
                description=(
                    "Figures use the rest-of-UK income tax bands. Scottish rates and "
                    "thresholds differ and will change the income tax on salary."
                ),
                action_required="Recalculate income tax using Scottish rates",
            )
        )
    if context.parameters.get("studentLoan"):
        recommendations.append(
            Recommendation(
                type=RecommendationType.WARNING,
                priority=Priority.HIGH,
                title="Student Loan Repayments Not Included",
                description=(
                    "Student loan repayments are collected on salary and dividends "
                    "above the plan threshold and are not reflected in take-home pay."
                ),
                action_required="Estimate student loan repayments for this split",
            )
        )
    return recommendations


_RULES: tuple[Callable[[_RuleContext], list[Recommendation]], ...] = (
    _salary_rebalancing,
    _ni_threshold,
    _pension_headroom,
    _marginal_relief,
    _dividend_allowance,
    _compliance,
    _strategic,
    _unmodelled_flags,
)


def sort_recommendations(
    recommendations: list[Recommendation],
) -> list[Recommendation]:
    """Order by priority (HIGH first), then by potential saving, largest first."""

    return sorted(
        recommendations,
        key=lambda item: (-item.priority.rank, -item.potential_saving),
    )


def generate_recommendations(
    result: TaxCalculationResult,
    rates: RateTable,
    *,
    current: ScenarioRecord | None = None,
    reference_date: date | None = None,
) -> list[Recommendation]:
    """Return the recommendations that apply to ``result``.

    ``current`` is the director's existing arrangement; when omitted the
    current scenario stored on a salary optimisation outcome is used.
    Results without a chosen scenario yield no recommendations.
    """

    optimal = result.chosen_scenario
    if optimal is None:
        return []

    if current is None:
        current = getattr(result.outcome, "current", None)

    context = _RuleContext(
        result=result,
        optimal=optimal,
        rates=rates,
        current=current,
        reference_date=reference_date or result.calculated_at.date(),
    )

    recommendations: list[Recommendation] = []
    for rule in _RULES:
        recommendations.extend(rule(context))
    return sort_recommendations(recommendations)


__all__ = ["generate_recommendations", "sort_recommendations"]
