"""Savings analysis and implementation guidance for recommendations."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from directortax.backend.app.models import (
    ActionPlan,
    PrioritisedRecommendation,
    Priority,
    Recommendation,
    RecommendationType,
    SavingsAnalysis,
)

from .calculators import round_currency

_DEFAULT_EFFORT_MULTIPLIER = 0.5
_EFFORT_MULTIPLIERS: Mapping[RecommendationType, float] = {
    RecommendationType.SALARY_OPTIMIZATION: 0.8,
    RecommendationType.PENSION_CONTRIBUTION: 0.6,
    RecommendationType.COMPLIANCE: 1.0,
    RecommendationType.PLANNING: 0.4,
    RecommendationType.OPTIMIZATION: 0.7,
    RecommendationType.WARNING: 1.0,
}

_IMPLEMENTATION_STEPS: Mapping[RecommendationType, tuple[str, ...]] = {
    RecommendationType.SALARY_OPTIMIZATION: (
        "Review current salary and dividend arrangements",
        "Calculate optimal salary/dividend split",
        "Update employment contract if necessary",
        "Notify payroll provider of salary changes",
        "Update dividend resolutions and board minutes",
        "Implement changes from next payroll period",
    ),
    RecommendationType.PENSION_CONTRIBUTION: (
        "Review current pension arrangements",
        "Calculate optimal contribution levels",
        "Set up or increase pension contributions",
        "Update payroll for pension deductions",
        "Obtain pension contribution certificates",
    ),
    RecommendationType.COMPLIANCE: (
        "Review compliance requirements",
        "Update relevant systems and processes",
        "Submit required returns or notifications",
        "Maintain compliance records",
    ),
}
_DEFAULT_STEPS = ("Review recommendation with tax advisor",)

_TIMELINES: Mapping[RecommendationType, str] = {
    RecommendationType.SALARY_OPTIMIZATION: "2-4 weeks",
    RecommendationType.PENSION_CONTRIBUTION: "1-2 weeks",
    RecommendationType.COMPLIANCE: "Immediate",
    RecommendationType.PLANNING: "1-3 months",
    RecommendationType.OPTIMIZATION: "2-6 weeks",
    RecommendationType.WARNING: "Immediate",
}
_DEFAULT_TIMELINE = "2-4 weeks"

_REQUIRED_DOCUMENTS: Mapping[RecommendationType, tuple[str, ...]] = {
    RecommendationType.SALARY_OPTIMIZATION: (
        "Current employment contract",
        "Board resolution for salary changes",
        "Dividend vouchers and resolutions",
        "Updated payroll information",
    ),
    RecommendationType.PENSION_CONTRIBUTION: (
        "Pension scheme documentation",
        "Contribution certificates",
        "Payroll records",
    ),
    RecommendationType.COMPLIANCE: (
        "Relevant tax returns",
        "Supporting documentation",
        "Compliance certificates",
    ),
}
_DEFAULT_DOCUMENTS = ("Relevant supporting documentation",)

_EFFORT: Mapping[RecommendationType, Priority] = {
    RecommendationType.SALARY_OPTIMIZATION: Priority.MEDIUM,
    RecommendationType.PENSION_CONTRIBUTION: Priority.LOW,
    RecommendationType.COMPLIANCE: Priority.HIGH,
    RecommendationType.PLANNING: Priority.HIGH,
    RecommendationType.OPTIMIZATION: Priority.MEDIUM,
    RecommendationType.WARNING: Priority.HIGH,
}

_DEPENDENCIES: Mapping[RecommendationType, tuple[str, ...]] = {
    RecommendationType.SALARY_OPTIMIZATION: (
        "Payroll provider availability",
        "Board approval for changes",
        "Updated employment contracts",
    ),
    RecommendationType.PENSION_CONTRIBUTION: (
        "Pension provider setup",
        "Payroll system updates",
    ),
    RecommendationType.COMPLIANCE: (
        "Required documentation",
        "System access and updates",
    ),
}


def savings_to_effort_ratio(recommendation: Recommendation) -> float:
    multiplier = _EFFORT_MULTIPLIERS.get(
        recommendation.type, _DEFAULT_EFFORT_MULTIPLIER
    )
    return recommendation.potential_saving * multiplier


def analyse_savings(recommendations: Sequence[Recommendation]) -> SavingsAnalysis:
    """Total the potential savings and rank recommendations by payoff for effort."""

    savings_by_type: dict[str, float] = {}
    for recommendation in recommendations:
        key = recommendation.type.value
        savings_by_type[key] = savings_by_type.get(key, 0.0) + recommendation.potential_saving

    prioritised = sorted(
        (
            PrioritisedRecommendation(
                recommendation=recommendation,
                savings_to_effort_ratio=round_currency(
                    savings_to_effort_ratio(recommendation)
                ),
            )
            for recommendation in recommendations
        ),
        key=lambda entry: -entry.savings_to_effort_ratio,
    )

    return SavingsAnalysis(
        total_potential_savings=round_currency(
            sum(recommendation.potential_saving for recommendation in recommendations)
        ),
        savings_by_type={
            key: round_currency(value) for key, value in savings_by_type.items()
        },
        implementation_priority=tuple(prioritised),
    )


def build_action_plan(recommendation: Recommendation) -> ActionPlan:
    kind = recommendation.type
    return ActionPlan(
        recommendation=recommendation,
        implementation_steps=_IMPLEMENTATION_STEPS.get(kind, _DEFAULT_STEPS),
        timeline=_TIMELINES.get(kind, _DEFAULT_TIMELINE),
        required_documents=_REQUIRED_DOCUMENTS.get(kind, _DEFAULT_DOCUMENTS),
        estimated_effort=_EFFORT.get(kind, Priority.MEDIUM),
        dependencies=_DEPENDENCIES.get(kind, ()),
    )


def build_action_plans(recommendations: Iterable[Recommendation]) -> list[ActionPlan]:
    """Attach implementation steps, documents and effort to each recommendation."""

    return [build_action_plan(recommendation) for recommendation in recommendations]


__all__ = [
    "analyse_savings",
    "build_action_plan",
    "build_action_plans",
    "savings_to_effort_ratio",
]
