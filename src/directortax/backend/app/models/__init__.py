"""Typed inputs, derived results and stored records for the tax engine.

Requests and stored records are Pydantic models so validation and
serialisation stay in one place. The engine's intermediate results are
lightweight frozen dataclasses: they are produced in tight loops by the
optimiser and never leave the process without being converted into a record.
"""

from __future__ import annotations

from .api import (
    CorporationTaxRequest,
    PersonalTaxRequest,
    SalaryOptimisationRequest,
    ScenarioComparisonRequest,
    ScenarioDefinition,
    SoleTraderRequest,
    format_validation_error,
)
from .results import (
    ActionPlan,
    CalculationOutcome,
    CalculationType,
    CompanyReport,
    ComparisonCompany,
    ComparisonPersonal,
    ComparisonSummary,
    CorporationTaxOutcome,
    NationalInsuranceReport,
    OptimisationReport,
    PersonalReport,
    PersonalTaxOutcome,
    PrioritisedRecommendation,
    Priority,
    Range,
    Recommendation,
    RecommendationType,
    RecordModel,
    ReportInputs,
    ReportResults,
    SalaryOptimisationOutcome,
    SavingsAnalysis,
    ScenarioComparisonEntry,
    ScenarioComparisonOutcome,
    ScenarioComparisonSummary,
    ScenarioRecord,
    SoleTraderOutcome,
    StoreAck,
    TaxBandBreakdown,
    TaxCalculationReport,
    TaxCalculationResult,
)
from .scenario import (
    NO_DIVIDEND_TAX,
    BandAmounts,
    CompanyResult,
    DividendTaxBands,
    IncomeTaxBands,
    OptimisationObjective,
    PersonalResult,
    ScenarioInput,
    ScenarioResult,
    SearchConstraints,
)

__all__ = [
    "ActionPlan",
    "BandAmounts",
    "CalculationOutcome",
    "CalculationType",
    "CompanyReport",
    "CompanyResult",
    "ComparisonCompany",
    "ComparisonPersonal",
    "ComparisonSummary",
    "CorporationTaxOutcome",
    "CorporationTaxRequest",
    "DividendTaxBands",
    "IncomeTaxBands",
    "NO_DIVIDEND_TAX",
    "NationalInsuranceReport",
    "OptimisationObjective",
    "OptimisationReport",
    "PersonalReport",
    "PersonalResult",
    "PersonalTaxOutcome",
    "PersonalTaxRequest",
    "PrioritisedRecommendation",
    "Priority",
    "Range",
    "Recommendation",
    "RecommendationType",
    "RecordModel",
    "ReportInputs",
    "ReportResults",
    "SalaryOptimisationOutcome",
    "SalaryOptimisationRequest",
    "SavingsAnalysis",
    "ScenarioComparisonEntry",
    "ScenarioComparisonOutcome",
    "ScenarioComparisonRequest",
    "ScenarioComparisonSummary",
    "ScenarioDefinition",
    "ScenarioInput",
    "ScenarioRecord",
    "ScenarioResult",
    "SearchConstraints",
    "SoleTraderOutcome",
    "SoleTraderRequest",
    "StoreAck",
    "TaxBandBreakdown",
    "TaxCalculationReport",
    "TaxCalculationResult",
    "format_validation_error",
]
