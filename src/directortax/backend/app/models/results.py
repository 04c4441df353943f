"""Immutable calculation records handed to persistence and reporting.

Records serialise with camelCase keys so stored documents and API payloads
share one shape. Each calculation type carries its own ``outcome`` variant,
discriminated by ``kind``, inside a common :class:`TaxCalculationResult`
envelope.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__ = [
    "ActionPlan",
    "CalculationOutcome",
    "CalculationType",
    "ComparisonCompany",
    "ComparisonPersonal",
    "ComparisonSummary",
    "CompanyReport",
    "CorporationTaxOutcome",
    "NationalInsuranceReport",
    "OptimisationReport",
    "PersonalReport",
    "PersonalTaxOutcome",
    "PrioritisedRecommendation",
    "Priority",
    "Range",
    "Recommendation",
    "RecommendationType",
    "RecordModel",
    "ReportInputs",
    "ReportResults",
    "SalaryOptimisationOutcome",
    "SavingsAnalysis",
    "ScenarioComparisonEntry",
    "ScenarioComparisonOutcome",
    "ScenarioComparisonSummary",
    "ScenarioRecord",
    "SoleTraderOutcome",
    "StoreAck",
    "TaxBandBreakdown",
    "TaxCalculationReport",
    "TaxCalculationResult",
]


class RecordModel(BaseModel):
    """Frozen record that serialises with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return {"HIGH": 3, "MEDIUM": 2, "LOW": 1}[self.value]


class RecommendationType(str, Enum):
    SALARY_OPTIMIZATION = "SALARY_OPTIMIZATION"
    PENSION_CONTRIBUTION = "PENSION_CONTRIBUTION"
    COMPLIANCE = "COMPLIANCE"
    PLANNING = "PLANNING"
    WARNING = "WARNING"
    OPTIMIZATION = "OPTIMIZATION"


class CalculationType(str, Enum):
    SALARY_OPTIMIZATION = "SALARY_OPTIMIZATION"
    SCENARIO_COMPARISON = "SCENARIO_COMPARISON"
    CORPORATION_TAX = "CORPORATION_TAX"
    INCOME_TAX = "INCOME_TAX"
    SOLE_TRADER = "SOLE_TRADER"


class Recommendation(RecordModel):
    """A single prioritised, optionally deadline-bound piece of advice."""

    type: RecommendationType
    priority: Priority
    title: str
    description: str
    potential_saving: float = 0.0
    action_required: str | None = None
    deadline: date | None = None


class PrioritisedRecommendation(RecordModel):
    recommendation: Recommendation
    savings_to_effort_ratio: float


class SavingsAnalysis(RecordModel):
    """Aggregate view of the savings a set of recommendations could unlock."""

    total_potential_savings: float
    savings_by_type: Mapping[str, float]
    implementation_priority: tuple[PrioritisedRecommendation, ...]


class ActionPlan(RecordModel):
    """Implementation guidance for one recommendation."""

    recommendation: Recommendation
    implementation_steps: tuple[str, ...]
    timeline: str
    required_documents: tuple[str, ...]
    estimated_effort: Priority
    dependencies: tuple[str, ...]


class ScenarioRecord(RecordModel):
    """Headline figures for one evaluated salary/dividend split."""

    name: str | None = None
    salary: float
    dividend: float
    other_income: float = 0.0
    available_profit: float
    employer_ni: float = Field(alias="employerNI")
    taxable_profit: float
    corporation_tax: float
    profit_after_tax: float
    dividend_pool: float
    income_tax: float
    employee_ni: float = Field(alias="employeeNI")
    dividend_tax: float
    total_personal_tax: float
    take_home: float
    total_tax: float
    cost_to_company: float
    effective_rate: float
    effective_total_rate: float
    is_fundable: bool = True


class TaxBandBreakdown(RecordModel):
    basic_rate: float = 0.0
    higher_rate: float = 0.0
    additional_rate: float = 0.0
    total: float = 0.0


class NationalInsuranceReport(RecordModel):
    employee_nic: float = Field(alias="employeeNIC")
    employer_nic: float = Field(alias="employerNIC")


class ReportInputs(RecordModel):
    salary_gross: float = 0.0
    benefits: float = 0.0
    other_income: float = 0.0
    dividends: float = 0.0
    personal_tax_year: str | None = None
    company_profit_before_tax: float = 0.0
    salary_expense: float = 0.0
    employer_nic: float = Field(default=0.0, alias="employerNIC")
    tax_year: str
    dividends_paid: float = 0.0
    expenses: float | None = None
    year_end_date: date | None = None


class PersonalReport(RecordModel):
    total_gross_income: float
    taxable_income: float
    income_tax_by_band: TaxBandBreakdown
    dividend_tax_by_band: TaxBandBreakdown
    national_insurance: NationalInsuranceReport
    personal_allowance: float
    dividend_allowance: float
    total_tax: float
    net_take_home: float


class CompanyReport(RecordModel):
    profit_before_tax: float
    salary_expense: float
    employer_nic: float = Field(alias="employerNIC")
    taxable_profit: float
    corporation_tax: float
    dividends_paid: float
    net_company_cash_after_tax: float


class OptimisationReport(RecordModel):
    optimal_salary: float
    optimal_dividends: float
    take_home_optimised: float
    effective_tax_rate: float
    total_tax_and_ni: float = Field(alias="totalTaxAndNI")
    net_take_home: float


class ComparisonCompany(RecordModel):
    available_profit: float
    salary: float
    employer_ni: float = Field(alias="employerNI")
    taxable_profit: float
    corporation_tax: float
    dividend_pool: float


class ComparisonPersonal(RecordModel):
    salary: float
    dividends: float
    other_income: float
    income_tax: float
    employee_ni: float = Field(alias="employeeNI")
    dividend_tax: float
    total_personal_tax: float
    net_personal_income: float


class ComparisonSummary(RecordModel):
    total_tax_and_ni: float = Field(alias="totalTaxAndNI")
    net_take_home: float
    effective_rate: float


class ScenarioComparisonEntry(RecordModel):
    scenario_name: str
    company: ComparisonCompany
    personal: ComparisonPersonal
    summary: ComparisonSummary


class ReportResults(RecordModel):
    personal: PersonalReport | None = None
    company: CompanyReport | None = None
    optimisation: OptimisationReport | None = None
    scenario_comparison: tuple[ScenarioComparisonEntry, ...] = ()


class TaxCalculationReport(RecordModel):
    """Everything a document renderer needs without recomputing tax."""

    calculation_id: str
    client_id: str
    calculation_type: str
    inputs: ReportInputs
    results: ReportResults


class Range(RecordModel):
    min: float
    max: float


class ScenarioComparisonSummary(RecordModel):
    total_scenarios: int
    income_range: Range
    tax_range: Range
    take_home_range: Range
    best_for_take_home: str
    most_tax_efficient: str
    take_home_advantage: float
    effective_rate_advantage: float


class SalaryOptimisationOutcome(RecordModel):
    kind: Literal["salary_optimisation"] = "salary_optimisation"
    objective: str
    optimal: ScenarioRecord
    current: ScenarioRecord | None = None
    estimated_savings: float = 0.0
    candidates_evaluated: int


class ScenarioComparisonOutcome(RecordModel):
    kind: Literal["scenario_comparison"] = "scenario_comparison"
    best: ScenarioRecord
    summary: ScenarioComparisonSummary


class CorporationTaxOutcome(RecordModel):
    kind: Literal["corporation_tax"] = "corporation_tax"
    revenue: float
    expenses: float
    pension_contributions: float
    salary_expense: float
    employer_nic: float = Field(alias="employerNIC")
    profit_before_tax: float
    taxable_profit: float
    corporation_tax: float
    effective_rate: float
    net_profit: float
    accounting_period_start: date
    accounting_period_end: date


class PersonalTaxOutcome(RecordModel):
    kind: Literal["personal_tax"] = "personal_tax"
    salary: float
    dividends: float
    other_income: float
    gross_income: float
    income_tax: float
    employee_ni: float = Field(alias="employeeNI")
    dividend_tax: float
    total_tax: float
    net_income: float
    effective_rate: float


class SoleTraderOutcome(RecordModel):
    kind: Literal["sole_trader"] = "sole_trader"
    revenue: float
    expenses: float
    profit_before_tax: float
    income_tax: float
    class4_nic: float = Field(alias="class4NIC")
    class2_nic: float = Field(alias="class2NIC")
    total_tax: float
    net_profit_after_tax: float
    effective_rate: float


CalculationOutcome = Annotated[
    Union[
        SalaryOptimisationOutcome,
        ScenarioComparisonOutcome,
        CorporationTaxOutcome,
        PersonalTaxOutcome,
        SoleTraderOutcome,
    ],
    Field(discriminator="kind"),
]


class TaxCalculationResult(RecordModel):
    """Common envelope shared by every calculation type."""

    id: str
    client_id: str
    company_id: str | None = None
    calculation_type: CalculationType
    tax_year: str
    parameters: Mapping[str, Any] = Field(default_factory=dict)
    outcome: CalculationOutcome
    total_take_home: float
    total_tax_liability: float
    scenarios: tuple[ScenarioRecord, ...] = ()
    report: TaxCalculationReport | None = None
    recommendations: tuple[Recommendation, ...] = ()
    calculated_at: datetime
    calculated_by: str = "system"

    @property
    def chosen_scenario(self) -> ScenarioRecord | None:
        """The optimal (or best compared) scenario, when the type has one."""

        if isinstance(self.outcome, SalaryOptimisationOutcome):
            return self.outcome.optimal
        if isinstance(self.outcome, ScenarioComparisonOutcome):
            return self.outcome.best
        return None


class StoreAck(RecordModel):
    id: str
    stored_at: datetime
