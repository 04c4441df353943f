"""Engine-side inputs and derived results for a single salary/dividend split."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Self

from directortax.backend.config.schema import validate_tax_year

__all__ = [
    "BandAmounts",
    "CompanyResult",
    "DividendTaxBands",
    "IncomeTaxBands",
    "NO_DIVIDEND_TAX",
    "OptimisationObjective",
    "PersonalResult",
    "ScenarioInput",
    "ScenarioResult",
    "SearchConstraints",
]

DEFAULT_SALARY_INCREMENT = 1_000.0
DEFAULT_SALARY_CEILING = 100_000.0


@dataclass(frozen=True)
class BandAmounts:
    """Amounts falling into the basic, higher and additional bands."""

    basic_rate: float = 0.0
    higher_rate: float = 0.0
    additional_rate: float = 0.0

    @property
    def total(self) -> float:
        return self.basic_rate + self.higher_rate + self.additional_rate

    def as_dict(self) -> dict[str, float]:
        return {
            "basic_rate": self.basic_rate,
            "higher_rate": self.higher_rate,
            "additional_rate": self.additional_rate,
        }


@dataclass(frozen=True)
class IncomeTaxBands:
    """Income tax computed on non-dividend income."""

    taxable_income: float
    personal_allowance: float
    income_by_band: BandAmounts
    tax_by_band: BandAmounts

    @property
    def total_tax(self) -> float:
        return self.tax_by_band.total


@dataclass(frozen=True)
class DividendTaxBands:
    """Dividend tax after stacking dividends on top of other income."""

    taxable_dividend: float
    personal_allowance: float
    dividend_allowance_applied: float
    dividend_by_band: BandAmounts
    taxable_by_band: BandAmounts
    tax_by_band: BandAmounts

    @property
    def total_tax(self) -> float:
        return self.tax_by_band.total


NO_DIVIDEND_TAX = DividendTaxBands(
    taxable_dividend=0.0,
    personal_allowance=0.0,
    dividend_allowance_applied=0.0,
    dividend_by_band=BandAmounts(),
    taxable_by_band=BandAmounts(),
    tax_by_band=BandAmounts(),
)


def _ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator


class OptimisationObjective(str, Enum):
    """What the optimiser treats as the best split."""

    MINIMISE_COMPANY_COST = "minimise_company_cost"
    MAXIMISE_TAKE_HOME = "maximise_take_home"

    @classmethod
    def from_flag(cls, consider_employer_ni: bool) -> OptimisationObjective:
        if consider_employer_ni:
            return cls.MINIMISE_COMPANY_COST
        return cls.MAXIMISE_TAKE_HOME


class ScenarioInput(BaseModel):
    """Validated inputs for evaluating one salary level."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    available_profit: float = Field(ge=0)
    salary: float = Field(ge=0)
    tax_year: str
    other_income: float = Field(default=0.0, ge=0)
    dividend: float | None = Field(default=None, ge=0)
    personal_allowance_used: float = Field(default=0.0, ge=0)
    dividend_allowance_used: float = Field(default=0.0, ge=0)
    scottish_taxpayer: bool = False
    student_loan: bool = False
    name: str | None = None

    @field_validator("tax_year", mode="before")
    @classmethod
    def _validate_tax_year(cls, value: object) -> str:
        return validate_tax_year(value)


class SearchConstraints(BaseModel):
    """Salary range and step explored by the optimiser."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    min_salary: float = Field(default=0.0, ge=0)
    max_salary: float | None = Field(default=None, ge=0)
    salary_increment: float = Field(default=DEFAULT_SALARY_INCREMENT, gt=0)
    other_income: float = Field(default=0.0, ge=0)
    personal_allowance_used: float = Field(default=0.0, ge=0)
    dividend_allowance_used: float = Field(default=0.0, ge=0)
    scottish_taxpayer: bool = False
    student_loan: bool = False

    @model_validator(mode="after")
    def _validate_range(self) -> Self:
        if self.max_salary is not None and self.max_salary < self.min_salary:
            raise ValueError("max_salary cannot be below min_salary")
        return self

    def resolved_max_salary(self, available_profit: float) -> float:
        if self.max_salary is not None:
            return self.max_salary
        return min(available_profit, DEFAULT_SALARY_CEILING)


@dataclass(frozen=True)
class CompanyResult:
    """Company-side position after paying salary and corporation tax."""

    profit_before_tax: float
    salary_expense: float
    employer_ni: float
    taxable_profit: float
    corporation_tax: float
    profit_after_tax: float
    dividend_pool: float
    dividends_paid: float

    @property
    def net_company_cash_after_tax(self) -> float:
        return self.profit_after_tax - self.dividends_paid

    @property
    def cost_of_salary(self) -> float:
        return self.salary_expense + self.employer_ni


@dataclass(frozen=True)
class PersonalResult:
    """Director's personal tax position for a salary/dividend split."""

    salary: float
    dividends: float
    other_income: float
    income_tax: IncomeTaxBands
    employee_ni: float
    dividend_tax: DividendTaxBands

    @property
    def gross_income(self) -> float:
        return self.salary + self.dividends + self.other_income

    @property
    def total_tax(self) -> float:
        return self.income_tax.total_tax + self.employee_ni + self.dividend_tax.total_tax

    @property
    def net_personal_cash(self) -> float:
        return self.salary + self.dividends - self.total_tax


@dataclass(frozen=True)
class ScenarioResult:
    """Full evaluation of one scenario: inputs, company, personal and totals."""

    input: ScenarioInput
    company: CompanyResult
    personal: PersonalResult

    @property
    def salary(self) -> float:
        return self.input.salary

    @property
    def dividends(self) -> float:
        return self.personal.dividends

    @property
    def take_home(self) -> float:
        return self.personal.net_personal_cash

    @property
    def total_tax(self) -> float:
        return (
            self.company.corporation_tax
            + self.company.employer_ni
            + self.personal.total_tax
        )

    @property
    def cost_to_company(self) -> float:
        return (
            self.company.salary_expense
            + self.company.employer_ni
            + self.company.corporation_tax
        )

    @property
    def effective_rate(self) -> float:
        """Personal taxes as a share of gross personal income."""

        return _ratio(self.personal.total_tax, self.personal.gross_income)

    @property
    def effective_total_rate(self) -> float:
        """All taxes, company and personal, as a share of available profit."""

        return _ratio(self.total_tax, self.input.available_profit)

    @property
    def is_fundable(self) -> bool:
        return self.company.profit_after_tax >= 0
