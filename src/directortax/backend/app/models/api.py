"""Pydantic models describing the public request surface.

Requests accept both ``snake_case`` and ``camelCase`` keys.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from typing_extensions import Self

from directortax.backend.config.schema import validate_tax_year

from .scenario import OptimisationObjective, SearchConstraints

__all__ = [
    "CorporationTaxRequest",
    "PersonalTaxRequest",
    "SalaryOptimisationRequest",
    "ScenarioComparisonRequest",
    "ScenarioDefinition",
    "SoleTraderRequest",
    "format_validation_error",
]


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class _TaxYearRequest(_RequestModel):
    client_id: str = Field(min_length=1)
    company_id: str | None = None
    tax_year: str

    @field_validator("tax_year", mode="before")
    @classmethod
    def _validate_tax_year(cls, value: Any) -> str:
        return validate_tax_year(value)


class SalaryOptimisationRequest(_TaxYearRequest):
    """Inputs for finding the best salary/dividend split."""

    available_profit: float | None = None
    target_take_home: float | None = None
    min_salary: float | None = Field(default=None, ge=0)
    max_salary: float | None = Field(default=None, ge=0)
    salary_increment: float | None = Field(default=None, gt=0)
    current_salary: float | None = Field(default=None, ge=0)
    current_dividend: float | None = Field(default=None, ge=0)
    other_income: float = Field(default=0.0, ge=0)
    personal_allowance_used: float = Field(default=0.0, ge=0)
    dividend_allowance_used: float = Field(default=0.0, ge=0)
    scottish_taxpayer: bool = False
    student_loan: bool = False
    consider_employer_ni: bool = Field(default=True, alias="considerEmployerNI")

    @model_validator(mode="after")
    def _resolve_profit(self) -> Self:
        profit = self.available_profit
        if profit is None:
            profit = self.target_take_home
        if profit is None:
            raise ValueError("availableProfit or targetTakeHome is required")
        if profit <= 0:
            raise ValueError("Available profit must be greater than zero")
        object.__setattr__(self, "available_profit", float(profit))

        if (
            self.min_salary is not None
            and self.max_salary is not None
            and self.max_salary < self.min_salary
        ):
            raise ValueError("maxSalary cannot be below minSalary")
        return self

    @property
    def objective(self) -> OptimisationObjective:
        return OptimisationObjective.from_flag(self.consider_employer_ni)

    @property
    def has_current_arrangement(self) -> bool:
        return self.current_salary is not None

    def search_constraints(self) -> SearchConstraints:
        options: dict[str, Any] = {
            "other_income": self.other_income,
            "personal_allowance_used": self.personal_allowance_used,
            "dividend_allowance_used": self.dividend_allowance_used,
            "scottish_taxpayer": self.scottish_taxpayer,
            "student_loan": self.student_loan,
        }
        if self.min_salary is not None:
            options["min_salary"] = self.min_salary
        if self.max_salary is not None:
            options["max_salary"] = self.max_salary
        if self.salary_increment is not None:
            options["salary_increment"] = self.salary_increment
        return SearchConstraints(**options)


class ScenarioDefinition(_RequestModel):
    name: str | None = None
    salary: float = Field(ge=0)
    dividend: float | None = Field(default=None, ge=0)


class ScenarioComparisonRequest(_TaxYearRequest):
    """Explicit salary/dividend splits to evaluate side by side."""

    scenarios: list[ScenarioDefinition] = Field(min_length=1)
    available_profit: float | None = Field(default=None, gt=0)
    other_income: float = Field(default=0.0, ge=0)
    personal_allowance_used: float = Field(default=0.0, ge=0)
    dividend_allowance_used: float = Field(default=0.0, ge=0)
    scottish_taxpayer: bool = False
    student_loan: bool = False

    @model_validator(mode="after")
    def _resolve_profit(self) -> Self:
        if self.available_profit is None:
            inferred = max(
                scenario.salary + (scenario.dividend or 0.0) for scenario in self.scenarios
            )
            if inferred <= 0:
                raise ValueError(
                    "availableProfit is required when every scenario is empty"
                )
            object.__setattr__(self, "available_profit", inferred)
        return self


class CorporationTaxRequest(_RequestModel):
    """Company profit (or revenue and costs) for a corporation tax estimate."""

    client_id: str = Field(min_length=1)
    company_id: str | None = None
    profit: float | None = None
    revenue: float | None = Field(default=None, ge=0)
    expenses: float = Field(default=0.0, ge=0)
    pension_contributions: float = Field(default=0.0, ge=0)
    salary_expense: float = Field(default=0.0, ge=0)
    tax_year: str | None = None
    accounting_period_end_year: int | None = Field(default=None, ge=1990, le=2100)
    accounting_reference_day: int = Field(default=31, ge=1, le=31)
    accounting_reference_month: int = Field(default=3, ge=1, le=12)

    @field_validator("tax_year", mode="before")
    @classmethod
    def _validate_tax_year(cls, value: Any) -> str | None:
        if value is None:
            return None
        return validate_tax_year(value)

    @model_validator(mode="after")
    def _require_profit_or_revenue(self) -> Self:
        if self.profit is None and self.revenue is None:
            raise ValueError(
                "profit or revenue is required for corporation tax calculations"
            )
        if self.profit is not None and self.profit < 0:
            raise ValueError("profit must be zero or greater")
        return self


class PersonalTaxRequest(_TaxYearRequest):
    salary: float = Field(default=0.0, ge=0)
    dividends: float = Field(default=0.0, ge=0)
    other_income: float = Field(default=0.0, ge=0)
    pension_contributions: float = Field(default=0.0, ge=0)


class SoleTraderRequest(_TaxYearRequest):
    revenue: float = Field(default=0.0, ge=0)
    expenses: float = Field(default=0.0, ge=0)
    pay_class2: bool = Field(default=False, alias="payClass2")


def format_validation_error(error: ValidationError) -> str:
    """Return a concise human-readable description of validation issues."""

    messages: list[str] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if "greater than or equal to 0" in message.lower():
            message = "value cannot be negative"
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        if location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)

    details = "; ".join(messages) if messages else str(error)
    return f"Invalid calculation payload: {details}"
