"""Pydantic models describing the UK tax year rate tables.

Rate tables are authored in YAML with rates written either as percentages or
as fractions (declared through ``rate_unit``). Every model below stores
fractions only: the conversion happens once, while the table is validated,
so calculators never need to guess the unit of a rate.
"""

from __future__ import annotations

import re
from copy import deepcopy
from typing import Any, Literal, Mapping, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from typing_extensions import Self

TAX_YEAR_PATTERN = re.compile(r"^\d{4}-\d{2}$")


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def validate_tax_year(value: Any) -> str:
    """Return ``value`` when it is a well-formed ``YYYY-YY`` tax year label."""

    if not isinstance(value, str) or not TAX_YEAR_PATTERN.match(value.strip()):
        raise ValueError("Tax year must use the YYYY-YY format (e.g. 2024-25)")

    label = value.strip()
    start_year = int(label[:4])
    if int(label[5:]) != (start_year + 1) % 100:
        raise ValueError(f"Tax year {label} must span consecutive years")
    return label


def _ensure_fraction(label: str, value: float) -> None:
    if value < 0 or value > 1:
        raise ConfigurationError(f"{label} must be between 0 and 1 once normalised")


class IncomeTaxRates(ImmutableModel):
    """Income tax allowance, bands and rates for England, Wales and NI."""

    personal_allowance: float = Field(ge=0)
    allowance_taper_threshold: float = Field(default=100_000.0, ge=0)
    allowance_taper_ratio: float = 2.0
    basic_rate: float
    basic_rate_threshold: float
    higher_rate: float
    higher_rate_threshold: float
    additional_rate: float

    @model_validator(mode="after")
    def _validate_bands(self) -> Self:
        for label in ("basic_rate", "higher_rate", "additional_rate"):
            _ensure_fraction(f"income_tax.{label}", getattr(self, label))
        if self.allowance_taper_ratio <= 0:
            raise ConfigurationError("Allowance taper ratio must be positive")
        if not (
            self.personal_allowance < self.basic_rate_threshold < self.higher_rate_threshold
        ):
            raise ConfigurationError(
                "Income tax thresholds must increase: personal allowance < basic < higher"
            )
        return self


class NationalInsuranceRates(ImmutableModel):
    """Class 1 employee and employer contribution thresholds and rates.

    Both sides are evaluated as three tiers. A table without an employee
    additional rate caps employee contributions at the upper earnings limit,
    while a table without an employer upper tier keeps charging the main
    employer rate on all earnings above the secondary threshold.
    """

    employee_primary_threshold: float = Field(ge=0)
    employee_upper_earnings_limit: float = Field(ge=0)
    employee_rate: float
    employee_additional_rate: float = 0.0
    employer_secondary_threshold: float = Field(ge=0)
    employer_upper_secondary_threshold: float = Field(ge=0)
    employer_rate: float
    employer_additional_rate: float

    @model_validator(mode="before")
    @classmethod
    def _default_employer_upper_tier(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data

        payload = dict(data)
        if payload.get("employer_additional_rate") is None and "employer_rate" in payload:
            payload["employer_additional_rate"] = payload["employer_rate"]
        if payload.get("employer_upper_secondary_threshold") is None:
            payload["employer_upper_secondary_threshold"] = payload.get(
                "employee_upper_earnings_limit"
            )
        return payload

    @model_validator(mode="after")
    def _validate_tiers(self) -> Self:
        for label in (
            "employee_rate",
            "employee_additional_rate",
            "employer_rate",
            "employer_additional_rate",
        ):
            _ensure_fraction(f"national_insurance.{label}", getattr(self, label))
        if self.employee_upper_earnings_limit < self.employee_primary_threshold:
            raise ConfigurationError(
                "Employee upper earnings limit cannot be below the primary threshold"
            )
        if self.employer_upper_secondary_threshold < self.employer_secondary_threshold:
            raise ConfigurationError(
                "Employer upper secondary threshold cannot be below the secondary threshold"
            )
        return self


class CorporationTaxRates(ImmutableModel):
    """Small profits rate, main rate and marginal relief parameters."""

    small_profits_rate: float
    main_rate: float
    marginal_relief_lower_threshold: float = Field(default=50_000.0, ge=0)
    marginal_relief_upper_threshold: float = Field(default=250_000.0, ge=0)
    marginal_relief_fraction: float = Field(default=0.015, ge=0)

    @model_validator(mode="after")
    def _validate_rates(self) -> Self:
        _ensure_fraction("corporation_tax.small_profits_rate", self.small_profits_rate)
        _ensure_fraction("corporation_tax.main_rate", self.main_rate)
        if self.marginal_relief_upper_threshold < self.marginal_relief_lower_threshold:
            raise ConfigurationError(
                "Marginal relief upper threshold cannot be below the lower threshold"
            )
        return self

    @computed_field
    @property
    def has_marginal_relief(self) -> bool:
        return (
            self.main_rate > self.small_profits_rate
            and self.marginal_relief_upper_threshold > self.marginal_relief_lower_threshold
        )


class DividendTaxRates(ImmutableModel):
    """Dividend allowance and the dividend rate for each income tax band."""

    allowance: float = Field(ge=0)
    basic_rate: float
    higher_rate: float
    additional_rate: float

    @model_validator(mode="after")
    def _validate_rates(self) -> Self:
        for label in ("basic_rate", "higher_rate", "additional_rate"):
            _ensure_fraction(f"dividend_tax.{label}", getattr(self, label))
        return self


class PensionAllowances(ImmutableModel):
    """Pension contribution limits used for planning suggestions."""

    annual_allowance: float = Field(default=60_000.0, ge=0)


class SelfEmploymentRates(ImmutableModel):
    """Class 2 and Class 4 contribution settings for sole traders."""

    class4_lower_profits_limit: float = Field(default=12_570.0, ge=0)
    class4_upper_profits_limit: float = Field(default=50_270.0, ge=0)
    class4_main_rate: float = 0.06
    class4_additional_rate: float = 0.02
    class2_weekly_rate: float = Field(default=3.45, ge=0)
    class2_small_profits_threshold: float = Field(default=6_725.0, ge=0)

    @model_validator(mode="after")
    def _validate_rates(self) -> Self:
        _ensure_fraction("self_employment.class4_main_rate", self.class4_main_rate)
        _ensure_fraction(
            "self_employment.class4_additional_rate", self.class4_additional_rate
        )
        if self.class4_upper_profits_limit < self.class4_lower_profits_limit:
            raise ConfigurationError(
                "Class 4 upper profits limit cannot be below the lower profits limit"
            )
        return self


_RATE_FIELDS: Mapping[str, tuple[str, ...]] = {
    "income_tax": ("basic_rate", "higher_rate", "additional_rate"),
    "national_insurance": (
        "employee_rate",
        "employee_additional_rate",
        "employer_rate",
        "employer_additional_rate",
    ),
    "corporation_tax": ("small_profits_rate", "main_rate"),
    "dividend_tax": ("basic_rate", "higher_rate", "additional_rate"),
    "self_employment": ("class4_main_rate", "class4_additional_rate"),
}

# Flat field names from older rate sheets. Values are always fractions.
_LEGACY_FIELDS: Mapping[str, tuple[str, str]] = {
    "personal_allowance": ("income_tax", "personal_allowance"),
    "basic_rate": ("income_tax", "basic_rate"),
    "basic_rate_threshold": ("income_tax", "basic_rate_threshold"),
    "higher_rate": ("income_tax", "higher_rate"),
    "higher_rate_threshold": ("income_tax", "higher_rate_threshold"),
    "additional_rate": ("income_tax", "additional_rate"),
    "ni_primary_threshold": ("national_insurance", "employee_primary_threshold"),
    "ni_upper_earnings_limit": ("national_insurance", "employee_upper_earnings_limit"),
    "ni_employee_rate": ("national_insurance", "employee_rate"),
    "ni_employee_upper_rate": ("national_insurance", "employee_additional_rate"),
    "ni_secondary_threshold": ("national_insurance", "employer_secondary_threshold"),
    "ni_employer_rate": ("national_insurance", "employer_rate"),
    "corporation_tax_rate": ("corporation_tax", "main_rate"),
    "small_company_rate": ("corporation_tax", "small_profits_rate"),
    "small_company_threshold": ("corporation_tax", "marginal_relief_lower_threshold"),
    "marginal_relief_threshold": ("corporation_tax", "marginal_relief_upper_threshold"),
    "dividend_allowance": ("dividend_tax", "allowance"),
    "dividend_basic_rate": ("dividend_tax", "basic_rate"),
    "dividend_higher_rate": ("dividend_tax", "higher_rate"),
    "dividend_additional_rate": ("dividend_tax", "additional_rate"),
}


class RateTable(ImmutableModel):
    """Immutable set of tax constants for a single ``YYYY-YY`` tax year."""

    tax_year: str
    rate_unit: Literal["percent", "fraction"] = "percent"
    meta: Mapping[str, Any] = Field(default_factory=dict)
    income_tax: IncomeTaxRates
    national_insurance: NationalInsuranceRates
    corporation_tax: CorporationTaxRates
    dividend_tax: DividendTaxRates
    pensions: PensionAllowances = Field(default_factory=PensionAllowances)
    self_employment: SelfEmploymentRates = Field(default_factory=SelfEmploymentRates)

    @model_validator(mode="before")
    @classmethod
    def _normalise_units(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data

        payload = deepcopy(dict(data))
        unit = payload.get("rate_unit", "percent")
        if unit not in {"percent", "fraction"}:
            raise ConfigurationError(f"Unsupported rate unit '{unit}'")

        if unit == "percent":
            for section, names in _RATE_FIELDS.items():
                values = payload.get(section)
                if not isinstance(values, Mapping):
                    continue
                converted = dict(values)
                for name in names:
                    if converted.get(name) is not None:
                        converted[name] = float(converted[name]) / 100
                payload[section] = converted

        legacy = payload.pop("legacy", None) or {}
        if not isinstance(legacy, Mapping):
            raise ConfigurationError("Legacy rate fields must be provided as a mapping")
        for legacy_name, value in legacy.items():
            try:
                section, name = _LEGACY_FIELDS[legacy_name]
            except KeyError as exc:
                raise ConfigurationError(
                    f"Unknown legacy rate field '{legacy_name}'"
                ) from exc
            values = dict(payload.get(section) or {})
            values.setdefault(name, value)
            payload[section] = values

        payload["rate_unit"] = "fraction"
        return payload

    @field_validator("tax_year", mode="before")
    @classmethod
    def _validate_tax_year(cls, value: Any) -> str:
        try:
            return validate_tax_year(value)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    @computed_field
    @property
    def start_year(self) -> int:
        return int(self.tax_year[:4])


class RateTableManifestEntry(ImmutableModel):
    """Entry describing a supported tax year in the manifest."""

    tax_year: str
    filename: str | None = None
    status: str = "active"
    notes_url: str | None = None

    @field_validator("tax_year", mode="before")
    @classmethod
    def _validate_tax_year(cls, value: Any) -> str:
        try:
            return validate_tax_year(value)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    @computed_field
    @property
    def resolved_filename(self) -> str:
        return self.filename or f"{self.tax_year}.yaml"


class RateTableManifest(ImmutableModel):
    """Manifest describing the available rate table files."""

    years: Sequence[RateTableManifestEntry]

    @model_validator(mode="after")
    def _validate_years(self) -> Self:
        if not self.years:
            raise ConfigurationError("The rate table manifest must declare a tax year")
        seen: set[str] = set()
        for entry in self.years:
            if entry.tax_year in seen:
                raise ConfigurationError(
                    f"Duplicate tax year {entry.tax_year} declared in the manifest"
                )
            seen.add(entry.tax_year)
        return self

    def get_entry(self, tax_year: str) -> RateTableManifestEntry:
        for entry in self.years:
            if entry.tax_year == tax_year:
                return entry
        raise KeyError(tax_year)

    @computed_field
    @property
    def supported_tax_years(self) -> tuple[str, ...]:
        return tuple(sorted(entry.tax_year for entry in self.years))

    @property
    def latest_tax_year(self) -> str:
        return self.supported_tax_years[-1]


__all__ = [
    "ConfigurationError",
    "CorporationTaxRates",
    "DividendTaxRates",
    "ImmutableModel",
    "IncomeTaxRates",
    "NationalInsuranceRates",
    "PensionAllowances",
    "RateTable",
    "RateTableManifest",
    "RateTableManifestEntry",
    "SelfEmploymentRates",
    "TAX_YEAR_PATTERN",
    "validate_tax_year",
]
