"""Rate table loader wrapping the shared schema models."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Sequence

import yaml
from pydantic import ValidationError

from .schema import (
    ConfigurationError,
    CorporationTaxRates,
    DividendTaxRates,
    IncomeTaxRates,
    NationalInsuranceRates,
    PensionAllowances,
    RateTable,
    RateTableManifest,
    RateTableManifestEntry,
    SelfEmploymentRates,
)

CONFIG_DIRECTORY = Path(__file__).resolve().parent / "data"
MANIFEST_FILE = CONFIG_DIRECTORY / "manifest.yaml"

_LOGGER = logging.getLogger(__name__)


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must define a mapping at the top level")
    return data


@lru_cache(maxsize=1)
def load_manifest() -> RateTableManifest:
    """Load and cache the rate table manifest."""

    if not MANIFEST_FILE.exists():
        raise FileNotFoundError("Rate table manifest not found")

    raw_manifest = _load_yaml(MANIFEST_FILE)

    try:
        return RateTableManifest.model_validate(raw_manifest)
    except ValidationError as error:
        raise ConfigurationError(f"Manifest validation failed: {error}") from error


@lru_cache(maxsize=8)
def load_rate_table(tax_year: str) -> RateTable:
    """Load the rate table for ``tax_year`` from disk.

    Raises ``FileNotFoundError`` when the year is not declared in the manifest.
    """

    try:
        manifest_entry = load_manifest().get_entry(tax_year)
    except KeyError as exc:
        raise FileNotFoundError(
            f"Rate table for tax year {tax_year} not declared in manifest"
        ) from exc

    config_file = CONFIG_DIRECTORY / manifest_entry.resolved_filename
    if not config_file.exists():
        raise FileNotFoundError(
            f"Rate table file for tax year {tax_year} missing: {config_file.name}"
        )

    raw_config = _load_yaml(config_file)
    raw_config.setdefault("tax_year", tax_year)

    try:
        table = RateTable.model_validate(raw_config)
    except ValidationError as error:
        raise ConfigurationError(
            f"Rate table validation failed for {tax_year}: {error}"
        ) from error

    if table.tax_year != tax_year:
        raise ConfigurationError(
            f"Rate table year mismatch: expected {tax_year}, found {table.tax_year}"
        )

    return table


def resolve_rate_table(tax_year: str) -> RateTable:
    """Return the rate table for ``tax_year``, falling back to the latest year.

    Unsupported years are not an error for calculations: a warning is logged
    and the most recent declared table is used instead.
    """

    manifest = load_manifest()
    if tax_year in manifest.supported_tax_years:
        return load_rate_table(tax_year)

    fallback = manifest.latest_tax_year
    _LOGGER.warning(
        "Tax year %s is not supported; falling back to %s rates", tax_year, fallback
    )
    return load_rate_table(fallback)


def available_tax_years() -> Sequence[str]:
    """Return the tax years declared in the manifest."""

    return load_manifest().supported_tax_years


def latest_tax_year() -> str:
    """Return the most recent tax year declared in the manifest."""

    return load_manifest().latest_tax_year


__all__ = [
    "CONFIG_DIRECTORY",
    "ConfigurationError",
    "CorporationTaxRates",
    "DividendTaxRates",
    "IncomeTaxRates",
    "MANIFEST_FILE",
    "NationalInsuranceRates",
    "PensionAllowances",
    "RateTable",
    "RateTableManifest",
    "RateTableManifestEntry",
    "SelfEmploymentRates",
    "available_tax_years",
    "latest_tax_year",
    "load_manifest",
    "load_rate_table",
    "resolve_rate_table",
]
