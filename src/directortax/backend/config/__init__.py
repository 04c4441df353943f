"""Versioned UK rate tables and their loaders."""

from .schema import ConfigurationError, RateTable, validate_tax_year
from .year_config import (
    available_tax_years,
    latest_tax_year,
    load_rate_table,
    resolve_rate_table,
)

__all__ = [
    "ConfigurationError",
    "RateTable",
    "available_tax_years",
    "latest_tax_year",
    "load_rate_table",
    "resolve_rate_table",
    "validate_tax_year",
]
