"""Domain-specific calculation helpers."""

from .bands import (
    calculate_class2_nic,
    calculate_class4_nic,
    calculate_dividend_tax_bands,
    calculate_employee_ni,
    calculate_employer_ni,
    calculate_income_tax_bands,
    tapered_personal_allowance,
)
from .corporation import calculate_corporation_tax, effective_corporation_tax_rate
from .utils import (
    format_currency,
    format_percentage,
    non_negative,
    round_currency,
    round_rate,
    safe_ratio,
)

__all__ = [
    "calculate_class2_nic",
    "calculate_class4_nic",
    "calculate_corporation_tax",
    "calculate_dividend_tax_bands",
    "calculate_employee_ni",
    "calculate_employer_ni",
    "calculate_income_tax_bands",
    "effective_corporation_tax_rate",
    "format_currency",
    "format_percentage",
    "non_negative",
    "round_currency",
    "round_rate",
    "safe_ratio",
    "tapered_personal_allowance",
]
