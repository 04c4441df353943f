"""Utility helpers for calculator modules."""

from __future__ import annotations


def format_percentage(value: float) -> str:
    """Return a human-readable percentage label for ``value``."""

    percentage = value * 100
    if float(int(percentage)) == percentage:
        return f"{int(percentage)}%"
    return f"{percentage:.2f}%"


def format_currency(value: float) -> str:
    """Return ``value`` as a pound sterling amount without pence."""

    return f"£{value:,.0f}"


def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide ``numerator`` by ``denominator``, returning 0 for empty bases."""

    if denominator <= 0:
        return 0.0
    return numerator / denominator


def non_negative(value: float) -> float:
    return value if value > 0 else 0.0


def round_currency(value: float) -> float:
    """Round monetary amounts to two decimals."""

    return round(value, 2)


def round_rate(value: float) -> float:
    """Round rate values to four decimals."""

    return round(value, 4)
