"""Corporation tax with marginal relief between the two profit thresholds."""

from __future__ import annotations

from directortax.backend.config.schema import CorporationTaxRates

from .utils import safe_ratio


def calculate_corporation_tax(profit: float, rates: CorporationTaxRates) -> float:
    """Return corporation tax due on ``profit``.

    Profits up to the lower threshold pay the small profits rate and profits
    at or above the upper threshold pay the main rate. In between, the main
    rate is reduced by ``(upper - profit) * marginal_relief_fraction``.
    Losses never produce negative tax.
    """

    if profit <= 0:
        return 0.0

    if not rates.has_marginal_relief:
        return profit * rates.main_rate

    if profit <= rates.marginal_relief_lower_threshold:
        return profit * rates.small_profits_rate
    if profit >= rates.marginal_relief_upper_threshold:
        return profit * rates.main_rate

    relief = (
        rates.marginal_relief_upper_threshold - profit
    ) * rates.marginal_relief_fraction
    return profit * rates.main_rate - relief


def effective_corporation_tax_rate(profit: float, rates: CorporationTaxRates) -> float:
    return safe_ratio(calculate_corporation_tax(profit, rates), profit)


__all__ = ["calculate_corporation_tax", "effective_corporation_tax_rate"]
