"""REST endpoints for tax calculations and their stored results."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from flask import Blueprint, request
from werkzeug.exceptions import BadRequest

from directortax.backend.app.http import current_stores, not_found
from directortax.backend.app.models import TaxCalculationResult
from directortax.backend.app.services.advice import analyse_savings, build_action_plans
from directortax.backend.app.services.calculation_service import (
    calculate_corporation_tax_liability,
    calculate_optimal_salary,
    calculate_personal_tax,
    calculate_sole_trader_tax,
    compare_scenarios,
    recalculate,
)
from directortax.backend.services import build_record_response, parse_calculation_payload

_LOGGER = logging.getLogger(__name__)

blueprint = Blueprint("calculations", __name__, url_prefix="/api/v1/calculations")

Calculator = Callable[[Mapping[str, Any]], TaxCalculationResult]


def _persist(result: TaxCalculationResult) -> TaxCalculationResult:
    stores = current_stores()
    stores.calculations.store(result)
    # Stored recommendations always mirror the latest result, even when empty.
    stores.recommendations.store_recommendations(result.id, result.recommendations)
    _LOGGER.info(
        "Stored %s calculation %s for client %s",
        result.calculation_type.value,
        result.id,
        result.client_id,
    )
    return result


def _calculate(calculator: Calculator) -> tuple[Any, int]:
    payload = parse_calculation_payload(request)
    return build_record_response(_persist(calculator(payload)))


@blueprint.post("/salary-optimisation")
def optimise_salary() -> tuple[Any, int]:
    """Find the salary and dividend split with the best outcome."""

    return _calculate(calculate_optimal_salary)


@blueprint.post("/scenario-comparison")
def compare() -> tuple[Any, int]:
    return _calculate(compare_scenarios)


@blueprint.post("/corporation-tax")
def corporation_tax() -> tuple[Any, int]:
    return _calculate(calculate_corporation_tax_liability)


@blueprint.post("/personal-tax")
def personal_tax() -> tuple[Any, int]:
    return _calculate(calculate_personal_tax)


@blueprint.post("/sole-trader")
def sole_trader() -> tuple[Any, int]:
    return _calculate(calculate_sole_trader_tax)


@blueprint.get("")
def list_calculations() -> tuple[Any, int]:
    """List the stored calculations for the client named in ``clientId``."""

    client_id = (request.args.get("clientId") or "").strip()
    if not client_id:
        raise BadRequest("clientId query parameter is required")
    return build_record_response(current_stores().calculations.list_for_client(client_id))


@blueprint.get("/<calculation_id>")
def get_calculation(calculation_id: str) -> tuple[Any, int]:
    try:
        result = current_stores().calculations.get_by_id(calculation_id)
    except KeyError:
        return not_found("Calculation", calculation_id).to_response()
    return build_record_response(result)


@blueprint.post("/<calculation_id>/recalculate")
def recalculate_calculation(calculation_id: str) -> tuple[Any, int]:
    """Re-run a stored calculation with the current rate tables."""

    try:
        stored = current_stores().calculations.get_by_id(calculation_id)
    except KeyError:
        return not_found("Calculation", calculation_id).to_response()
    return build_record_response(_persist(recalculate(stored)))


def _stored_recommendations(calculation_id: str):
    stores = current_stores()
    # Raises KeyError for unknown calculations so callers can answer 404.
    stores.calculations.get_by_id(calculation_id)
    return stores.recommendations.get_recommendations(calculation_id)


@blueprint.get("/<calculation_id>/recommendations")
def get_recommendations(calculation_id: str) -> tuple[Any, int]:
    try:
        recommendations = _stored_recommendations(calculation_id)
    except KeyError:
        return not_found("Calculation", calculation_id).to_response()
    return build_record_response(recommendations)


@blueprint.get("/<calculation_id>/savings")
def get_savings_analysis(calculation_id: str) -> tuple[Any, int]:
    """Total and rank the potential savings of a calculation's recommendations."""

    try:
        recommendations = _stored_recommendations(calculation_id)
    except KeyError:
        return not_found("Calculation", calculation_id).to_response()
    return build_record_response(analyse_savings(recommendations))


@blueprint.get("/<calculation_id>/action-plans")
def get_action_plans(calculation_id: str) -> tuple[Any, int]:
    try:
        recommendations = _stored_recommendations(calculation_id)
    except KeyError:
        return not_found("Calculation", calculation_id).to_response()
    return build_record_response(build_action_plans(recommendations))
