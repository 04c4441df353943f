"""Expose rate table metadata consumed by clients of the calculation API.

Front-ends use these endpoints to offer the supported tax years and to show
the thresholds behind a calculation without duplicating the YAML data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import Blueprint, jsonify

from directortax.backend.app.http import ProblemResponse, not_found
from directortax.backend.config.schema import (
    RateTable,
    RateTableManifestEntry,
    validate_tax_year,
)
from directortax.backend.config.year_config import (
    available_tax_years,
    latest_tax_year,
    load_manifest,
    load_rate_table,
)
from directortax.backend.version import get_project_version

blueprint = Blueprint("config", __name__, url_prefix="/api/v1/config")


@dataclass(frozen=True)
class YearRouteContext:
    """Rate table and manifest entry resolved for a year-scoped endpoint."""

    entry: RateTableManifestEntry
    rates: RateTable


def _build_year_context(tax_year: str) -> YearRouteContext | ProblemResponse:
    label = validate_tax_year(tax_year)
    try:
        rates = load_rate_table(label)
    except FileNotFoundError:
        return not_found("Tax year", label)
    return YearRouteContext(entry=load_manifest().get_entry(label), rates=rates)


def get_configuration_metadata() -> dict[str, Any]:
    """Expose runtime metadata derived from the rate table manifest."""

    return {
        "version": get_project_version(),
        "supported_years": list(available_tax_years()),
        "default_year": latest_tax_year(),
    }


def _serialise_year(context: YearRouteContext) -> dict[str, Any]:
    payload = context.rates.model_dump(mode="json", exclude={"rate_unit"})
    payload["status"] = context.entry.status
    if context.entry.notes_url:
        payload["notes_url"] = context.entry.notes_url
    return payload


@blueprint.get("/meta")
def get_application_metadata() -> tuple[Any, int]:
    return jsonify(get_configuration_metadata()), 200


@blueprint.get("/years")
def list_years() -> tuple[Any, int]:
    """Return every declared tax year with its status and rate table."""

    years = [
        _serialise_year(
            YearRouteContext(entry=entry, rates=load_rate_table(entry.tax_year))
        )
        for entry in sorted(load_manifest().years, key=lambda item: item.tax_year)
    ]
    metadata = get_configuration_metadata()
    payload = {
        "years": years,
        "default_year": metadata["default_year"],
        "supported_years": metadata["supported_years"],
    }
    return jsonify(payload), 200


@blueprint.get("/<tax_year>")
def get_year(tax_year: str) -> tuple[Any, int]:
    context = _build_year_context(tax_year)
    if isinstance(context, ProblemResponse):
        return context.to_response()
    return jsonify(_serialise_year(context)), 200
