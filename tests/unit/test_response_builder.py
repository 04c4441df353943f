"""Unit tests for response formatting helpers."""

from __future__ import annotations

from flask import Flask

from directortax.backend.app.models import Priority, Recommendation, RecommendationType
from directortax.backend.services.response_builder import (
    build_calculation_response,
    build_record_response,
)


def _recommendation() -> Recommendation:
    return Recommendation(
        type=RecommendationType.COMPLIANCE,
        priority=Priority.HIGH,
        title="PAYE/RTI Compliance",
        description="Update payroll.",
        potential_saving=0,
    )


def test_build_calculation_response_returns_json(app: Flask) -> None:
    """Formatting helper should generate a JSON response tuple."""

    with app.app_context():
        response, status = build_calculation_response({"foo": "bar"})

    assert status == 200
    assert response.get_json() == {"foo": "bar"}


def test_build_record_response_uses_camel_case(app: Flask) -> None:
    with app.app_context():
        response, status = build_record_response(_recommendation(), status=201)

    assert status == 201
    payload = response.get_json()
    assert payload["potentialSaving"] == 0
    assert payload["actionRequired"] is None


def test_build_record_response_serialises_lists(app: Flask) -> None:
    with app.app_context():
        response, _ = build_record_response([_recommendation(), _recommendation()])

    assert [item["title"] for item in response.get_json()] == ["PAYE/RTI Compliance"] * 2
