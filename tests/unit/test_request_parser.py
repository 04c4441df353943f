"""Unit tests for calculation request parsing helpers."""

from __future__ import annotations

import pytest
from flask import Flask, request
from werkzeug.exceptions import BadRequest

from directortax.backend.services.request_parser import parse_calculation_payload

URL = "/api/v1/calculations/personal-tax"


def test_parse_payload_uses_client_header(app: Flask) -> None:
    """The X-Client-Id header should supply the client when absent."""

    with app.test_request_context(
        URL,
        method="POST",
        json={"taxYear": "2024-25", "salary": 30_000},
        headers={"X-Client-Id": " client-7 "},
    ):
        payload = parse_calculation_payload(request)

    assert payload["clientId"] == "client-7"


def test_parse_payload_prefers_query_over_header(app: Flask) -> None:
    with app.test_request_context(
        f"{URL}?clientId=from-query",
        method="POST",
        json={"taxYear": "2024-25"},
        headers={"X-Client-Id": "from-header"},
    ):
        payload = parse_calculation_payload(request)

    assert payload["clientId"] == "from-query"


def test_parse_payload_preserves_explicit_client(app: Flask) -> None:
    with app.test_request_context(
        URL,
        method="POST",
        json={"client_id": "body-client", "taxYear": "2024-25"},
        headers={"X-Client-Id": "header-client"},
    ):
        payload = parse_calculation_payload(request)

    assert payload["client_id"] == "body-client"
    assert "clientId" not in payload


def test_parse_payload_rejects_non_object(app: Flask) -> None:
    """Non-object JSON payloads should trigger BadRequest responses."""

    with app.test_request_context(URL, method="POST", json=["not", "an", "object"]):
        with pytest.raises(BadRequest):
            parse_calculation_payload(request)


def test_parse_payload_rejects_invalid_json(app: Flask) -> None:
    with app.test_request_context(
        URL, method="POST", data="{not json", content_type="application/json"
    ):
        with pytest.raises(BadRequest):
            parse_calculation_payload(request)
