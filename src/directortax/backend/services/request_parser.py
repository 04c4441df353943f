"""Helpers for normalising incoming calculation requests."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Request
from werkzeug.exceptions import BadRequest

CLIENT_ID_HEADER = "X-Client-Id"


def _resolve_client_id(req: Request, payload: dict[str, Any]) -> None:
    """Populate ``clientId`` from the query string or headers when absent."""

    for key in ("clientId", "client_id"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            payload[key] = value.strip()
            return

    client_param = req.args.get("clientId")
    if client_param and client_param.strip():
        payload["clientId"] = client_param.strip()
        return

    client_header = req.headers.get(CLIENT_ID_HEADER)
    if client_header and client_header.strip():
        payload["clientId"] = client_header.strip()


def parse_calculation_payload(req: Request) -> dict[str, Any]:
    """Extract and validate a JSON payload from ``req``."""

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request body must be valid JSON")
    if not isinstance(data, Mapping):
        raise BadRequest("Request JSON must be an object")

    payload = dict(data)
    _resolve_client_id(req, payload)

    return payload
