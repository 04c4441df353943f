"""Utilities for serialising calculation responses."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, Tuple

from flask import jsonify

ResponseTuple = Tuple[Any, int]


class SupportsRecord(Protocol):
    def to_record(self) -> dict[str, Any]: ...


def build_record_response(
    record: SupportsRecord | Sequence[SupportsRecord], *, status: int = 200
) -> ResponseTuple:
    """Return a JSON response for one record or a list of records."""

    if isinstance(record, Sequence):
        return jsonify([item.to_record() for item in record]), status
    return jsonify(record.to_record()), status


def build_calculation_response(
    payload: Mapping[str, Any] | SupportsRecord, *, status: int = 200
) -> ResponseTuple:
    """Return a Flask JSON response for the calculation ``payload``."""

    if isinstance(payload, Mapping):
        return jsonify(dict(payload)), status
    return jsonify(payload.to_record()), status
