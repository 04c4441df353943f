"""JSON problem responses shared by the Flask blueprints."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Mapping

from flask import current_app, jsonify

if TYPE_CHECKING:  # pragma: no cover - only for static type checkers
    from .services.repository import CalculationStores

EXTENSION_KEY = "directortax"


@dataclass(frozen=True)
class ProblemResponse:
    """Error payload of the form ``{"error": ..., "message": ...}``."""

    error: str
    status: int
    message: str | None = None
    extra: Mapping[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        if self.extra:
            payload.update(self.extra)
        return payload

    def to_response(self) -> tuple[Any, int]:
        return jsonify(self.as_dict()), self.status


def problem_response(
    error: str,
    *,
    status: int,
    message: str | None = None,
    **extra: Any,
) -> ProblemResponse:
    """Build a :class:`ProblemResponse`; extra keywords are merged into the body."""

    additional: Mapping[str, Any] | None = extra or None
    return ProblemResponse(error=error, status=status, message=message, extra=additional)


def not_found(resource: str, identifier: str) -> ProblemResponse:
    return problem_response(
        "not_found",
        status=HTTPStatus.NOT_FOUND,
        message=f"{resource} {identifier} not found",
        id=identifier,
    )


def current_stores() -> CalculationStores:
    """Return the repositories registered on the active application."""

    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    "EXTENSION_KEY",
    "ProblemResponse",
    "current_stores",
    "not_found",
    "problem_response",
]
