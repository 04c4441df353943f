"""Service-layer helpers shared by the HTTP routes."""

from .request_parser import parse_calculation_payload
from .response_builder import build_calculation_response, build_record_response

__all__ = [
    "build_calculation_response",
    "build_record_response",
    "parse_calculation_payload",
]
