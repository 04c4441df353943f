"""Storage boundary for calculation results and their recommendations.

The engine only depends on the two protocols below. The in-memory
implementations serialise records to JSON on write so a stored result can
never be mutated through a reference held by the caller.
"""

from __future__ import annotations

import logging
import os
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Protocol, Sequence

from pydantic import TypeAdapter

from directortax.backend.app.models import Recommendation, StoreAck, TaxCalculationResult

_LOGGER = logging.getLogger(__name__)

REPOSITORY_MAX_ITEMS_ENV = "DIRECTORTAX_REPOSITORY_MAX_ITEMS"

_RECOMMENDATIONS = TypeAdapter(list[Recommendation])


class CalculationRepository(Protocol):
    def store(self, result: TaxCalculationResult) -> StoreAck: ...

    def get_by_id(self, calculation_id: str) -> TaxCalculationResult: ...

    def list_for_client(self, client_id: str) -> list[TaxCalculationResult]: ...


class RecommendationStore(Protocol):
    def store_recommendations(
        self, calculation_id: str, recommendations: Sequence[Recommendation]
    ) -> StoreAck: ...

    def get_recommendations(self, calculation_id: str) -> list[Recommendation]: ...


@dataclass(frozen=True)
class CalculationStores:
    """The collaborators a running application persists results through."""

    calculations: CalculationRepository
    recommendations: RecommendationStore


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _BoundedStore:
    """Thread-safe, insertion-ordered JSON store that evicts its oldest entries."""

    def __init__(
        self,
        *,
        max_items: int | None = 500,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_items is not None and max_items <= 0:
            raise ValueError("max_items must be positive when provided")

        self._max_items = max_items
        self._clock = clock or _utc_now
        self._records: "OrderedDict[str, str]" = OrderedDict()
        self._lock = Lock()

    def _cleanup_locked(self) -> None:
        if self._max_items is None:
            return
        while len(self._records) > self._max_items:
            evicted, _ = self._records.popitem(last=False)
            _LOGGER.debug("Evicted stored record %s", evicted)

    def _put(self, key: str, payload: str) -> StoreAck:
        stored_at = self._clock()
        with self._lock:
            self._records[key] = payload
            self._records.move_to_end(key)
            self._cleanup_locked()
        return StoreAck(id=key, stored_at=stored_at)

    def _get(self, key: str) -> str:
        with self._lock:
            payload = self._records.get(key)
        if payload is None:
            raise KeyError(key)
        return payload

    def _values(self) -> list[str]:
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class InMemoryCalculationRepository(_BoundedStore):
    """Keeps the most recent calculation results in process memory."""

    def store(self, result: TaxCalculationResult) -> StoreAck:
        return self._put(result.id, result.model_dump_json(by_alias=True))

    def get_by_id(self, calculation_id: str) -> TaxCalculationResult:
        return TaxCalculationResult.model_validate_json(self._get(calculation_id))

    def list_for_client(self, client_id: str) -> list[TaxCalculationResult]:
        results = [
            TaxCalculationResult.model_validate_json(payload) for payload in self._values()
        ]
        return [result for result in results if result.client_id == client_id]


class InMemoryRecommendationStore(_BoundedStore):
    """Recommendations keyed by the calculation they were generated for."""

    def store_recommendations(
        self, calculation_id: str, recommendations: Sequence[Recommendation]
    ) -> StoreAck:
        payload = _RECOMMENDATIONS.dump_json(list(recommendations), by_alias=True)
        return self._put(calculation_id, payload.decode("utf-8"))

    def get_recommendations(self, calculation_id: str) -> list[Recommendation]:
        try:
            payload = self._get(calculation_id)
        except KeyError:
            return []
        return _RECOMMENDATIONS.validate_json(payload)


def parse_positive_int(value: str | None, *, env: str) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError:
        _LOGGER.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    if parsed <= 0:
        _LOGGER.warning("Ignoring non-positive value for %s: %s", env, value)
        return None
    return parsed


def build_repositories() -> CalculationStores:
    """Create the default in-memory stores.

    ``DIRECTORTAX_REPOSITORY_MAX_ITEMS`` caps how many entries each keeps.
    """

    capacity = parse_positive_int(
        os.getenv(REPOSITORY_MAX_ITEMS_ENV), env=REPOSITORY_MAX_ITEMS_ENV
    )
    kwargs = {"max_items": capacity} if capacity is not None else {}
    return CalculationStores(
        calculations=InMemoryCalculationRepository(**kwargs),
        recommendations=InMemoryRecommendationStore(**kwargs),
    )


__all__ = [
    "CalculationRepository",
    "CalculationStores",
    "InMemoryCalculationRepository",
    "InMemoryRecommendationStore",
    "RecommendationStore",
    "build_repositories",
    "parse_positive_int",
]
