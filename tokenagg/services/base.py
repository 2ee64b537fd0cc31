"""Shared fan-out plumbing for the dict-shaped data services."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Callable, Generic, Iterable, Mapping, Sequence, TypeVar

from tokenagg.engine.executor import SourceCall, run_sources, successes
from tokenagg.metrics.exporter import AGGREGATE_CALLS_TOTAL
from tokenagg.models import ChainId
from tokenagg.timeouts import parse_duration

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECS = 10.0

S = TypeVar("S")
I = TypeVar("I")


class DataService(ABC, Generic[S]):
    """Ordered set of data sources queried concurrently per call.

    Subclasses say which chains each source covers; the base class splits
    the input per source, fans out and hands back the successful results
    in registration order.
    """

    service_name = "data"

    def __init__(
        self,
        sources: Mapping[str, S],
        default_timeout: float | str | None = DEFAULT_TIMEOUT_SECS,
    ) -> None:
        self._sources = MappingProxyType(dict(sources))
        self.default_timeout = parse_duration(default_timeout)

    @property
    def sources(self) -> Mapping[str, S]:
        return self._sources

    @abstractmethod
    def chains_of(self, source: S) -> Iterable[ChainId]:
        """Chains *source* can answer for."""

    def _timeout(self, timeout: float | str | None) -> float | None:
        parsed = parse_duration(timeout)
        return self.default_timeout if parsed is None else parsed

    async def _fan_out(
        self,
        items: Sequence[I],
        chain_of: Callable[[I], ChainId],
        invoke: Callable[[S, list[I], float | None], Any],
        timeout: float | str | None,
    ) -> list[tuple[str, Any]]:
        """Call every source holding at least one item on a chain it covers.

        Returns ``(source_id, result)`` for successful sources, in
        registration order.
        """

        AGGREGATE_CALLS_TOTAL.labels(self.service_name).inc()
        calls: list[tuple[str, SourceCall]] = []
        for source_id, source in self._sources.items():
            chains = set(self.chains_of(source))
            subset = [item for item in items if chain_of(item) in chains]
            if not subset:
                continue

            def _call(budget: float | None, _src=source, _subset=subset):
                return invoke(_src, _subset, budget)

            calls.append((source_id, _call))

        if not calls:
            log.debug("%s: no source covers the requested chains", self.service_name)
            return []
        outcomes = await run_sources(
            calls, timeout=self._timeout(timeout), service=self.service_name
        )
        return [(outcome.source_id, outcome.result) for outcome in successes(outcomes)]


def merge_nested(results: Iterable[Mapping[Any, Any]], depth: int) -> dict[Any, Any]:
    """Merge nested mappings ``depth`` levels deep; earlier results win."""

    merged: dict[Any, Any] = {}
    for result in results:
        _merge_into(merged, result, depth)
    return merged


def _merge_into(target: dict[Any, Any], source: Mapping[Any, Any], depth: int) -> None:
    for key, value in source.items():
        if depth > 1 and isinstance(value, Mapping):
            _merge_into(target.setdefault(key, {}), value, depth - 1)
        elif key not in target:
            target[key] = value
