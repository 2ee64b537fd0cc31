"""Source registry and per-request source selection."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Iterator, Mapping, NamedTuple

from tokenagg.capabilities import QuoteSourceMetadata, is_capable
from tokenagg.models import QuoteRequest, SourceInfo
from tokenagg.sources.base import QuoteSource

log = logging.getLogger(__name__)


class SelectedSource(NamedTuple):
    """A source chosen for one call with its merged configuration."""

    id: str
    source: QuoteSource
    config: Mapping[str, Any]


class SourceRegistry:
    """Immutable, ordered collection of quote sources.

    Parameters
    ----------
    sources:
        Mapping of source id to source instance. Iteration order is the
        registration order and is used to break ranking ties.
    default_config:
        Global per-source configuration, keyed by source id. Per-call
        overrides are merged on top of it.
    """

    def __init__(
        self,
        sources: Mapping[str, QuoteSource],
        default_config: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        self._sources = MappingProxyType(dict(sources))
        self._default_config = MappingProxyType(
            {sid: dict(cfg) for sid, cfg in (default_config or {}).items()}
        )

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def get(self, source_id: str) -> QuoteSource | None:
        return self._sources.get(source_id)

    def metadata(self) -> dict[str, QuoteSourceMetadata]:
        return {sid: src.get_metadata() for sid, src in self._sources.items()}

    def info(self, source_id: str) -> SourceInfo:
        """Return the caller-visible identity of *source_id*."""

        source = self._sources.get(source_id)
        if source is None:
            return SourceInfo(id=source_id, name=source_id, logo_uri="")
        meta = source.get_metadata()
        return SourceInfo(id=source_id, name=meta.name, logo_uri=meta.logo_uri)

    def config_for(
        self,
        source_id: str,
        overrides: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Merge the global config of *source_id* with per-call *overrides*."""

        merged = dict(self._default_config.get(source_id, {}))
        if overrides and source_id in overrides:
            merged.update(overrides[source_id] or {})
        return merged

    def select(
        self,
        request: QuoteRequest,
        overrides: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> list[SelectedSource]:
        """Return the sources able to quote *request*, in registration order."""

        candidates = list(self._sources)
        filters = request.filters
        if filters is not None and filters.include_sources is not None:
            wanted = set(filters.include_sources)
            candidates = [sid for sid in candidates if sid in wanted]
        elif filters is not None and filters.exclude_sources is not None:
            unwanted = set(filters.exclude_sources)
            candidates = [sid for sid in candidates if sid not in unwanted]

        selected: list[SelectedSource] = []
        for sid in candidates:
            source = self._sources[sid]
            config = self.config_for(sid, overrides)
            if not is_capable(source, request, config):
                log.debug(
                    "source %s unavailable for chain=%s order=%s",
                    sid,
                    request.chain_id,
                    request.order.type,
                )
                continue
            selected.append(SelectedSource(sid, source, config))
        return selected
