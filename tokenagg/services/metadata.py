"""Token metadata aggregation with per-field requirements."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable, Mapping, Sequence

from tokenagg.capabilities import (
    FieldsRequirements,
    FieldSupport,
    combine_support,
    missing_required_fields,
    resolve_requirements,
)
from tokenagg.errors import RequirementsNotSupportedError
from tokenagg.models import ChainId, TokenRef
from tokenagg.services.base import DataService, merge_nested
from tokenagg.sources.base import MetadataSource

log = logging.getLogger(__name__)


class MetadataService(DataService[MetadataSource]):
    """Merge token metadata from several sources.

    Fields are merged per token with the first registered source winning.
    Tokens missing a field the result must carry (see
    :func:`~tokenagg.capabilities.resolve_requirements`) are left out.
    """

    service_name = "metadata"

    def chains_of(self, source: MetadataSource) -> Iterable[ChainId]:
        return source.supported_properties().keys()

    def supported_properties(self) -> dict[ChainId, dict[str, FieldSupport]]:
        per_chain: dict[ChainId, list[Mapping[str, FieldSupport]]] = defaultdict(list)
        for source in self.sources.values():
            for chain_id, support in source.supported_properties().items():
                per_chain[chain_id].append(support)
        return {chain_id: combine_support(s) for chain_id, s in per_chain.items()}

    async def get_metadata(
        self,
        tokens: Sequence[TokenRef],
        requirements: FieldsRequirements | None = None,
        timeout: float | str | None = None,
    ) -> dict[ChainId, dict[str, dict[str, Any]]]:
        """Return ``{chain: {token: {field: value}}}`` for the given tokens.

        Raises
        ------
        RequirementsNotSupportedError
            If a field is required on a chain where no source guarantees it.
        """

        support = self.supported_properties()
        for chain_id in dict.fromkeys(t.chain_id for t in tokens):
            missing = missing_required_fields(support.get(chain_id, {}), requirements)
            if missing:
                raise RequirementsNotSupportedError(chain_id, missing)

        results = await self._fan_out(
            tokens,
            lambda ref: ref.chain_id,
            lambda source, subset, budget: source.get_metadata(subset, budget),
            timeout,
        )
        merged = merge_nested((_drop_empty(result) for _sid, result in results), depth=3)

        complete: dict[ChainId, dict[str, dict[str, Any]]] = {}
        for chain_id, by_token in merged.items():
            needed = resolve_requirements(support.get(chain_id, {}), requirements)
            for token, fields in by_token.items():
                absent = needed - fields.keys()
                if absent:
                    log.debug(
                        "dropping metadata for %s on %s: missing %s",
                        token,
                        chain_id,
                        sorted(absent),
                    )
                    continue
                complete.setdefault(chain_id, {})[token] = fields
        return complete


def _drop_empty(
    result: Mapping[ChainId, Mapping[str, Mapping[str, Any]]],
) -> dict[ChainId, dict[str, dict[str, Any]]]:
    return {
        chain_id: {
            token: {k: v for k, v in fields.items() if v is not None}
            for token, fields in by_token.items()
        }
        for chain_id, by_token in result.items()
    }
