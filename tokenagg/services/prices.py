"""Price aggregation across price sources."""

from __future__ import annotations

from typing import Iterable, Sequence

from tokenagg.models import ChainId, TokenPrice, TokenRef
from tokenagg.services.base import DataService, merge_nested
from tokenagg.sources.base import PriceSource


class PriceService(DataService[PriceSource]):
    service_name = "prices"

    def chains_of(self, source: PriceSource) -> Iterable[ChainId]:
        return source.supported_chains()

    def supported_chains(self) -> list[ChainId]:
        chains: dict[ChainId, None] = {}
        for source in self.sources.values():
            chains.update(dict.fromkeys(source.supported_chains()))
        return list(chains)

    async def get_current_prices(
        self, tokens: Sequence[TokenRef], timeout: float | str | None = None
    ) -> dict[ChainId, dict[str, TokenPrice]]:
        """Return the USD price of each token some source could price."""

        results = await self._fan_out(
            tokens,
            lambda ref: ref.chain_id,
            lambda source, subset, budget: source.get_current_prices(subset, budget),
            timeout,
        )
        return merge_nested((result for _sid, result in results), depth=2)
