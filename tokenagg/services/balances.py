"""Balance aggregation across balance sources."""

from __future__ import annotations

from typing import Iterable, Sequence

from tokenagg.models import BalanceInput, ChainId
from tokenagg.services.base import DataService, merge_nested
from tokenagg.sources.base import BalanceSource


class BalanceService(DataService[BalanceSource]):
    """Read balances from every source covering the requested chains.

    When several sources answer for the same account and token, the first
    registered source wins.
    """

    service_name = "balances"

    def chains_of(self, source: BalanceSource) -> Iterable[ChainId]:
        return source.supported_chains()

    def supported_chains(self) -> list[ChainId]:
        chains: dict[ChainId, None] = {}
        for source in self.sources.values():
            chains.update(dict.fromkeys(source.supported_chains()))
        return list(chains)

    async def get_balances(
        self, tokens: Sequence[BalanceInput], timeout: float | str | None = None
    ) -> dict[ChainId, dict[str, dict[str, int]]]:
        """Return ``{chain: {account: {token: amount}}}`` in base units."""

        results = await self._fan_out(
            tokens,
            lambda item: item.chain_id,
            lambda source, subset, budget: source.get_balances(subset, budget),
            timeout,
        )
        return merge_nested((result for _sid, result in results), depth=3)
