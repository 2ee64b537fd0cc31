"""Current token prices from the DefiLlama coins API."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

import httpx

from tokenagg.chains import (
    ARBITRUM,
    AVALANCHE,
    BASE,
    BNB_CHAIN,
    ETHEREUM,
    EVM_NATIVE_TOKEN,
    OPTIMISM,
    POLYGON,
    SOLANA_CHAIN_ID,
    ZERO_ADDRESS,
)
from tokenagg.models import ChainId, TokenPrice, TokenRef
from tokenagg.sources.base import PriceSource
from tokenagg.sources.http import request_json

log = logging.getLogger(__name__)

DEFILLAMA_COINS_URL = "https://coins.llama.fi"

# DefiLlama chain keys
CHAIN_KEYS: Mapping[ChainId, str] = {
    ETHEREUM.chain_id: "ethereum",
    OPTIMISM.chain_id: "optimism",
    BNB_CHAIN.chain_id: "bsc",
    POLYGON.chain_id: "polygon",
    BASE.chain_id: "base",
    ARBITRUM.chain_id: "arbitrum",
    AVALANCHE.chain_id: "avax",
    SOLANA_CHAIN_ID: "solana",
}
_CHAIN_IDS = {key: chain_id for chain_id, key in CHAIN_KEYS.items()}


def llama_key_to_chain_id(key: str) -> Optional[ChainId]:
    """Map a DefiLlama chain key (any case) to a :data:`ChainId`."""

    return _CHAIN_IDS.get(key.strip().lower())


def coin_id(chain_id: ChainId, token: str) -> str:
    """Return the ``chain:address`` coin id DefiLlama expects."""

    key = CHAIN_KEYS[chain_id]
    if chain_id != SOLANA_CHAIN_ID and token.lower() == EVM_NATIVE_TOKEN:
        token = ZERO_ADDRESS
    return f"{key}:{token}"


class DefiLlamaPriceSource(PriceSource):
    """Price tokens on the EVM chains DefiLlama indexes and on Solana."""

    def __init__(
        self, client: httpx.AsyncClient | None = None, base_url: str = DEFILLAMA_COINS_URL
    ) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")

    def supported_chains(self) -> list[ChainId]:
        return list(CHAIN_KEYS)

    async def get_current_prices(
        self, tokens: Sequence[TokenRef], timeout: float | None = None
    ) -> dict[ChainId, dict[str, TokenPrice]]:
        requested: dict[str, TokenRef] = {}
        for ref in tokens:
            if ref.chain_id not in CHAIN_KEYS:
                continue
            requested[coin_id(ref.chain_id, ref.token).lower()] = ref
        if not requested:
            return {}

        coins = ",".join(coin_id(r.chain_id, r.token) for r in requested.values())
        payload: Mapping[str, Any] = await request_json(
            self._client,
            "GET",
            f"{self.base_url}/prices/current/{coins}",
            timeout=timeout,
        )

        result: dict[ChainId, dict[str, TokenPrice]] = {}
        for key, data in (payload.get("coins") or {}).items():
            ref = requested.get(key.lower())
            if ref is None or data.get("price") is None:
                continue
            result.setdefault(ref.chain_id, {})[ref.token] = TokenPrice(
                price=float(data["price"]),
                decimals=data.get("decimals"),
                symbol=data.get("symbol"),
                timestamp=data.get("timestamp"),
            )
        log.debug("defillama priced %d/%d tokens", sum(map(len, result.values())), len(requested))
        return result
