"""Stub sources shared by engine and service tests."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Sequence

from tokenagg.capabilities import QuoteSourceMetadata, SourceSupport
from tokenagg.chains import SOLANA_CHAIN_ID
from tokenagg.models import (
    BuildTxRequest,
    EvmTransaction,
    GasCost,
    QuoteRequest,
    SellOrder,
    SourceQuote,
    TokenPrice,
    TokenRef,
)
from tokenagg.sources.base import MetadataSource, PriceSource, QuoteSource


class StubQuoteSource(QuoteSource):
    """Quote source answering with fixed amounts after an optional delay."""

    def __init__(
        self,
        name: str,
        *,
        buy_amount: int = 50_000_000,
        sell_amount: int | None = None,
        chains: Sequence[Any] = (SOLANA_CHAIN_ID,),
        buy_orders: bool = True,
        swap_and_transfer: bool = False,
        delay: float = 0.0,
        error: Exception | None = None,
        gas: GasCost | None = None,
        needs_key: bool = False,
    ) -> None:
        self.name = name
        self.buy_amount = buy_amount
        self.sell_amount = sell_amount
        self.supports = SourceSupport(
            chains=frozenset(chains),
            buy_orders=buy_orders,
            swap_and_transfer=swap_and_transfer,
        )
        self.delay = delay
        self.error = error
        self.gas = gas
        self.needs_key = needs_key
        self.quote_calls: list[tuple[QuoteRequest, Mapping[str, Any], float | None]] = []
        self.build_calls: list[BuildTxRequest] = []
        self.cancelled = False

    def get_metadata(self) -> QuoteSourceMetadata:
        return QuoteSourceMetadata(name=self.name, logo_uri=f"ipfs://{self.name}", supports=self.supports)

    async def quote(self, request, config, timeout=None) -> SourceQuote:
        self.quote_calls.append((request, config, timeout))
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        if isinstance(request.order, SellOrder):
            sell, buy = request.order.sell_amount, self.buy_amount
        else:
            sell = self.sell_amount if self.sell_amount is not None else request.order.buy_amount * 2
            buy = request.order.buy_amount
        return SourceQuote(
            sell_amount=sell,
            buy_amount=buy,
            allowance_target="0xallowance",
            gas=self.gas,
            custom_data={"source": self.name},
        )

    async def build_tx(self, request, config) -> EvmTransaction:
        self.build_calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return EvmTransaction(to="0xrouter", calldata=f"0x{self.name}", value=0)

    def is_config_and_context_valid_for_quoting(self, config) -> bool:
        return not self.needs_key or bool(config and config.get("api_key"))

    def is_config_and_context_valid_for_tx_building(self, config) -> bool:
        return not self.needs_key or bool(config and config.get("api_key"))


class StubMetadataSource(MetadataSource):
    def __init__(self, support: Mapping[Any, Mapping[str, str]], data: Mapping[Any, Mapping[str, Mapping[str, Any]]]):
        self.support = support
        self.data = data
        self.calls: list[list[TokenRef]] = []

    def supported_properties(self):
        return self.support

    async def get_metadata(self, tokens: Sequence[TokenRef], timeout=None):
        self.calls.append(list(tokens))
        result: dict[Any, dict[str, dict[str, Any]]] = {}
        for ref in tokens:
            entry = self.data.get(ref.chain_id, {}).get(ref.token)
            if entry is not None:
                result.setdefault(ref.chain_id, {})[ref.token] = dict(entry)
        return result


class StubPriceSource(PriceSource):
    def __init__(self, prices: Mapping[Any, Mapping[str, TokenPrice]], error: Exception | None = None):
        self.prices = prices
        self.error = error

    def supported_chains(self):
        return list(self.prices)

    async def get_current_prices(self, tokens, timeout=None):
        if self.error is not None:
            raise self.error
        result: dict[Any, dict[str, TokenPrice]] = {}
        for ref in tokens:
            price = self.prices.get(ref.chain_id, {}).get(ref.token)
            if price is not None:
                result.setdefault(ref.chain_id, {})[ref.token] = price
        return result
