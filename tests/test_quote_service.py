"""End-to-end tests for :class:`QuoteService` over stub sources."""

import asyncio
import time

import pytest

from tokenagg.chains import EVM_NATIVE_TOKEN, SOLANA_NATIVE_SOL, SOLANA_USDC
from tokenagg.engine.registry import SourceRegistry
from tokenagg.errors import NoSuccessfulResultError
from tokenagg.models import (
    AggregateConfig,
    BuyOrder,
    FailedResult,
    FailureReason,
    GasCost,
    NormalizedQuote,
    QuoteRequest,
    QuoteWithTx,
    SellOrder,
    SortConfig,
    SourceFilters,
    TokenPrice,
)
from tokenagg.services.metadata import MetadataService
from tokenagg.services.prices import PriceService
from tokenagg.services.quotes import QuoteService

from tests.stub_sources import StubMetadataSource, StubPriceSource, StubQuoteSource

TAKER = "Taker1111111111111111111111111111111111111"
EVM_USDC = "0xusdc"


def _sol_request(**overrides):
    params = dict(
        chain_id="solana",
        sell_token=SOLANA_NATIVE_SOL,
        buy_token=SOLANA_USDC,
        order=SellOrder(100_000_000),
        slippage_percentage=1,
        taker_address=TAKER,
    )
    params.update(overrides)
    return QuoteRequest(**params)


def test_sol_to_usdc_min_buy_amount() -> None:
    service = QuoteService(SourceRegistry({"jupiter": StubQuoteSource("jupiter")}))
    quotes = asyncio.run(service.get_all_quotes(_sol_request()))
    assert len(quotes) == 1
    quote = quotes[0]
    assert isinstance(quote, NormalizedQuote)
    assert quote.sell_amount == 100_000_000
    assert quote.buy_amount == 50_000_000
    assert quote.min_buy_amount == 49_500_000
    assert quote.max_sell_amount == 100_000_000
    assert quote.accounts.recipient == TAKER


def test_timeout_failure_visible_only_when_not_ignored() -> None:
    registry = SourceRegistry(
        {
            "slow": StubQuoteSource("slow", delay=1.0),
            "fast": StubQuoteSource("fast"),
        }
    )
    service = QuoteService(registry)
    kept = asyncio.run(
        service.get_all_quotes(_sol_request(), AggregateConfig(timeout="50ms", ignored_failed=False))
    )
    assert len(kept) == 2
    assert isinstance(kept[0], NormalizedQuote) and kept[0].source.id == "fast"
    assert isinstance(kept[1], FailedResult)
    assert kept[1].reason is FailureReason.TIMEOUT
    assert kept[1].source.id == "slow"

    dropped = asyncio.run(service.get_all_quotes(_sol_request(), AggregateConfig(timeout=0.05)))
    assert [q.source.id for q in dropped] == ["fast"]


def test_service_default_for_ignored_failed() -> None:
    registry = SourceRegistry({"broken": StubQuoteSource("broken", error=RuntimeError("boom"))})
    service = QuoteService(registry, default_ignored_failed=False)
    results = asyncio.run(service.get_all_quotes(_sol_request()))
    assert len(results) == 1 and results[0].error == "boom"


def test_results_ranked_best_first() -> None:
    registry = SourceRegistry(
        {
            "low": StubQuoteSource("low", buy_amount=40),
            "high": StubQuoteSource("high", buy_amount=60),
            "tie": StubQuoteSource("tie", buy_amount=40),
        }
    )
    quotes = asyncio.run(QuoteService(registry).get_all_quotes(_sol_request()))
    assert [q.source.id for q in quotes] == ["high", "low", "tie"]


def test_buy_order_prefers_cheapest_sell() -> None:
    registry = SourceRegistry(
        {
            "dear": StubQuoteSource("dear", sell_amount=300),
            "cheap": StubQuoteSource("cheap", sell_amount=200),
        }
    )
    best = asyncio.run(
        QuoteService(registry).get_best_quote(_sol_request(order=BuyOrder(100)))
    )
    assert best.source.id == "cheap"
    assert best.max_sell_amount == 202


def test_best_quote_without_capable_sources_raises() -> None:
    registry = SourceRegistry({"evm": StubQuoteSource("evm", chains=(1,))})
    with pytest.raises(NoSuccessfulResultError):
        asyncio.run(QuoteService(registry).get_best_quote(_sol_request()))


def test_best_quote_when_all_fail_raises() -> None:
    registry = SourceRegistry({"a": StubQuoteSource("a", error=RuntimeError("x"))})
    with pytest.raises(NoSuccessfulResultError):
        asyncio.run(QuoteService(registry).get_best_quote(_sol_request()))


def test_include_filter_limits_sources() -> None:
    a, b = StubQuoteSource("a"), StubQuoteSource("b")
    service = QuoteService(SourceRegistry({"a": a, "b": b}))
    request = _sol_request(filters=SourceFilters(include_sources=("b",)))
    quotes = asyncio.run(service.get_all_quotes(request))
    assert [q.source.id for q in quotes] == ["b"]
    assert a.quote_calls == []


def test_source_config_overrides_reach_source() -> None:
    src = StubQuoteSource("keyed", needs_key=True)
    registry = SourceRegistry({"keyed": src}, default_config={"keyed": {"api_key": "global"}})
    service = QuoteService(registry)
    asyncio.run(
        service.get_all_quotes(
            _sol_request(), AggregateConfig(source_config={"keyed": {"extra": 1}})
        )
    )
    assert src.quote_calls[0][1] == {"api_key": "global", "extra": 1}


def _evm_gas_service(price_service):
    registry = SourceRegistry(
        {
            "gassy": StubQuoteSource(
                "gassy", chains=(1,), buy_amount=1_000_000_000, gas=GasCost(100_000, 10**10)
            ),
            "lean": StubQuoteSource("lean", chains=(1,), buy_amount=999_000_000),
        }
    )
    return QuoteService(registry, price_service=price_service)


def _evm_request():
    return QuoteRequest(
        chain_id=1,
        sell_token=EVM_NATIVE_TOKEN,
        buy_token=EVM_USDC,
        order=SellOrder(10**18),
        slippage_percentage=0.5,
        taker_address="0xtaker",
    )


def test_gas_rate_derived_from_prices() -> None:
    prices = PriceService(
        {
            "stub": StubPriceSource(
                {1: {EVM_NATIVE_TOKEN: TokenPrice(2000.0, 18), EVM_USDC: TokenPrice(1.0, 6)}}
            )
        }
    )
    service = _evm_gas_service(prices)
    gas_aware = AggregateConfig(sort=SortConfig(by="most-swapped-accounting-for-gas"))

    # gas costs 1e15 wei = 2 USDC, so the lean route nets more
    assert asyncio.run(service.get_best_quote(_evm_request(), gas_aware)).source.id == "lean"
    assert asyncio.run(service.get_best_quote(_evm_request())).source.id == "gassy"


def test_gas_aware_sort_without_prices_falls_back() -> None:
    prices = PriceService({"stub": StubPriceSource({1: {}})})
    service = _evm_gas_service(prices)
    gas_aware = AggregateConfig(sort=SortConfig(by="most-swapped-accounting-for-gas"))
    assert asyncio.run(service.get_best_quote(_evm_request(), gas_aware)).source.id == "gassy"


def test_quotes_carry_token_metadata() -> None:
    metadata = MetadataService(
        {
            "stub": StubMetadataSource(
                {"solana": {"symbol": "present", "decimals": "present"}},
                {"solana": {SOLANA_USDC: {"symbol": "USDC", "decimals": 6}}},
            )
        }
    )
    service = QuoteService(
        SourceRegistry({"jupiter": StubQuoteSource("jupiter")}), metadata_service=metadata
    )
    quote = asyncio.run(service.get_best_quote(_sol_request()))
    assert quote.buy_token.symbol == "USDC"
    assert quote.buy_token.decimals == 6
    assert quote.sell_token.symbol is None


def test_all_quotes_with_txs() -> None:
    registry = SourceRegistry(
        {
            "good": StubQuoteSource("good", buy_amount=10),
            "better": StubQuoteSource("better", buy_amount=20),
            "down": StubQuoteSource("down", error=RuntimeError("offline")),
        }
    )
    service = QuoteService(registry)
    results = asyncio.run(
        service.get_all_quotes_with_txs(_sol_request(), AggregateConfig(ignored_failed=False))
    )
    assert [type(r) for r in results] == [QuoteWithTx, QuoteWithTx, FailedResult]
    assert results[0].quote.source.id == "better"
    assert results[0].tx.calldata == "0xbetter"
    assert results[2].error == "offline"


def test_build_txs_keeps_order_and_filters_failures() -> None:
    keyed = StubQuoteSource("keyed", needs_key=True)
    plain = StubQuoteSource("plain")
    registry = SourceRegistry({"plain": plain, "keyed": keyed}, default_config={"keyed": {"api_key": "k"}})
    service = QuoteService(registry)
    quotes = asyncio.run(service.get_all_quotes(_sol_request()))
    assert len(quotes) == 2

    cfg = AggregateConfig(source_config={"keyed": {"api_key": ""}}, ignored_failed=False)
    built = asyncio.run(service.build_txs(list(reversed(quotes)), cfg))
    assert [r.source.id if isinstance(r, FailedResult) else r.quote.source.id for r in built] == [
        "keyed",
        "plain",
    ]
    assert isinstance(built[0], FailedResult) and isinstance(built[1], QuoteWithTx)

    only_ok = asyncio.run(service.build_txs(quotes, AggregateConfig(source_config=cfg.source_config)))
    assert [r.quote.source.id for r in only_ok] == ["plain"]


def test_build_txs_with_no_quotes() -> None:
    service = QuoteService(SourceRegistry({}))
    assert asyncio.run(service.build_txs([])) == []


def test_supported_sources_lists_metadata() -> None:
    service = QuoteService(SourceRegistry({"a": StubQuoteSource("a")}))
    assert service.supported_sources()["a"].name == "a"


class SlowPrices(StubPriceSource):
    def __init__(self, prices, delay) -> None:
        super().__init__(prices)
        self.delay = delay

    async def get_current_prices(self, tokens, timeout=None):
        await asyncio.sleep(self.delay)
        return await super().get_current_prices(tokens, timeout)


def test_gas_rate_lookup_shares_the_global_budget() -> None:
    registry = SourceRegistry({"slow": StubQuoteSource("slow", chains=(1,), delay=5.0)})
    prices = PriceService({"slow": SlowPrices({1: {EVM_NATIVE_TOKEN: TokenPrice(2000.0, 18)}}, 5.0)})
    service = QuoteService(registry, price_service=prices)
    config = AggregateConfig(
        timeout=0.5, ignored_failed=False, sort=SortConfig(by="most-swapped-accounting-for-gas")
    )

    started = time.monotonic()
    results = asyncio.run(service.get_all_quotes(_evm_request(), config))
    elapsed = time.monotonic() - started

    assert elapsed < 0.9
    assert len(results) == 1 and results[0].reason is FailureReason.TIMEOUT


def test_gas_rate_lookup_runs_alongside_quotes() -> None:
    prices = PriceService(
        {
            "slow": SlowPrices(
                {1: {EVM_NATIVE_TOKEN: TokenPrice(2000.0, 18), EVM_USDC: TokenPrice(1.0, 6)}}, 0.3
            )
        }
    )
    registry = SourceRegistry(
        {
            "gassy": StubQuoteSource(
                "gassy", chains=(1,), buy_amount=1_000_000_000, gas=GasCost(100_000, 10**10), delay=0.3
            ),
            "lean": StubQuoteSource("lean", chains=(1,), buy_amount=999_000_000, delay=0.3),
        }
    )
    service = QuoteService(registry, price_service=prices)
    gas_aware = AggregateConfig(timeout=2.0, sort=SortConfig(by="most-swapped-accounting-for-gas"))

    started = time.monotonic()
    best = asyncio.run(service.get_best_quote(_evm_request(), gas_aware))
    elapsed = time.monotonic() - started

    assert best.source.id == "lean"
    assert elapsed < 0.55
