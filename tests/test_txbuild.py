"""Transaction-build stage tests."""

import asyncio

import pytest

from tokenagg.engine.registry import SourceRegistry
from tokenagg.engine.txbuild import INVALID_TX_CONFIG, build_transactions, build_tx_request
from tokenagg.models import (
    FailedResult,
    FailureReason,
    NormalizedQuote,
    QuoteAccounts,
    QuoteWithTx,
    SourceInfo,
    TokenInfo,
)

from tests.stub_sources import StubQuoteSource


def _quote(source, taker="0xtaker", recipient=None):
    return NormalizedQuote(
        chain_id=1,
        source=SourceInfo(source, source, ""),
        sell_token=TokenInfo("A"),
        buy_token=TokenInfo("B"),
        type="sell",
        sell_amount=100,
        buy_amount=200,
        max_sell_amount=100,
        min_buy_amount=198,
        allowance_target="0x",
        custom_data={"route": source},
        accounts=QuoteAccounts(taker, recipient),
    )


def test_build_tx_request_defaults_recipient_to_taker() -> None:
    req = build_tx_request(_quote("a"))
    assert req.take_from == "0xtaker"
    assert req.recipient == "0xtaker"
    assert req.custom_data == {"route": "a"}
    assert build_tx_request(_quote("a"), recipient="0xother").recipient == "0xother"


def test_build_tx_request_needs_taker() -> None:
    with pytest.raises(ValueError):
        build_tx_request(_quote("a", taker=None))


def test_results_keep_quote_order_and_capture_failures() -> None:
    registry = SourceRegistry(
        {
            "slow": StubQuoteSource("slow", chains=(1,), delay=0.02),
            "broken": StubQuoteSource("broken", chains=(1,), error=RuntimeError("nope")),
            "keyed": StubQuoteSource("keyed", chains=(1,), needs_key=True),
            "fast": StubQuoteSource("fast", chains=(1,)),
        }
    )
    quotes = [_quote("slow"), _quote("broken"), _quote("keyed"), _quote("fast"), _quote("ghost")]
    results = asyncio.run(build_transactions(registry, quotes, timeout=1.0))

    assert isinstance(results[0], QuoteWithTx) and results[0].tx.calldata == "0xslow"
    assert isinstance(results[1], FailedResult) and results[1].error == "nope"
    assert isinstance(results[2], FailedResult) and results[2].error == INVALID_TX_CONFIG
    assert isinstance(results[3], QuoteWithTx) and results[3].quote.source.id == "fast"
    assert isinstance(results[4], FailedResult) and "unknown source" in results[4].error
    # invalid config is never attempted
    assert registry.get("keyed").build_calls == []


def test_tx_timeout_is_reported() -> None:
    registry = SourceRegistry({"slow": StubQuoteSource("slow", chains=(1,), delay=1.0)})
    results = asyncio.run(build_transactions(registry, [_quote("slow")], timeout=0.02))
    assert results[0].reason is FailureReason.TIMEOUT


def test_build_request_receives_budget() -> None:
    src = StubQuoteSource("a", chains=(1,))
    registry = SourceRegistry({"a": src})
    asyncio.run(
        build_transactions(registry, [_quote("a")], timeout=5.0, per_source_timeout={"a": 2.0})
    )
    assert src.build_calls[0].timeout == 2.0
