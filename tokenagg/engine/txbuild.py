"""Transaction-build stage: ask each quote's source for a transaction."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Sequence

from tokenagg.engine.executor import SourceCall, run_sources
from tokenagg.engine.registry import SourceRegistry
from tokenagg.models import (
    BuildTxRequest,
    FailedResult,
    FailureReason,
    NormalizedQuote,
    QuoteWithTx,
    SourceSuccess,
)

log = logging.getLogger(__name__)

INVALID_TX_CONFIG = "source configuration is not valid for building transactions"


def build_tx_request(
    quote: NormalizedQuote,
    take_from: str | None = None,
    recipient: str | None = None,
    timeout: float | None = None,
) -> BuildTxRequest:
    """Restate the accounts and source route of *quote* for tx building."""

    taker = take_from or quote.accounts.taker_address
    if not taker:
        raise ValueError("a taker address is required to build transactions")
    return BuildTxRequest(
        chain_id=quote.chain_id,
        sell_token=quote.sell_token.address,
        buy_token=quote.buy_token.address,
        type=quote.type,
        sell_amount=quote.sell_amount,
        max_sell_amount=quote.max_sell_amount,
        buy_amount=quote.buy_amount,
        min_buy_amount=quote.min_buy_amount,
        take_from=taker,
        recipient=recipient or quote.accounts.recipient or taker,
        custom_data=quote.custom_data,
        timeout=timeout,
    )


def _failed(quote: NormalizedQuote, error: str, reason: FailureReason) -> FailedResult:
    return FailedResult(
        source=quote.source,
        chain_id=quote.chain_id,
        sell_token=quote.sell_token.address,
        buy_token=quote.buy_token.address,
        error=error,
        reason=reason,
    )


async def build_transactions(
    registry: SourceRegistry,
    quotes: Sequence[NormalizedQuote],
    *,
    timeout: float | None,
    per_source_timeout: Mapping[str, float | None] | None = None,
    source_config: Mapping[str, Mapping[str, Any]] | None = None,
    take_from: str | None = None,
    recipient: str | None = None,
) -> list[QuoteWithTx | FailedResult]:
    """Build one transaction per quote, preserving the order of *quotes*.

    Quotes whose source is unknown or rejects its tx-building configuration
    fail without being attempted; the rest are fanned out with the same
    timeout discipline as quoting. Each slot of the result holds either a
    :class:`QuoteWithTx` or a :class:`FailedResult`.
    """

    results: list[QuoteWithTx | FailedResult | None] = [None] * len(quotes)
    calls: list[tuple[str, SourceCall]] = []
    slots: list[int] = []

    for idx, quote in enumerate(quotes):
        source_id = quote.source.id
        source = registry.get(source_id)
        if source is None:
            results[idx] = _failed(
                quote, f"unknown source '{source_id}'", FailureReason.CALL_FAILED
            )
            continue
        config = registry.config_for(source_id, source_config)
        try:
            valid = bool(source.is_config_and_context_valid_for_tx_building(config))
        except Exception as exc:
            log.debug("tx config check raised for %s: %s", source_id, exc)
            valid = False
        if not valid:
            results[idx] = _failed(quote, INVALID_TX_CONFIG, FailureReason.CALL_FAILED)
            continue
        try:
            request = build_tx_request(quote, take_from, recipient)
        except ValueError as exc:
            results[idx] = _failed(quote, str(exc), FailureReason.CALL_FAILED)
            continue

        def _call(budget: float | None, _src=source, _req=request, _cfg=config):
            return _src.build_tx(replace(_req, timeout=budget), _cfg)

        calls.append((source_id, _call))
        slots.append(idx)

    outcomes = await run_sources(
        calls,
        timeout=timeout,
        per_source_timeout=per_source_timeout,
        service="txs",
    )
    for idx, outcome in zip(slots, outcomes):
        quote = quotes[idx]
        if isinstance(outcome, SourceSuccess):
            results[idx] = QuoteWithTx(quote=quote, tx=outcome.result)
        else:
            results[idx] = _failed(quote, outcome.error, outcome.reason)
    return [r for r in results if r is not None]
