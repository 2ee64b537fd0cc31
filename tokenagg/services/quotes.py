"""Quote aggregation: fan out to quote sources, normalize, rank, build txs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from fractions import Fraction
from typing import Any, Mapping, Optional, Sequence

from tokenagg.capabilities import FieldsRequirements, QuoteSourceMetadata
from tokenagg.chains import get_chain_by_key, is_solana_chain
from tokenagg.engine.executor import SourceCall, run_sources
from tokenagg.engine.normalizer import normalize_quote
from tokenagg.engine.ranking import arrange_results, choose_best, sort_quotes
from tokenagg.engine.registry import SourceRegistry
from tokenagg.engine.txbuild import build_transactions
from tokenagg.metrics.exporter import AGGREGATE_CALLS_TOTAL
from tokenagg.models import (
    AggregateConfig,
    FailedResult,
    NormalizedQuote,
    QuoteRequest,
    QuoteWithTx,
    SortConfig,
    SourceSuccess,
    TokenInfo,
    TokenRef,
)
from tokenagg.services.metadata import MetadataService
from tokenagg.services.prices import PriceService
from tokenagg.timeouts import parse_duration

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECS = 10.0
_BEST_EFFORT = FieldsRequirements(default="best effort")


class QuoteService:
    """Aggregate quotes from the sources of a :class:`SourceRegistry`.

    Parameters
    ----------
    registry:
        Quote sources and their global configuration.
    metadata_service:
        Optional; used to fill token symbol/decimals on quotes.
    price_service:
        Optional; used to derive the gas conversion rate when gas-aware
        sorting is requested without one.
    default_timeout:
        Global budget applied when a call does not set ``timeout``.
    default_ignored_failed:
        Whether failures are dropped when a call does not say.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        metadata_service: Optional[MetadataService] = None,
        price_service: Optional[PriceService] = None,
        default_timeout: float | str | None = DEFAULT_TIMEOUT_SECS,
        default_ignored_failed: bool = True,
    ) -> None:
        self.registry = registry
        self.metadata_service = metadata_service
        self.price_service = price_service
        self.default_timeout = parse_duration(default_timeout)
        self.default_ignored_failed = default_ignored_failed

    def supported_sources(self) -> dict[str, QuoteSourceMetadata]:
        return self.registry.metadata()

    def _timeouts(
        self, config: AggregateConfig
    ) -> tuple[float | None, dict[str, float | None]]:
        timeout = parse_duration(config.timeout)
        if timeout is None:
            timeout = self.default_timeout
        per_source = {
            sid: parse_duration(value)
            for sid, value in (config.per_source_timeout or {}).items()
        }
        return timeout, per_source

    def _ignored_failed(self, config: AggregateConfig) -> bool:
        if config.ignored_failed is None:
            return self.default_ignored_failed
        return config.ignored_failed

    async def _collect(
        self, request: QuoteRequest, config: AggregateConfig
    ) -> tuple[list[NormalizedQuote], list[FailedResult], SortConfig]:
        """Return ranked successes, failures and the sort that ranked them."""

        AGGREGATE_CALLS_TOTAL.labels("quotes").inc()
        timeout, per_source = self._timeouts(config)
        selected = self.registry.select(request, config.source_config)
        log.debug(
            "quoting chain=%s %s->%s with %s",
            request.chain_id,
            request.sell_token,
            request.buy_token,
            [s.id for s in selected],
        )

        calls: list[tuple[str, SourceCall]] = []
        for sel in selected:

            def _call(budget: float | None, _src=sel.source, _cfg=sel.config):
                return _src.quote(request, _cfg, budget)

            calls.append((sel.id, _call))

        outcomes, tokens, sort = await asyncio.gather(
            run_sources(calls, timeout=timeout, per_source_timeout=per_source),
            self._token_infos(request, timeout),
            self._resolve_sort(request, config.sort, timeout),
        )
        sell_info, buy_info = tokens

        quotes: list[NormalizedQuote] = []
        failed: list[FailedResult] = []
        for sel, outcome in zip(selected, outcomes):
            info = self.registry.info(sel.id)
            if isinstance(outcome, SourceSuccess):
                quotes.append(
                    normalize_quote(request, info, outcome.result, sell_info, buy_info)
                )
            else:
                failed.append(
                    FailedResult(
                        source=info,
                        chain_id=request.chain_id,
                        sell_token=request.sell_token,
                        buy_token=request.buy_token,
                        error=outcome.error,
                        reason=outcome.reason,
                    )
                )

        return sort_quotes(quotes, sort), failed, sort

    async def get_all_quotes(
        self, request: QuoteRequest, config: AggregateConfig | None = None
    ) -> list[NormalizedQuote | FailedResult]:
        """Return every quote best first, followed by failures unless ignored.

        Never raises for source failures; each one becomes a
        :class:`FailedResult`.
        """

        config = config or AggregateConfig()
        ranked, failed, _sort = await self._collect(request, config)
        return arrange_results(ranked, failed, self._ignored_failed(config))

    async def get_best_quote(
        self, request: QuoteRequest, config: AggregateConfig | None = None
    ) -> NormalizedQuote:
        """Return the best quote.

        Raises
        ------
        NoSuccessfulResultError
            If no source produced a quote, including when none was capable.
        """

        config = config or AggregateConfig()
        ranked, _failed, sort = await self._collect(request, config)
        return choose_best(ranked, sort)

    async def get_all_quotes_with_txs(
        self, request: QuoteRequest, config: AggregateConfig | None = None
    ) -> list[QuoteWithTx | FailedResult]:
        """Quote, then build a transaction for every successful quote.

        Quotes whose transaction could not be built turn into failures, which
        follow the quote failures after all successes.
        """

        config = config or AggregateConfig()
        ranked, failed, _sort = await self._collect(request, config)
        built = await self._build(ranked, config, request.taker_address, request.recipient)
        with_tx = [item for item in built if isinstance(item, QuoteWithTx)]
        tx_failed = [item for item in built if isinstance(item, FailedResult)]
        return arrange_results(with_tx, [*failed, *tx_failed], self._ignored_failed(config))

    async def build_txs(
        self,
        quotes: Sequence[NormalizedQuote],
        config: AggregateConfig | None = None,
        take_from: str | None = None,
        recipient: str | None = None,
    ) -> list[QuoteWithTx | FailedResult]:
        """Build transactions for previously obtained quotes.

        Results keep the order of *quotes*; failures are dropped when
        ``ignored_failed`` applies.
        """

        config = config or AggregateConfig()
        built = await self._build(quotes, config, take_from, recipient)
        if self._ignored_failed(config):
            return [item for item in built if isinstance(item, QuoteWithTx)]
        return built

    async def _build(
        self,
        quotes: Sequence[NormalizedQuote],
        config: AggregateConfig,
        take_from: str | None,
        recipient: str | None,
    ) -> list[QuoteWithTx | FailedResult]:
        if not quotes:
            return []
        AGGREGATE_CALLS_TOTAL.labels("txs").inc()
        timeout, per_source = self._timeouts(config)
        return await build_transactions(
            self.registry,
            quotes,
            timeout=timeout,
            per_source_timeout=per_source,
            source_config=config.source_config,
            take_from=take_from,
            recipient=recipient,
        )

    async def _token_infos(
        self, request: QuoteRequest, timeout: float | None
    ) -> tuple[TokenInfo, TokenInfo]:
        sell = TokenInfo(request.sell_token)
        buy = TokenInfo(request.buy_token)
        if self.metadata_service is None:
            return sell, buy
        refs = [TokenRef(request.chain_id, request.sell_token), TokenRef(request.chain_id, request.buy_token)]
        try:
            found = await asyncio.wait_for(
                self.metadata_service.get_metadata(refs, _BEST_EFFORT, timeout), timeout
            )
        except Exception as exc:
            log.debug("token metadata unavailable for quote: %s", exc)
            return sell, buy
        by_token = found.get(request.chain_id, {})
        return _with_metadata(sell, by_token), _with_metadata(buy, by_token)

    async def _resolve_sort(
        self, request: QuoteRequest, sort: SortConfig, timeout: float | None
    ) -> SortConfig:
        if sort.by != "most-swapped-accounting-for-gas" or sort.gas_conversion_rate is not None:
            return sort
        if self.price_service is None:
            return sort
        try:
            rate = await asyncio.wait_for(
                _gas_conversion_rate(self.price_service, request, timeout), timeout
            )
        except Exception as exc:
            log.debug("gas conversion rate unavailable: %s", exc)
            return sort
        if rate is None:
            return sort
        return replace(sort, gas_conversion_rate=rate)


def _with_metadata(token: TokenInfo, by_token: Mapping[str, Mapping[str, Any]]) -> TokenInfo:
    fields = by_token.get(token.address)
    if not fields:
        return token
    return replace(token, symbol=fields.get("symbol"), decimals=fields.get("decimals"))


async def _gas_conversion_rate(
    prices: PriceService, request: QuoteRequest, timeout: float | None
) -> Fraction | None:
    """Compared-token base units worth one base unit of the native token."""

    chain = get_chain_by_key(request.chain_id)
    if chain is None:
        return None
    compared = request.buy_token if request.order.type == "sell" else request.sell_token
    refs = [TokenRef(request.chain_id, chain.native_token), TokenRef(request.chain_id, compared)]
    found = (await prices.get_current_prices(refs, timeout)).get(request.chain_id, {})
    native = found.get(chain.native_token)
    token = found.get(compared)
    if native is None or token is None or token.decimals is None or not token.price:
        return None
    native_decimals = native.decimals
    if native_decimals is None:
        native_decimals = 9 if is_solana_chain(chain) else 18
    return (
        Fraction(str(native.price))
        * 10**token.decimals
        / (Fraction(str(token.price)) * 10**native_decimals)
    )
