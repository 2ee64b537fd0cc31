"""Wire :class:`~tokenagg.config.Settings` into services.

Every service gets an explicit registry built here; nothing below this
module reads the settings singleton.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping

import httpx

from tokenagg.config import Settings, config_for_source
from tokenagg.engine.registry import SourceRegistry
from tokenagg.services import BalanceService, MetadataService, PriceService, QuoteService
from tokenagg.sources import (
    DefiLlamaPriceSource,
    EvmBalanceSource,
    JupiterMetadataSource,
    JupiterQuoteSource,
    LifiQuoteSource,
    QuoteSource,
    SolanaBalanceSource,
)

log = logging.getLogger(__name__)

QUOTE_SOURCES: Mapping[str, Callable[[httpx.AsyncClient | None], QuoteSource]] = {
    "jupiter": lambda client: JupiterQuoteSource(client=client),
    "li-fi": lambda client: LifiQuoteSource(client=client),
}


def build_registry(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> SourceRegistry:
    """Return a registry with the enabled quote sources, in settings order."""

    sources: dict[str, QuoteSource] = {}
    for source_id in settings.sources:
        factory = QUOTE_SOURCES.get(source_id)
        if factory is None:
            raise ValueError(
                f"unknown quote source '{source_id}'; available: {', '.join(QUOTE_SOURCES)}"
            )
        sources[source_id] = factory(client)
    config = {sid: config_for_source(sid, settings) for sid in sources}
    log.debug("quote sources enabled: %s", list(sources))
    return SourceRegistry(sources, config)


def build_metadata_service(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> MetadataService:
    return MetadataService(
        {"jupiter": JupiterMetadataSource(client=client)},
        default_timeout=settings.default_timeout,
    )


def build_price_service(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> PriceService:
    return PriceService(
        {"defillama": DefiLlamaPriceSource(client=client)},
        default_timeout=settings.default_timeout,
    )


def build_balance_service(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> BalanceService:
    return BalanceService(
        {
            "solana-rpc": SolanaBalanceSource(settings.solana_rpc_url, client=client),
            "web3": EvmBalanceSource(settings.evm_rpc_urls),
        },
        default_timeout=settings.default_timeout,
    )


def build_quote_service(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> QuoteService:
    """Return a :class:`QuoteService` with metadata and price enrichment."""

    return QuoteService(
        build_registry(settings, client),
        metadata_service=build_metadata_service(settings, client),
        price_service=build_price_service(settings, client),
        default_timeout=settings.default_timeout,
        default_ignored_failed=settings.ignored_failed,
    )
