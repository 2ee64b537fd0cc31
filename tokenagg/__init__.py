"""Multi-source token quote, balance, price and metadata aggregation."""

from __future__ import annotations

from .engine import SourceRegistry
from .errors import (
    FailedToGenerateQuoteError,
    NoSuccessfulResultError,
    RequirementsNotSupportedError,
    SourceCallFailedError,
    SourceTimeoutError,
    TokenAggError,
)
from .models import (
    AggregateConfig,
    BalanceInput,
    BuyOrder,
    EvmTransaction,
    FailedResult,
    FailureReason,
    NormalizedQuote,
    QuoteRequest,
    QuoteWithTx,
    SellOrder,
    SolanaTransaction,
    SortConfig,
    SourceFilters,
    TokenRef,
)
from .services import BalanceService, MetadataService, PriceService, QuoteService

__all__ = [
    "SourceRegistry",
    "QuoteService",
    "MetadataService",
    "BalanceService",
    "PriceService",
    "QuoteRequest",
    "SellOrder",
    "BuyOrder",
    "SourceFilters",
    "AggregateConfig",
    "SortConfig",
    "NormalizedQuote",
    "FailedResult",
    "FailureReason",
    "QuoteWithTx",
    "EvmTransaction",
    "SolanaTransaction",
    "TokenRef",
    "BalanceInput",
    "TokenAggError",
    "SourceCallFailedError",
    "FailedToGenerateQuoteError",
    "SourceTimeoutError",
    "NoSuccessfulResultError",
    "RequirementsNotSupportedError",
]
