"""Source interfaces and implementations."""

from .base import BalanceSource, MetadataSource, PriceSource, QuoteSource
from .defillama import DefiLlamaPriceSource
from .evm_balances import EvmBalanceSource
from .jupiter import JupiterQuoteSource
from .jupiter_metadata import JupiterMetadataSource
from .lifi import LifiQuoteSource
from .solana_balances import SolanaBalanceSource

__all__ = [
    "QuoteSource",
    "MetadataSource",
    "BalanceSource",
    "PriceSource",
    "JupiterQuoteSource",
    "LifiQuoteSource",
    "JupiterMetadataSource",
    "SolanaBalanceSource",
    "EvmBalanceSource",
    "DefiLlamaPriceSource",
]
