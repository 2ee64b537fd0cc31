"""Aggregation services exposed to callers."""

from .balances import BalanceService
from .metadata import MetadataService
from .prices import PriceService
from .quotes import QuoteService

__all__ = ["QuoteService", "MetadataService", "BalanceService", "PriceService"]
