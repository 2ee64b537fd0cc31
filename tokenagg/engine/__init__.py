"""Source aggregation engine: selection, fan-out, normalization and ranking."""

from __future__ import annotations

from .executor import run_sources
from .normalizer import apply_slippage, normalize_quote
from .ranking import arrange_results, choose_best, sort_quotes
from .registry import SelectedSource, SourceRegistry
from .txbuild import build_transactions

__all__ = [
    "SourceRegistry",
    "SelectedSource",
    "run_sources",
    "apply_slippage",
    "normalize_quote",
    "sort_quotes",
    "arrange_results",
    "choose_best",
    "build_transactions",
]
