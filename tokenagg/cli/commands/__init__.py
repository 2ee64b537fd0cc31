"""Grouped Typer command modules for the tokenagg CLI."""

from __future__ import annotations

from . import balances, prices, quotes, sources

__all__ = ["balances", "prices", "quotes", "sources"]
