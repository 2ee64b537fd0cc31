"""tokenagg CLI package that exposes the Typer application and command helpers."""

from __future__ import annotations

from tokenagg.config import settings

from .core import CLIApp, app, log

# Import command modules for side-effect registration
from . import commands, utils
from .commands.balances import balances_get
from .commands.prices import prices_get
from .commands.quotes import quotes_all, quotes_best
from .commands.sources import sources_list

__all__ = [
    "CLIApp",
    "app",
    "balances_get",
    "commands",
    "log",
    "prices_get",
    "quotes_all",
    "quotes_best",
    "settings",
    "sources_list",
    "utils",
]
