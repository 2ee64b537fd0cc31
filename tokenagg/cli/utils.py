"""Shared helpers for CLI commands."""

from __future__ import annotations

import asyncio
import dataclasses
import json
from fractions import Fraction
from typing import Any, Coroutine, Iterable, TypeVar

import typer

from tokenagg import builder
from tokenagg.chains import to_chain_id
from tokenagg.config import settings
from tokenagg.metrics.exporter import start_metrics_server
from tokenagg.models import ChainId
from tokenagg.services import BalanceService, PriceService, QuoteService

from .core import log

T = TypeVar("T")

_metrics_started = False


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive *coro* to completion on a fresh event loop."""

    return asyncio.run(coro)


def parse_chain(value: str) -> ChainId:
    try:
        return to_chain_id(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def split_csv(values: Iterable[str] | None) -> tuple[str, ...] | None:
    """Flatten repeated and comma separated option values."""

    if not values:
        return None
    items = [part.strip() for value in values for part in value.split(",")]
    return tuple(item for item in items if item) or None


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Fraction):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    raise TypeError(f"{type(obj).__name__} is not JSON serializable")


def to_jsonable(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def echo_json(obj: Any) -> None:
    typer.echo(json.dumps(to_jsonable(obj), indent=2, default=_json_default))


def maybe_start_metrics() -> None:
    """Start the Prometheus endpoint once when metrics are enabled."""

    global _metrics_started
    if settings.metrics_enabled and not _metrics_started:
        start_metrics_server(settings.prom_port)
        _metrics_started = True
        log.info("metrics server listening on port %s", settings.prom_port)


def quote_service() -> QuoteService:
    return builder.build_quote_service(settings)


def balance_service() -> BalanceService:
    return builder.build_balance_service(settings)


def price_service() -> PriceService:
    return builder.build_price_service(settings)
