"""Quote CLI commands."""

from __future__ import annotations

from typing import List, Optional

import typer

from tokenagg.config import SORT_CHOICES, settings
from tokenagg.errors import NoSuccessfulResultError
from tokenagg.models import (
    AggregateConfig,
    BuyOrder,
    QuoteRequest,
    SellOrder,
    SortConfig,
    SourceFilters,
)

from .. import utils
from ..core import app, log


def _request(
    chain: str,
    sell: str,
    buy: str,
    amount: int,
    order: str,
    slippage: float,
    taker: Optional[str],
    recipient: Optional[str],
    include: Optional[List[str]],
    exclude: Optional[List[str]],
) -> QuoteRequest:
    if order not in ("sell", "buy"):
        raise typer.BadParameter("order must be 'sell' or 'buy'")
    filters = None
    if include or exclude:
        filters = SourceFilters(
            include_sources=utils.split_csv(include),
            exclude_sources=utils.split_csv(exclude),
        )
    try:
        return QuoteRequest(
            chain_id=utils.parse_chain(chain),
            sell_token=sell,
            buy_token=buy,
            order=SellOrder(amount) if order == "sell" else BuyOrder(amount),
            slippage_percentage=slippage,
            taker_address=taker,
            recipient=recipient,
            filters=filters,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _config(timeout: Optional[str], sort_by: Optional[str], show_failed: bool) -> AggregateConfig:
    if sort_by is not None and sort_by not in SORT_CHOICES:
        raise typer.BadParameter(f"sort-by must be one of {', '.join(SORT_CHOICES)}")
    return AggregateConfig(
        timeout=timeout,
        ignored_failed=False if show_failed else None,
        sort=SortConfig(by=sort_by or settings.sort_by),  # type: ignore[arg-type]
    )


@app.command("quotes:all")
@app.command("quotes_all")
def quotes_all(
    sell: str = typer.Option(..., help="Token to sell"),
    buy: str = typer.Option(..., help="Token to buy"),
    amount: int = typer.Option(..., help="Order amount in base units"),
    chain: str = "solana",
    order: str = "sell",
    slippage: float = 1.0,
    taker: Optional[str] = None,
    recipient: Optional[str] = None,
    include: Optional[List[str]] = typer.Option(None, help="Only these source ids"),
    exclude: Optional[List[str]] = typer.Option(None, help="Skip these source ids"),
    timeout: Optional[str] = None,
    sort_by: Optional[str] = None,
    show_failed: bool = False,
) -> None:
    """Print quotes from every capable source, best first."""

    request = _request(chain, sell, buy, amount, order, slippage, taker, recipient, include, exclude)
    utils.maybe_start_metrics()
    service = utils.quote_service()
    results = utils.run(service.get_all_quotes(request, _config(timeout, sort_by, show_failed)))
    log.info("quotes:all chain=%s results=%d", request.chain_id, len(results))
    utils.echo_json(results)


@app.command("quotes:best")
@app.command("quotes_best")
def quotes_best(
    sell: str = typer.Option(..., help="Token to sell"),
    buy: str = typer.Option(..., help="Token to buy"),
    amount: int = typer.Option(..., help="Order amount in base units"),
    chain: str = "solana",
    order: str = "sell",
    slippage: float = 1.0,
    taker: Optional[str] = None,
    recipient: Optional[str] = None,
    include: Optional[List[str]] = typer.Option(None, help="Only these source ids"),
    exclude: Optional[List[str]] = typer.Option(None, help="Skip these source ids"),
    timeout: Optional[str] = None,
    sort_by: Optional[str] = None,
) -> None:
    """Print the single best quote."""

    request = _request(chain, sell, buy, amount, order, slippage, taker, recipient, include, exclude)
    utils.maybe_start_metrics()
    service = utils.quote_service()
    try:
        best = utils.run(service.get_best_quote(request, _config(timeout, sort_by, False)))
    except NoSuccessfulResultError as exc:
        log.error("no quote available: %s", exc)
        raise typer.Exit(code=1) from exc
    utils.echo_json(best)


__all__ = ["quotes_all", "quotes_best"]
