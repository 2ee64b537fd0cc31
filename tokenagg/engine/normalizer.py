"""Normalization of source quotes into :class:`NormalizedQuote`."""

from __future__ import annotations

import math
from fractions import Fraction

from tokenagg.models import (
    NormalizedQuote,
    OrderType,
    QuoteAccounts,
    QuoteRequest,
    SourceInfo,
    SourceQuote,
    TokenInfo,
)


def _as_fraction(slippage_percentage: float) -> Fraction:
    # str() keeps the decimal the caller wrote (0.1 -> 1/10, not the binary float)
    return Fraction(str(slippage_percentage))


def apply_slippage(
    order_type: OrderType,
    sell_amount: int,
    buy_amount: int,
    slippage_percentage: float,
) -> tuple[int, int]:
    """Return ``(max_sell_amount, min_buy_amount)`` for a quote.

    Sell orders keep the sell side exact and floor the slippage taken from the
    buy side; buy orders keep the buy side exact and ceil the slippage added
    to the sell side. Rounding therefore never promises the caller more than
    the slippage allows.
    """

    slippage = _as_fraction(slippage_percentage)
    if order_type == "sell":
        return sell_amount, buy_amount - math.floor(buy_amount * slippage / 100)
    return sell_amount + math.ceil(sell_amount * slippage / 100), buy_amount


def normalize_quote(
    request: QuoteRequest,
    source: SourceInfo,
    raw: SourceQuote,
    sell_token: TokenInfo | None = None,
    buy_token: TokenInfo | None = None,
) -> NormalizedQuote:
    """Build the canonical quote for *raw* as answered by *source*."""

    max_sell, min_buy = apply_slippage(
        request.order.type, raw.sell_amount, raw.buy_amount, request.slippage_percentage
    )
    return NormalizedQuote(
        chain_id=request.chain_id,
        source=source,
        sell_token=sell_token or TokenInfo(request.sell_token),
        buy_token=buy_token or TokenInfo(request.buy_token),
        type=request.order.type,
        sell_amount=raw.sell_amount,
        buy_amount=raw.buy_amount,
        max_sell_amount=max_sell,
        min_buy_amount=min_buy,
        allowance_target=raw.allowance_target,
        gas=raw.gas,
        custom_data=raw.custom_data,
        accounts=QuoteAccounts(
            taker_address=request.taker_address,
            recipient=request.recipient or request.taker_address,
        ),
    )
