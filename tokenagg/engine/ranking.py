"""Ranking and selection of normalized quotes.

Sorting is stable: quotes that compare equal keep their launch order, which
is the registration order of their sources, so the first-registered source
wins ties.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Callable, Sequence, TypeVar

from tokenagg.errors import NoSuccessfulResultError
from tokenagg.models import FailedResult, NormalizedQuote, SortConfig

T = TypeVar("T")


def gas_cost_in_compared_units(
    quote: NormalizedQuote, rate: Fraction | None
) -> Fraction | None:
    """Return the quote's gas cost in compared-token units, if computable."""

    if rate is None or quote.gas is None:
        return None
    cost = quote.gas.cost
    if cost is None:
        return None
    return cost * Fraction(rate)


def comparison_amount(quote: NormalizedQuote, sort: SortConfig) -> Fraction:
    """Return a value where larger means better for *quote* under *sort*.

    Buy orders are compared on the negated sell amount so that a single
    descending order works for both order types.
    """

    if quote.type == "sell":
        amount = Fraction(quote.buy_amount)
    else:
        amount = -Fraction(quote.sell_amount)
    if sort.by == "most-swapped-accounting-for-gas":
        gas = gas_cost_in_compared_units(quote, sort.gas_conversion_rate)
        if gas is not None:
            amount -= gas
    return amount


def sort_quotes(
    items: Sequence[T],
    sort: SortConfig,
    quote_of: Callable[[T], NormalizedQuote] = lambda item: item,  # type: ignore[assignment,return-value]
) -> list[T]:
    """Return *items* best first according to *sort*."""

    return sorted(items, key=lambda item: comparison_amount(quote_of(item), sort), reverse=True)


def arrange_results(
    ranked: Sequence[T],
    failed: Sequence[FailedResult],
    ignored_failed: bool,
) -> list[T | FailedResult]:
    """Append failures after all successes, or drop them when ignored."""

    if ignored_failed:
        return list(ranked)
    return [*ranked, *failed]


def choose_best(quotes: Sequence[NormalizedQuote], sort: SortConfig) -> NormalizedQuote:
    """Return the best quote or raise :class:`NoSuccessfulResultError`."""

    if not quotes:
        raise NoSuccessfulResultError("no source returned a successful quote")
    return sort_quotes(quotes, sort)[0]
