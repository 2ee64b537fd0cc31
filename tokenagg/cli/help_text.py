"""Verbose help content for the tokenagg CLI package."""

from __future__ import annotations

from textwrap import dedent

VERBOSE_GLOBAL_OVERVIEW = dedent(
    """\
    Command reference

    Use ``--help`` for a compact summary of commands.
    Use ``--help-verbose`` either globally for the full catalog or after a command
    to see its flags and sample output.

    Chains are given by id or alias (1, ethereum, base, solana, ...). Amounts are
    integers in the token's base units.
    """
)


VERBOSE_COMMAND_HELP: dict[str, str] = {
    "sources:list": dedent(
        """\
        sources:list
          Purpose:
            Show the enabled quote sources with their chains and features.
          Sample output:
            {"jupiter": {"name": "Jupiter", "chains": ["solana"], "buy_orders": true, ...}}
        """
    ),
    "quotes:all": dedent(
        """\
        quotes:all
          Purpose:
            Ask every capable source for a quote and print them best first.
          Key flags:
            --chain TEXT       Chain id or alias (default: solana)
            --sell/--buy TEXT  Token addresses
            --amount INT       Base units; sold for --order sell, bought for --order buy
            --slippage FLOAT   Percentage, e.g. 1 for 1%
            --show-failed      Include failed sources after the quotes
          Usage tips:
            - Set JUPITER_API_KEY before quoting on Solana.
            - Use --include/--exclude to restrict the sources consulted.
        """
    ),
    "quotes:best": dedent(
        """\
        quotes:best
          Purpose:
            Print only the best quote; exits with status 1 when nobody answered.
          Key flags:
            Same as quotes:all, plus --sort-by most-swapped-accounting-for-gas.
        """
    ),
    "balances:get": dedent(
        """\
        balances:get
          Purpose:
            Read balances of --account for each --token on --chain.
          Sample output:
            {"solana": {"<account>": {"So111...112": 1500000000}}}
        """
    ),
    "prices:get": dedent(
        """\
        prices:get
          Purpose:
            Print current USD prices for each --token on --chain.
        """
    ),
}
