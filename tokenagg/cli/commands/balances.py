"""Balance CLI commands."""

from __future__ import annotations

from typing import List

import typer

from tokenagg.models import BalanceInput

from .. import utils
from ..core import app, log


@app.command("balances:get")
@app.command("balances_get")
def balances_get(
    account: str = typer.Option(..., help="Wallet address"),
    token: List[str] = typer.Option(..., help="Token address; repeat or comma separate"),
    chain: str = "solana",
    timeout: str = "10s",
) -> None:
    """Print balances of an account in base units."""

    chain_id = utils.parse_chain(chain)
    tokens = [BalanceInput(chain_id, account, t) for t in utils.split_csv(token) or ()]
    balances = utils.run(utils.balance_service().get_balances(tokens, timeout))
    if not balances.get(chain_id):
        log.warning("no balances returned for %s on %s", account, chain_id)
    utils.echo_json(balances)


__all__ = ["balances_get"]
