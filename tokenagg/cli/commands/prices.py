"""Price CLI commands."""

from __future__ import annotations

from typing import List

import typer

from tokenagg.models import TokenRef

from .. import utils
from ..core import app


@app.command("prices:get")
@app.command("prices_get")
def prices_get(
    token: List[str] = typer.Option(..., help="Token address; repeat or comma separate"),
    chain: str = "solana",
    timeout: str = "10s",
) -> None:
    """Print current USD prices."""

    chain_id = utils.parse_chain(chain)
    refs = [TokenRef(chain_id, t) for t in utils.split_csv(token) or ()]
    prices = utils.run(utils.price_service().get_current_prices(refs, timeout))
    utils.echo_json(prices)


__all__ = ["prices_get"]
