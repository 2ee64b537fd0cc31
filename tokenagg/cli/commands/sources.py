"""Quote source inspection CLI commands."""

from __future__ import annotations

from .. import utils
from ..core import app


@app.command("sources:list")
@app.command("sources_list")
def sources_list() -> None:
    """List enabled quote sources and what they support."""

    service = utils.quote_service()
    listing = {}
    for source_id, meta in service.supported_sources().items():
        listing[source_id] = {
            "name": meta.name,
            "logo_uri": meta.logo_uri,
            "chains": sorted(meta.supports.chains, key=str),
            "buy_orders": meta.supports.buy_orders,
            "swap_and_transfer": meta.supports.swap_and_transfer,
        }
    utils.echo_json(listing)


__all__ = ["sources_list"]
