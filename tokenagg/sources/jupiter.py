"""Jupiter swap API quote source (Solana).

API reference: https://dev.jup.ag/docs/apis/swap-api
"""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Any, Mapping, NoReturn

import httpx

from tokenagg.capabilities import QuoteSourceMetadata, SourceSupport
from tokenagg.chains import SOLANA_CHAIN_ID, SOLANA_NATIVE_SOL
from tokenagg.errors import FailedToGenerateQuoteError
from tokenagg.models import (
    BuildTxRequest,
    QuoteRequest,
    SellOrder,
    SolanaTransaction,
    SourceQuote,
)
from tokenagg.sources.base import QuoteSource
from tokenagg.sources.http import send

log = logging.getLogger(__name__)

JUPITER_API_URL = "https://api.jup.ag/swap/v1"
DEFAULT_MAX_ACCOUNTS = 64

JUPITER_METADATA = QuoteSourceMetadata(
    name="Jupiter",
    logo_uri="ipfs://QmQvfFbLKLxthGKbMihaJCT6cXPrAuYwDgUh3Gf4Mbj9sE",
    supports=SourceSupport(
        chains=frozenset({SOLANA_CHAIN_ID}),
        buy_orders=True,
        swap_and_transfer=False,
    ),
)


def slippage_bps(slippage_percentage: float) -> int:
    """Convert a percentage to basis points, rounding halves up."""

    return math.floor(Fraction(str(slippage_percentage)) * 100 + Fraction(1, 2))


class JupiterQuoteSource(QuoteSource):
    """Quote Solana swaps through Jupiter's aggregator.

    Parameters
    ----------
    client:
        Optional shared :class:`httpx.AsyncClient`; a short-lived client is
        used per call otherwise.
    base_url:
        Swap API root, overridable for self-hosted deployments.

    Source config keys: ``api_key`` (required), ``slippage_bps``,
    ``only_direct_routes``, ``max_accounts``.
    """

    def __init__(
        self, client: httpx.AsyncClient | None = None, base_url: str = JUPITER_API_URL
    ) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")

    def get_metadata(self) -> QuoteSourceMetadata:
        return JUPITER_METADATA

    def _headers(self, config: Mapping[str, Any]) -> dict[str, str]:
        return {"accept": "application/json", "x-api-key": str(config["api_key"])}

    def _fail(self, request: QuoteRequest | BuildTxRequest, message: str) -> NoReturn:
        raise FailedToGenerateQuoteError(
            JUPITER_METADATA.name,
            request.chain_id,
            request.sell_token,
            request.buy_token,
            message,
        )

    async def quote(
        self,
        request: QuoteRequest,
        config: Mapping[str, Any],
        timeout: float | None = None,
    ) -> SourceQuote:
        bps = config.get("slippage_bps")
        params: dict[str, Any] = {
            "inputMint": request.sell_token,
            "outputMint": request.buy_token,
            "slippageBps": bps if bps is not None else slippage_bps(request.slippage_percentage),
            "onlyDirectRoutes": bool(config.get("only_direct_routes", False)),
            "maxAccounts": config.get("max_accounts") or DEFAULT_MAX_ACCOUNTS,
        }
        if isinstance(request.order, SellOrder):
            params["amount"] = str(request.order.sell_amount)
            params["swapMode"] = "ExactIn"
        else:
            params["amount"] = str(request.order.buy_amount)
            params["swapMode"] = "ExactOut"

        log.debug("jupiter quote params=%s", params)
        response = await send(
            self._client,
            "GET",
            f"{self.base_url}/quote",
            timeout=timeout,
            headers=self._headers(config),
            params=params,
        )
        if not response.is_success:
            self._fail(request, response.text or f"Failed with status {response.status_code}")

        payload = response.json()
        return SourceQuote(
            sell_amount=int(payload["inAmount"]),
            buy_amount=int(payload["outAmount"]),
            allowance_target=SOLANA_NATIVE_SOL,
            gas=None,
            custom_data={"quoteResponse": payload},
        )

    async def build_tx(
        self, request: BuildTxRequest, config: Mapping[str, Any]
    ) -> SolanaTransaction:
        quote_response = request.custom_data.get("quoteResponse")
        if quote_response is None:
            self._fail(request, "missing quoteResponse in quote data")

        response = await send(
            self._client,
            "POST",
            f"{self.base_url}/swap",
            timeout=request.timeout,
            headers={**self._headers(config), "content-type": "application/json"},
            json={
                "userPublicKey": request.take_from,
                "quoteResponse": quote_response,
                "wrapAndUnwrapSol": True,
                "dynamicComputeUnitLimit": True,
            },
        )
        if not response.is_success:
            self._fail(
                request,
                response.text
                or f"Failed to build swap transaction: {response.status_code}",
            )

        payload = response.json()
        return SolanaTransaction(
            swap_transaction=payload["swapTransaction"],
            last_valid_block_height=payload.get("lastValidBlockHeight"),
        )

    def is_config_and_context_valid_for_quoting(
        self, config: Mapping[str, Any] | None
    ) -> bool:
        return bool(config and config.get("api_key"))

    def is_config_and_context_valid_for_tx_building(
        self, config: Mapping[str, Any] | None
    ) -> bool:
        return bool(config and config.get("api_key"))
