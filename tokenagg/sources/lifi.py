"""LI.FI quote source (EVM, same-chain swaps).

Uses the generic ``/v1/quote`` endpoint; the returned ``transactionRequest``
is ready to sign, so building a transaction needs no further request.
"""

from __future__ import annotations

import logging
from fractions import Fraction
from typing import Any, Mapping, NoReturn

import httpx

from tokenagg.capabilities import QuoteSourceMetadata, SourceSupport
from tokenagg.chains import EVM_CHAINS, EVM_NATIVE_TOKEN, ZERO_ADDRESS
from tokenagg.errors import FailedToGenerateQuoteError
from tokenagg.models import (
    BuildTxRequest,
    GasCost,
    QuoteRequest,
    SellOrder,
    SourceQuote,
    Transaction,
    transaction_from_payload,
)
from tokenagg.sources.base import QuoteSource
from tokenagg.sources.http import send

log = logging.getLogger(__name__)

LIFI_API_URL = "https://li.quest/v1"

LIFI_METADATA = QuoteSourceMetadata(
    name="LI.FI",
    logo_uri="ipfs://QmUyEWbmBDHTMnKWhBWzn5VYSfAUXQtW8ARUA1mJpjBvGV",
    supports=SourceSupport(
        chains=frozenset(chain.chain_id for chain in EVM_CHAINS),
        buy_orders=False,
        swap_and_transfer=True,
    ),
)


def _lifi_token(token: str) -> str:
    # LI.FI addresses the native asset with the zero address
    return ZERO_ADDRESS if token.lower() == EVM_NATIVE_TOKEN else token


def _parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def parse_gas(payload: Mapping[str, Any]) -> GasCost | None:
    """Extract the gas estimate of a quote payload, if any.

    Gas units are summed over ``estimate.gasCosts``; the price comes from the
    transaction request, falling back to the first gas cost entry.
    """

    costs = (payload.get("estimate") or {}).get("gasCosts") or []
    units = [_parse_int(c.get("estimate")) for c in costs]
    if not costs or any(u is None for u in units):
        return None
    price = _parse_int((payload.get("transactionRequest") or {}).get("gasPrice"))
    if price is None:
        price = _parse_int(costs[0].get("price"))
    return GasCost(estimated_gas=sum(u for u in units if u is not None), gas_price=price)


class LifiQuoteSource(QuoteSource):
    """Quote EVM swaps through LI.FI.

    Source config keys: ``api_key`` (optional, sent as ``x-lifi-api-key``),
    ``integrator``, ``order`` (route preference such as ``"CHEAPEST"``).
    """

    def __init__(
        self, client: httpx.AsyncClient | None = None, base_url: str = LIFI_API_URL
    ) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")

    def get_metadata(self) -> QuoteSourceMetadata:
        return LIFI_METADATA

    def _fail(self, request: QuoteRequest | BuildTxRequest, message: str) -> NoReturn:
        raise FailedToGenerateQuoteError(
            LIFI_METADATA.name,
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
        if not isinstance(request.order, SellOrder):
            self._fail(request, "buy orders are not supported")
        if not request.taker_address:
            self._fail(request, "a taker address is required")

        params: dict[str, Any] = {
            "fromChain": request.chain_id,
            "toChain": request.chain_id,
            "fromToken": _lifi_token(request.sell_token),
            "toToken": _lifi_token(request.buy_token),
            "fromAmount": str(request.order.sell_amount),
            "fromAddress": request.taker_address,
            "toAddress": request.recipient or request.taker_address,
            "slippage": float(Fraction(str(request.slippage_percentage)) / 100),
            "allowSwitchChain": "false",
        }
        if config.get("integrator"):
            params["integrator"] = config["integrator"]
        if config.get("order"):
            params["order"] = config["order"]
        headers = {"accept": "application/json"}
        if config.get("api_key"):
            headers["x-lifi-api-key"] = str(config["api_key"])

        log.debug(
            "lifi quote chain=%s sell=%s buy=%s amount=%s",
            request.chain_id,
            request.sell_token,
            request.buy_token,
            request.order.sell_amount,
        )
        response = await send(
            self._client,
            "GET",
            f"{self.base_url}/quote",
            timeout=timeout,
            headers=headers,
            params=params,
        )
        if not response.is_success:
            self._fail(request, response.text or f"Failed with status {response.status_code}")

        payload = response.json()
        estimate = payload.get("estimate") or {}
        tx_request = payload.get("transactionRequest")
        if not tx_request:
            self._fail(request, "quote has no transactionRequest")
        return SourceQuote(
            sell_amount=int(estimate.get("fromAmount", request.order.sell_amount)),
            buy_amount=int(estimate["toAmount"]),
            allowance_target=estimate.get("approvalAddress") or tx_request["to"],
            gas=parse_gas(payload),
            custom_data={
                "transactionRequest": tx_request,
                "tool": payload.get("tool"),
                "fromAddress": request.taker_address,
            },
        )

    async def build_tx(
        self, request: BuildTxRequest, config: Mapping[str, Any]
    ) -> Transaction:
        tx_request = request.custom_data.get("transactionRequest")
        if not tx_request:
            self._fail(request, "missing transactionRequest in quote data")
        quoted_for = request.custom_data.get("fromAddress")
        if quoted_for and quoted_for.lower() != request.take_from.lower():
            self._fail(request, f"quote was generated for {quoted_for}, not {request.take_from}")
        return transaction_from_payload(
            {
                "to": tx_request["to"],
                "data": tx_request.get("data", "0x"),
                "value": tx_request.get("value"),
            }
        )
