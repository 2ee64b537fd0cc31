"""Solana balances over JSON-RPC."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import defaultdict
from typing import Any, Sequence

import httpx

from tokenagg.chains import SOLANA, SOLANA_CHAIN_ID, SOLANA_NATIVE_SOL
from tokenagg.models import BalanceInput, ChainId
from tokenagg.sources.base import BalanceSource
from tokenagg.sources.http import request_json
from tokenagg.timeouts import reduce_by

log = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TIMEOUT_MARGIN_SECS = 0.1


class SolanaRpcError(RuntimeError):
    """JSON-RPC response carried an ``error`` member."""


class SolanaBalanceSource(BalanceSource):
    """Read native SOL and SPL token balances from a Solana RPC node.

    Native SOL is requested with the wrapped SOL mint address. A failing
    account lookup is logged and skipped; a failing SPL lookup reports 0 for
    the account's tokens.
    """

    def __init__(
        self, rpc_url: str | None = None, client: httpx.AsyncClient | None = None
    ) -> None:
        self.rpc_url = rpc_url or SOLANA.public_rpcs[0]
        self._client = client
        self._ids = itertools.count(1)

    def supported_chains(self) -> list[ChainId]:
        return [SOLANA_CHAIN_ID]

    async def get_balances(
        self, tokens: Sequence[BalanceInput], timeout: float | None = None
    ) -> dict[ChainId, dict[str, dict[str, int]]]:
        by_chain: dict[ChainId, list[BalanceInput]] = defaultdict(list)
        for item in tokens:
            by_chain[item.chain_id].append(item)

        result: dict[ChainId, dict[str, dict[str, int]]] = {}
        for chain_id, items in by_chain.items():
            if chain_id != SOLANA_CHAIN_ID:
                result[chain_id] = {}
                continue
            budget = reduce_by(timeout, TIMEOUT_MARGIN_SECS)
            try:
                result[chain_id] = await asyncio.wait_for(self._fetch_chain(items), budget)
            except asyncio.TimeoutError:
                log.debug("solana balances timed out after %ss", budget)
        return result

    async def _fetch_chain(self, items: Sequence[BalanceInput]) -> dict[str, dict[str, int]]:
        by_account: dict[str, list[str]] = defaultdict(list)
        for item in items:
            if item.token not in by_account[item.account]:
                by_account[item.account].append(item.token)

        accounts = list(by_account)
        fetched = await asyncio.gather(
            *(self._fetch_account(a, by_account[a]) for a in accounts),
            return_exceptions=True,
        )
        balances: dict[str, dict[str, int]] = {}
        for account, outcome in zip(accounts, fetched):
            if isinstance(outcome, Exception):
                log.debug("failed to fetch balances for account %s: %s", account, outcome)
                continue
            balances[account] = outcome
        return balances

    async def _fetch_account(self, account: str, tokens: Sequence[str]) -> dict[str, int]:
        balances: dict[str, int] = {}
        spl_tokens = [t for t in tokens if t != SOLANA_NATIVE_SOL]

        if SOLANA_NATIVE_SOL in tokens:
            try:
                result = await self._rpc("getBalance", [account, {"commitment": "confirmed"}])
                balances[SOLANA_NATIVE_SOL] = int(result["value"])
            except (httpx.HTTPError, SolanaRpcError, KeyError, TypeError, ValueError) as exc:
                log.debug("failed to fetch SOL balance for %s: %s", account, exc)
                balances[SOLANA_NATIVE_SOL] = 0

        if spl_tokens:
            try:
                result = await self._rpc(
                    "getTokenAccountsByOwner",
                    [
                        account,
                        {"programId": TOKEN_PROGRAM_ID},
                        {"encoding": "jsonParsed", "commitment": "confirmed"},
                    ],
                )
                by_mint: dict[str, int] = {}
                for entry in result["value"]:
                    info = entry["account"]["data"]["parsed"]["info"]
                    mint = info["mint"]
                    by_mint[mint] = by_mint.get(mint, 0) + int(info["tokenAmount"]["amount"])
                for token in spl_tokens:
                    balances[token] = by_mint.get(token, 0)
            except (httpx.HTTPError, SolanaRpcError, KeyError, TypeError, ValueError) as exc:
                log.debug("failed to fetch SPL balances for %s: %s", account, exc)
                for token in spl_tokens:
                    balances[token] = 0

        return balances

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        payload = await request_json(self._client, "POST", self.rpc_url, json=body)
        if payload.get("error"):
            raise SolanaRpcError(f"{method}: {payload['error']}")
        return payload["result"]
