"""Token metadata from Jupiter's Solana token list."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Mapping, Sequence

import httpx

from tokenagg.capabilities import FieldSupport
from tokenagg.chains import SOLANA_CHAIN_ID
from tokenagg.models import ChainId, TokenRef
from tokenagg.sources.base import MetadataSource
from tokenagg.sources.http import request_json
from tokenagg.timeouts import reduce_by

log = logging.getLogger(__name__)

JUPITER_TOKEN_LIST_URL = "https://token.jup.ag/all"
CACHE_TTL_SECS = 60 * 60
FETCH_TIMEOUT_SECS = 30.0
TIMEOUT_MARGIN_SECS = 0.1


class JupiterMetadataSource(MetadataSource):
    """Look up symbol/decimals (and name/logo when listed) for Solana mints.

    The full token list is cached for an hour. When a refresh fails the
    previous list is served; with no list at all every token is unknown.
    A download slower than the call budget keeps running and serves later
    calls.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        url: str = JUPITER_TOKEN_LIST_URL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self.url = url
        self._clock = clock
        self._tokens: dict[str, Mapping[str, Any]] | None = None
        self._fetched_at = 0.0
        self._refresh: asyncio.Task[None] | None = None

    def supported_properties(self) -> dict[ChainId, dict[str, FieldSupport]]:
        return {
            SOLANA_CHAIN_ID: {
                "symbol": "present",
                "decimals": "present",
                "name": "optional",
                "logo_uri": "optional",
            }
        }

    async def get_metadata(
        self, tokens: Sequence[TokenRef], timeout: float | None = None
    ) -> dict[ChainId, dict[str, dict[str, Any]]]:
        wanted = [t.token for t in tokens if t.chain_id == SOLANA_CHAIN_ID]
        if not wanted:
            return {}

        token_list = await self._token_list(timeout)
        found: dict[str, dict[str, Any]] = {}
        for address in wanted:
            entry = token_list.get(address)
            if entry is None:
                continue
            data: dict[str, Any] = {
                "symbol": entry.get("symbol"),
                "decimals": entry.get("decimals"),
                "name": entry.get("name"),
            }
            if entry.get("logoURI"):
                data["logo_uri"] = entry["logoURI"]
            found[address] = data
        return {SOLANA_CHAIN_ID: found}

    async def _token_list(self, timeout: float | None) -> Mapping[str, Mapping[str, Any]]:
        now = self._clock()
        if self._tokens is not None and now - self._fetched_at < CACHE_TTL_SECS:
            return self._tokens
        if self._refresh is None or self._refresh.done():
            self._refresh = asyncio.create_task(self._fetch())
        # the download outlives a cancelled or timed-out call and fills the cache
        try:
            await asyncio.wait_for(
                asyncio.shield(self._refresh), reduce_by(timeout, TIMEOUT_MARGIN_SECS)
            )
        except asyncio.TimeoutError:
            log.debug("jupiter token list still loading after %ss", timeout)
        return self._tokens or {}

    async def _fetch(self) -> None:
        try:
            payload = await request_json(
                self._client, "GET", self.url, timeout=FETCH_TIMEOUT_SECS
            )
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("jupiter token list refresh failed: %s", exc)
            return
        self._tokens = {
            entry["address"]: entry
            for entry in payload
            if isinstance(entry, Mapping) and entry.get("address")
        }
        self._fetched_at = self._clock()
        log.debug("jupiter token list cached tokens=%d", len(self._tokens))
