"""EVM balances read through web3.

Native balances use ``eth.get_balance``; ERC-20 balances call ``balanceOf``.
One ``AsyncWeb3`` instance is kept per chain and created on first use.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable, Mapping, Optional, Sequence

from tokenagg.chains import EVM_CHAINS, EVM_NATIVE_TOKEN, ZERO_ADDRESS, get_chain_by_key
from tokenagg.models import BalanceInput, ChainId
from tokenagg.sources.base import BalanceSource
from tokenagg.timeouts import reduce_by

log = logging.getLogger(__name__)

ERC20_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_owner", "type": "address"}],
        "outputs": [{"name": "balance", "type": "uint256"}],
    },
]

TIMEOUT_MARGIN_SECS = 0.1
_NATIVE = {EVM_NATIVE_TOKEN, ZERO_ADDRESS}


def _default_web3(rpc_url: str) -> Any:
    from web3 import AsyncHTTPProvider, AsyncWeb3

    return AsyncWeb3(AsyncHTTPProvider(rpc_url))


class EvmBalanceSource(BalanceSource):
    """Balance source for the EVM chains of the chain registry.

    Parameters
    ----------
    rpc_urls:
        Optional RPC endpoint per chain id; the chain's first public RPC is
        used otherwise.
    web3_factory:
        Callable building a web3 client from an RPC URL. Tests pass a stub.
    """

    def __init__(
        self,
        rpc_urls: Optional[Mapping[ChainId, str]] = None,
        web3_factory: Callable[[str], Any] = _default_web3,
    ) -> None:
        self._rpc_urls = dict(rpc_urls or {})
        self._factory = web3_factory
        self._clients: dict[ChainId, Any] = {}

    def supported_chains(self) -> list[ChainId]:
        return [chain.chain_id for chain in EVM_CHAINS]

    def _web3(self, chain_id: ChainId) -> Any:
        w3 = self._clients.get(chain_id)
        if w3 is None:
            url = self._rpc_urls.get(chain_id)
            if url is None:
                chain = get_chain_by_key(chain_id)
                if chain is None or not chain.public_rpcs:
                    raise ValueError(f"no RPC configured for chain {chain_id}")
                url = chain.public_rpcs[0]
            w3 = self._factory(url)
            self._clients[chain_id] = w3
        return w3

    async def get_balances(
        self, tokens: Sequence[BalanceInput], timeout: float | None = None
    ) -> dict[ChainId, dict[str, dict[str, int]]]:
        supported = set(self.supported_chains())
        by_chain: dict[ChainId, list[BalanceInput]] = defaultdict(list)
        for item in tokens:
            by_chain[item.chain_id].append(item)

        result: dict[ChainId, dict[str, dict[str, int]]] = {}
        budget = reduce_by(timeout, TIMEOUT_MARGIN_SECS)
        chains = [chain_id for chain_id in by_chain if chain_id in supported]
        for chain_id in by_chain:
            if chain_id not in supported:
                result[chain_id] = {}

        # chains share one budget; a slow chain only drops itself
        fetched = await asyncio.gather(
            *(
                asyncio.wait_for(self._fetch_chain(chain_id, by_chain[chain_id]), budget)
                for chain_id in chains
            ),
            return_exceptions=True,
        )
        for chain_id, outcome in zip(chains, fetched):
            if isinstance(outcome, asyncio.TimeoutError):
                log.debug("evm balances on chain %s timed out after %ss", chain_id, budget)
            elif isinstance(outcome, Exception):
                log.debug("evm balances on chain %s failed: %s", chain_id, outcome)
            else:
                result[chain_id] = outcome
        return result

    async def _fetch_chain(
        self, chain_id: ChainId, items: Sequence[BalanceInput]
    ) -> dict[str, dict[str, int]]:
        w3 = self._web3(chain_id)
        pairs = list(dict.fromkeys((i.account, i.token) for i in items))
        fetched = await asyncio.gather(
            *(self._balance_of(w3, account, token) for account, token in pairs),
            return_exceptions=True,
        )
        balances: dict[str, dict[str, int]] = {}
        for (account, token), amount in zip(pairs, fetched):
            if isinstance(amount, Exception):
                log.debug(
                    "balance lookup failed chain=%s account=%s token=%s: %s",
                    chain_id,
                    account,
                    token,
                    amount,
                )
                continue
            balances.setdefault(account, {})[token] = int(amount)
        return balances

    async def _balance_of(self, w3: Any, account: str, token: str) -> int:
        owner = w3.to_checksum_address(account)
        if token.lower() in _NATIVE:
            return int(await w3.eth.get_balance(owner))
        contract = w3.eth.contract(address=w3.to_checksum_address(token), abi=ERC20_ABI)
        return int(await contract.functions.balanceOf(owner).call())
