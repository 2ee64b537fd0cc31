"""Static chain registry for the EVM and Solana families."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import ChainId

EVM_NATIVE_TOKEN = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Wrapped SOL mint; also stands for native SOL.
SOLANA_NATIVE_SOL = "So11111111111111111111111111111111111111112"
SOLANA_USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
SOLANA_USDT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

SOLANA_CHAIN_ID = "solana"


@dataclass(frozen=True)
class Chain:
    """Chain metadata used for lookups, RPC access and display."""

    chain_id: ChainId
    name: str
    ids: tuple[str, ...]
    native_symbol: str
    native_name: str
    native_token: str
    wrapped_token: str
    public_rpcs: tuple[str, ...]
    explorer: str
    testnet: bool = False


ETHEREUM = Chain(
    1,
    "Ethereum",
    ("ethereum", "eth", "mainnet"),
    "ETH",
    "Ethereum",
    EVM_NATIVE_TOKEN,
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
    ("https://eth.llamarpc.com", "https://ethereum-rpc.publicnode.com"),
    "https://etherscan.io/",
)
OPTIMISM = Chain(
    10,
    "Optimism",
    ("optimism", "op"),
    "ETH",
    "Ethereum",
    EVM_NATIVE_TOKEN,
    "0x4200000000000000000000000000000000000006",
    ("https://mainnet.optimism.io",),
    "https://optimistic.etherscan.io/",
)
BNB_CHAIN = Chain(
    56,
    "BNB Chain",
    ("bsc", "bnb", "binance"),
    "BNB",
    "BNB",
    EVM_NATIVE_TOKEN,
    "0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c",
    ("https://bsc-dataseed.binance.org",),
    "https://bscscan.com/",
)
POLYGON = Chain(
    137,
    "Polygon",
    ("polygon", "matic"),
    "POL",
    "Polygon Ecosystem Token",
    EVM_NATIVE_TOKEN,
    "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270",
    ("https://polygon-rpc.com",),
    "https://polygonscan.com/",
)
BASE = Chain(
    8453,
    "Base",
    ("base",),
    "ETH",
    "Ethereum",
    EVM_NATIVE_TOKEN,
    "0x4200000000000000000000000000000000000006",
    ("https://mainnet.base.org",),
    "https://basescan.org/",
)
ARBITRUM = Chain(
    42161,
    "Arbitrum",
    ("arbitrum", "arb", "arbitrum-one"),
    "ETH",
    "Ethereum",
    EVM_NATIVE_TOKEN,
    "0x82af49447d8a07e3bd95bd0d56f35241523fbab1",
    ("https://arb1.arbitrum.io/rpc",),
    "https://arbiscan.io/",
)
AVALANCHE = Chain(
    43114,
    "Avalanche",
    ("avalanche", "avax"),
    "AVAX",
    "Avalanche",
    EVM_NATIVE_TOKEN,
    "0xb31f66aa3c1e785363f0875a1b74e27b85fd66c7",
    ("https://api.avax.network/ext/bc/C/rpc",),
    "https://snowtrace.io/",
)
SOLANA = Chain(
    SOLANA_CHAIN_ID,
    "Solana",
    ("solana", "sol"),
    "SOL",
    "Solana",
    SOLANA_NATIVE_SOL,
    SOLANA_NATIVE_SOL,
    ("https://api.mainnet-beta.solana.com",),
    "https://solscan.io/",
)
SOLANA_DEVNET = Chain(
    SOLANA_CHAIN_ID,
    "Solana Devnet",
    ("solana-devnet", "sol-devnet"),
    "SOL",
    "Solana",
    SOLANA_NATIVE_SOL,
    SOLANA_NATIVE_SOL,
    ("https://api.devnet.solana.com",),
    "https://solscan.io/?cluster=devnet",
    testnet=True,
)

EVM_CHAINS: tuple[Chain, ...] = (
    ETHEREUM,
    OPTIMISM,
    BNB_CHAIN,
    POLYGON,
    BASE,
    ARBITRUM,
    AVALANCHE,
)
SOLANA_CHAINS: tuple[Chain, ...] = (SOLANA, SOLANA_DEVNET)


def is_evm_chain(chain: Chain) -> bool:
    return isinstance(chain.chain_id, int)


def is_solana_chain(chain: Chain) -> bool:
    return chain.chain_id == SOLANA_CHAIN_ID


def all_chains() -> list[Chain]:
    return [*EVM_CHAINS, *SOLANA_CHAINS]


def evm_chains() -> list[Chain]:
    return list(EVM_CHAINS)


def solana_chains() -> list[Chain]:
    return list(SOLANA_CHAINS)


def get_chain_by_key(key: ChainId) -> Optional[Chain]:
    """Find a chain by numeric id, string id or alias (case-insensitive).

    Mainnets are preferred over testnets sharing the same chain id.
    """

    if isinstance(key, str):
        lowered = key.strip().lower()
        if lowered.isdigit():
            key = int(lowered)
        else:
            for chain in all_chains():
                if lowered == str(chain.chain_id) or lowered in chain.ids:
                    return chain
            return None
    for chain in all_chains():
        if chain.chain_id == key:
            return chain
    return None


def get_chain_by_key_or_fail(key: ChainId) -> Chain:
    chain = get_chain_by_key(key)
    if chain is None:
        raise ValueError(f"Failed to find a chain with key '{key}'")
    return chain


def to_chain_id(key: ChainId) -> ChainId:
    """Return the canonical :data:`ChainId` for a user-supplied *key*."""

    return get_chain_by_key_or_fail(key).chain_id
