"""Shared data models for quote, balance, price and metadata aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Any, Literal, Mapping, Optional, Union

ChainId = Union[int, str]
OrderType = Literal["sell", "buy"]
SortBy = Literal["most-swapped", "most-swapped-accounting-for-gas"]


class FailureReason(str, Enum):
    """Why a source produced no result for one aggregate call."""

    CALL_FAILED = "call-failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class SellOrder:
    """Sell exactly ``sell_amount`` base units of the sell token."""

    sell_amount: int
    type: Literal["sell"] = field(default="sell", init=False)


@dataclass(frozen=True)
class BuyOrder:
    """Buy exactly ``buy_amount`` base units of the buy token."""

    buy_amount: int
    type: Literal["buy"] = field(default="buy", init=False)


Order = Union[SellOrder, BuyOrder]


@dataclass(frozen=True)
class SourceFilters:
    """Restrict the sources consulted for a request.

    ``include_sources`` wins over ``exclude_sources`` when both are set.
    """

    include_sources: Optional[tuple[str, ...]] = None
    exclude_sources: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class QuoteRequest:
    """One logical ask for quotes on a single chain."""

    chain_id: ChainId
    sell_token: str
    buy_token: str
    order: Order
    slippage_percentage: float
    taker_address: str | None = None
    recipient: str | None = None
    filters: SourceFilters | None = None

    def __post_init__(self) -> None:
        amount = (
            self.order.sell_amount
            if isinstance(self.order, SellOrder)
            else self.order.buy_amount
        )
        if not isinstance(amount, int) or amount <= 0:
            raise ValueError(f"order amount must be a positive integer, got {amount!r}")
        if not 0 <= float(self.slippage_percentage) <= 100:
            raise ValueError(
                f"slippage_percentage must be within [0, 100], got {self.slippage_percentage}"
            )
        if not self.sell_token or not self.buy_token:
            raise ValueError("sell_token and buy_token must be provided")


@dataclass(frozen=True)
class SortConfig:
    """Ranking criterion for successful quotes.

    ``gas_conversion_rate`` is the number of compared-token base units (buy
    token for sell orders, sell token for buy orders) worth one base unit of
    the chain's native gas token.
    """

    by: SortBy = "most-swapped"
    using: Literal["gas-price"] = "gas-price"
    gas_conversion_rate: Fraction | None = None


@dataclass(frozen=True)
class AggregateConfig:
    """Per-call knobs for an aggregate call.

    ``timeout`` and ``per_source_timeout`` values accept seconds or duration
    strings such as ``"10s"``; ``None`` falls back to the service default.
    """

    timeout: float | str | None = None
    per_source_timeout: Mapping[str, float | str] | None = None
    ignored_failed: bool | None = None
    sort: SortConfig = field(default_factory=SortConfig)
    source_config: Mapping[str, Mapping[str, Any]] | None = None


@dataclass(frozen=True)
class SourceInfo:
    """Identity of a source as shown to callers."""

    id: str
    name: str
    logo_uri: str


@dataclass(frozen=True)
class TokenInfo:
    """Token descriptor; symbol/decimals are filled when metadata is known."""

    address: str
    symbol: str | None = None
    decimals: int | None = None


@dataclass(frozen=True)
class GasCost:
    """EVM-style cost estimate in native base units (gas units x price)."""

    estimated_gas: int
    gas_price: int | None = None

    @property
    def cost(self) -> int | None:
        if self.gas_price is None:
            return None
        return self.estimated_gas * self.gas_price


@dataclass(frozen=True)
class SourceQuote:
    """Raw successful answer of a quote source before normalization."""

    sell_amount: int
    buy_amount: int
    allowance_target: str
    gas: GasCost | None = None
    custom_data: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QuoteAccounts:
    taker_address: str | None = None
    recipient: str | None = None


@dataclass(frozen=True)
class NormalizedQuote:
    """Canonical cross-chain quote with slippage-adjusted bounds."""

    chain_id: ChainId
    source: SourceInfo
    sell_token: TokenInfo
    buy_token: TokenInfo
    type: OrderType
    sell_amount: int
    buy_amount: int
    max_sell_amount: int
    min_buy_amount: int
    allowance_target: str
    gas: GasCost | None = None
    custom_data: Mapping[str, Any] = field(default_factory=dict)
    accounts: QuoteAccounts = field(default_factory=QuoteAccounts)


@dataclass(frozen=True)
class EvmTransaction:
    """Transaction for EVM chains: call ``to`` with ``calldata``."""

    to: str
    calldata: str
    value: int | None = None
    type: Literal["evm"] = field(default="evm", init=False)


@dataclass(frozen=True)
class SolanaTransaction:
    """Serialized (base64) Solana transaction produced by a source."""

    swap_transaction: str
    last_valid_block_height: int | None = None
    type: Literal["solana"] = field(default="solana", init=False)


Transaction = Union[EvmTransaction, SolanaTransaction]


def transaction_from_payload(payload: Mapping[str, Any]) -> Transaction:
    """Build a :data:`Transaction` from a loosely shaped mapping.

    Payloads without a ``type`` tag are EVM transactions (legacy shape with
    ``to``/``calldata``/``value``).
    """

    tag = payload.get("type") or "evm"
    if tag == "solana":
        swap_tx = payload.get("swap_transaction", payload.get("swapTransaction"))
        if not isinstance(swap_tx, str) or not swap_tx:
            raise ValueError("solana transaction payload requires swap_transaction")
        height = payload.get(
            "last_valid_block_height", payload.get("lastValidBlockHeight")
        )
        return SolanaTransaction(
            swap_transaction=swap_tx,
            last_valid_block_height=int(height) if height is not None else None,
        )
    if tag != "evm":
        raise ValueError(f"unknown transaction type {tag!r}")
    value = payload.get("value")
    return EvmTransaction(
        to=str(payload["to"]),
        calldata=str(payload.get("calldata", payload.get("data", "0x"))),
        value=int(value, 0) if isinstance(value, str) else value,
    )


def is_evm_transaction(tx: Transaction) -> bool:
    return isinstance(tx, EvmTransaction)


def is_solana_transaction(tx: Transaction) -> bool:
    return isinstance(tx, SolanaTransaction)


@dataclass(frozen=True)
class QuoteWithTx:
    """A quote together with the transaction its source built for it."""

    quote: NormalizedQuote
    tx: Transaction


@dataclass(frozen=True)
class FailedResult:
    """Caller-visible entry for a source that produced no result."""

    source: SourceInfo
    chain_id: ChainId
    sell_token: str
    buy_token: str
    error: str
    reason: FailureReason = FailureReason.CALL_FAILED
    failed: Literal[True] = field(default=True, init=False)


@dataclass(frozen=True)
class SourceSuccess:
    """Terminal state of one source task that returned a value."""

    source_id: str
    result: Any


@dataclass(frozen=True)
class SourceFailure:
    """Terminal state of one source task that raised or timed out."""

    source_id: str
    reason: FailureReason
    error: str


SourceOutcome = Union[SourceSuccess, SourceFailure]


@dataclass(frozen=True)
class BuildTxRequest:
    """Everything a source needs to materialize a transaction for a quote."""

    chain_id: ChainId
    sell_token: str
    buy_token: str
    type: OrderType
    sell_amount: int
    max_sell_amount: int
    buy_amount: int
    min_buy_amount: int
    take_from: str
    recipient: str
    custom_data: Mapping[str, Any]
    timeout: float | None = None


@dataclass(frozen=True)
class TokenRef:
    """A token on a chain, as used by metadata and price lookups."""

    chain_id: ChainId
    token: str


@dataclass(frozen=True)
class BalanceInput:
    chain_id: ChainId
    account: str
    token: str


@dataclass(frozen=True)
class TokenPrice:
    """USD price of one whole token (``10**decimals`` base units)."""

    price: float
    decimals: int | None = None
    symbol: str | None = None
    timestamp: int | None = None
