"""Abstract interfaces for pluggable sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

from tokenagg.capabilities import FieldSupport, QuoteSourceMetadata
from tokenagg.models import (
    BalanceInput,
    BuildTxRequest,
    ChainId,
    QuoteRequest,
    SourceQuote,
    TokenPrice,
    TokenRef,
    Transaction,
)


class QuoteSource(ABC):
    """Interface that all quote sources must implement.

    Sources are shared by concurrent aggregate calls and must not keep
    per-call state on the instance.
    """

    @abstractmethod
    def get_metadata(self) -> QuoteSourceMetadata:
        """Return display metadata and the static capability descriptor."""

    @abstractmethod
    async def quote(
        self,
        request: QuoteRequest,
        config: Mapping[str, Any],
        timeout: float | None = None,
    ) -> SourceQuote:
        """Return a quote for *request*; raise on provider errors."""

    @abstractmethod
    async def build_tx(
        self, request: BuildTxRequest, config: Mapping[str, Any]
    ) -> Transaction:
        """Materialize a submittable transaction for a previous quote."""

    def is_config_and_context_valid_for_quoting(
        self, config: Mapping[str, Any] | None
    ) -> bool:
        """Return ``True`` when *config* is enough to request quotes."""

        return True

    def is_config_and_context_valid_for_tx_building(
        self, config: Mapping[str, Any] | None
    ) -> bool:
        """Return ``True`` when *config* is enough to build transactions."""

        return True


class MetadataSource(ABC):
    """Token metadata provider (symbol, decimals, ...)."""

    @abstractmethod
    def supported_properties(self) -> Mapping[ChainId, Mapping[str, FieldSupport]]:
        """Return, per chain, which fields are always or sometimes returned."""

    @abstractmethod
    async def get_metadata(
        self, tokens: Sequence[TokenRef], timeout: float | None = None
    ) -> dict[ChainId, dict[str, dict[str, Any]]]:
        """Return ``{chain: {token: {field: value}}}`` for known tokens."""


class BalanceSource(ABC):
    """Account balance provider."""

    @abstractmethod
    def supported_chains(self) -> list[ChainId]:
        """Chains this source can read balances on."""

    @abstractmethod
    async def get_balances(
        self, tokens: Sequence[BalanceInput], timeout: float | None = None
    ) -> dict[ChainId, dict[str, dict[str, int]]]:
        """Return ``{chain: {account: {token: amount}}}`` in base units."""


class PriceSource(ABC):
    """Current token price provider."""

    @abstractmethod
    def supported_chains(self) -> list[ChainId]:
        """Chains this source can price tokens on."""

    @abstractmethod
    async def get_current_prices(
        self, tokens: Sequence[TokenRef], timeout: float | None = None
    ) -> dict[ChainId, dict[str, TokenPrice]]:
        """Return ``{chain: {token: TokenPrice}}`` for tokens with a price."""
