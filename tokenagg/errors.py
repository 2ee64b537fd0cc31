"""Error taxonomy for source calls and aggregate entry points.

Per-source errors are captured by the engine and surfaced as
:class:`~tokenagg.models.FailedResult` entries; only
:class:`NoSuccessfulResultError` escapes single-result entry points.
"""

from __future__ import annotations

from .models import ChainId


class TokenAggError(Exception):
    """Base class for all tokenagg errors."""


class SourceCallFailedError(TokenAggError):
    """A source returned an error response; ``message`` is kept verbatim."""

    def __init__(self, source_id: str, message: str) -> None:
        super().__init__(message)
        self.source_id = source_id
        self.message = message


class FailedToGenerateQuoteError(SourceCallFailedError):
    """A quote source could not produce a quote (or transaction) for a pair."""

    def __init__(
        self,
        source_name: str,
        chain_id: ChainId,
        sell_token: str,
        buy_token: str,
        message: str,
    ) -> None:
        super().__init__(source_name, message)
        self.chain_id = chain_id
        self.sell_token = sell_token
        self.buy_token = buy_token

    def __str__(self) -> str:
        return (
            f"Failed to generate quote on chain {self.chain_id} for "
            f"{self.sell_token} -> {self.buy_token} with {self.source_id}: {self.message}"
        )


class SourceTimeoutError(TokenAggError):
    """A source exceeded its per-source or global time budget."""

    def __init__(self, source_id: str, timeout: float | None) -> None:
        super().__init__(f"{source_id} timed out after {timeout}s")
        self.source_id = source_id
        self.timeout = timeout


class NoSuccessfulResultError(TokenAggError):
    """No source produced a successful result for a single-result request."""


class RequirementsNotSupportedError(TokenAggError):
    """Required fields cannot be provided by any eligible source."""

    def __init__(self, chain_id: ChainId, fields: frozenset[str]) -> None:
        joined = ", ".join(sorted(fields))
        super().__init__(f"no source can provide required fields [{joined}] on chain {chain_id}")
        self.chain_id = chain_id
        self.fields = fields
