"""Capability descriptors and requirement resolution.

Two questions are answered here:

* whether a quote source can serve a concrete :class:`QuoteRequest`
  (:func:`is_capable`), and
* which fields a data-shaped result (metadata, balances, prices) must carry
  given what sources support and what the caller requires
  (:func:`resolve_requirements`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Literal, Mapping, Optional

from .models import BuyOrder, ChainId, QuoteRequest

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .sources.base import QuoteSource

FieldRequirement = Literal["required", "best effort", "can ignore"]
FieldSupport = Literal["present", "optional"]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceSupport:
    """Static description of what a quote source supports."""

    chains: frozenset[ChainId]
    buy_orders: bool = False
    swap_and_transfer: bool = False


@dataclass(frozen=True)
class QuoteSourceMetadata:
    """Display metadata plus the capability descriptor of a quote source."""

    name: str
    logo_uri: str
    supports: SourceSupport


@dataclass(frozen=True)
class FieldsRequirements:
    """Caller requirements per field; ``default`` covers unlisted fields."""

    requirements: Mapping[str, FieldRequirement] = field(default_factory=dict)
    default: Optional[FieldRequirement] = None


def supports_request(supports: SourceSupport, request: QuoteRequest) -> bool:
    """Return ``True`` when *supports* covers the chain and features of *request*."""

    if request.chain_id not in supports.chains:
        return False
    if isinstance(request.order, BuyOrder) and not supports.buy_orders:
        return False
    transfers = (
        request.recipient is not None
        and request.taker_address is not None
        and request.recipient.lower() != request.taker_address.lower()
    )
    if transfers and not supports.swap_and_transfer:
        return False
    return True


def is_capable(
    source: "QuoteSource", request: QuoteRequest, config: Mapping[str, Any] | None
) -> bool:
    """Decide whether *source* can quote *request* with *config*.

    Pure function of the source's static descriptor, the request and the
    source's quoting validity predicate. Never raises: a predicate that errors
    counts as "not capable".
    """

    try:
        if not supports_request(source.get_metadata().supports, request):
            return False
        return bool(source.is_config_and_context_valid_for_quoting(config))
    except Exception as exc:
        log.debug("capability check raised for %r: %s", source, exc)
        return False


def _effective_requirement(
    name: str, support: FieldSupport | None, requirements: FieldsRequirements
) -> FieldRequirement:
    explicit = requirements.requirements.get(name)
    if explicit is not None:
        return explicit
    if requirements.default is not None:
        return requirements.default
    return "required" if support == "present" else "best effort"


def resolve_requirements(
    field_support: Mapping[str, FieldSupport],
    fields_requirements: FieldsRequirements | None = None,
) -> frozenset[str]:
    """Return the fields a result must contain to be considered complete.

    A field must be present when the sources always return it or the caller
    requires it, unless the caller explicitly (or via ``default``) marked it
    ``"can ignore"``.
    """

    reqs = fields_requirements or FieldsRequirements()
    names = set(field_support) | set(reqs.requirements)
    present: set[str] = set()
    for name in names:
        support = field_support.get(name)
        level = _effective_requirement(name, support, reqs)
        if level == "can ignore":
            continue
        if support == "present" or level == "required":
            present.add(name)
    return frozenset(present)


def combine_support(
    supports: Iterable[Mapping[str, FieldSupport]],
) -> dict[str, FieldSupport]:
    """Merge per-source support maps; ``present`` anywhere wins."""

    combined: dict[str, FieldSupport] = {}
    for support in supports:
        for name, level in support.items():
            if level == "present" or name not in combined:
                combined[name] = level
    return combined


def missing_required_fields(
    support: Mapping[str, FieldSupport], fields_requirements: FieldsRequirements | None
) -> frozenset[str]:
    """Return required fields that *support* does not guarantee."""

    reqs = fields_requirements or FieldsRequirements()
    missing = set()
    for name in set(support) | set(reqs.requirements):
        level = _effective_requirement(name, support.get(name), reqs)
        if level == "required" and support.get(name) != "present":
            missing.add(name)
    return frozenset(missing)


def support_meets_requirements(
    support: Mapping[str, FieldSupport], fields_requirements: FieldsRequirements | None
) -> bool:
    return not missing_required_fields(support, fields_requirements)
