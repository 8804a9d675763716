from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from captrie.core.exceptions import AmbiguousMatch, DeferredResolution, NoMatch
from captrie.core.query.evaluator import evaluate, evaluate_partial
from captrie.core.sets.capability_set import CapabilitySet, ConstrainedCapabilitySet

from .models import SpecializationSet, SpecializationVariant

log = logging.getLogger("captrie.specialization")

CapabilityInput = Union[CapabilitySet, ConstrainedCapabilitySet]


class ResolutionStatus(str, Enum):
    """
    Enumerated resolution outcome.
    """

    MATCH = "MATCH"
    NO_MATCH = "NO_MATCH"
    AMBIGUOUS = "AMBIGUOUS"
    DEFERRED = "DEFERRED"


@dataclass(frozen=True)
class Resolution:
    """
    Immutable record of one specialization selection.

    - variant is set only for MATCH
    - tied lists the variant ids that tie for AMBIGUOUS
    - undecided lists variant ids whose guards could not be decided (DEFERRED)
    - passing lists every variant id whose guard passed, in declaration order
    """

    contract: str
    status: ResolutionStatus
    variant: Optional[SpecializationVariant] = None
    tied: Tuple[str, ...] = field(default_factory=tuple)
    undecided: Tuple[str, ...] = field(default_factory=tuple)
    passing: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def body(self) -> Any:
        return self.variant.body if self.variant is not None else None

    def unwrap(self) -> Any:
        """Return the winning body or raise the matching ResolutionError."""
        if self.status == ResolutionStatus.MATCH:
            return self.body
        if self.status == ResolutionStatus.AMBIGUOUS:
            raise AmbiguousMatch(self.contract, self.tied)
        if self.status == ResolutionStatus.DEFERRED:
            raise DeferredResolution(self.contract, self.undecided)
        raise NoMatch(self.contract)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract": self.contract,
            "status": self.status.value,
            "variant_id": self.variant.variant_id if self.variant else None,
            "tier": self.variant.tier.value if self.variant else None,
            "tied": list(self.tied),
            "undecided": list(self.undecided),
            "passing": list(self.passing),
        }


def _pick(
    contract: str,
    passing: List[SpecializationVariant],
) -> Resolution:
    passing_ids = tuple(v.variant_id for v in passing)
    if not passing:
        return Resolution(contract=contract, status=ResolutionStatus.NO_MATCH)

    best = min(v.rank_key for v in passing)
    top = [v for v in passing if v.rank_key == best]
    if len(top) > 1:
        return Resolution(
            contract=contract,
            status=ResolutionStatus.AMBIGUOUS,
            tied=tuple(v.variant_id for v in top),
            passing=passing_ids,
        )
    return Resolution(
        contract=contract,
        status=ResolutionStatus.MATCH,
        variant=top[0],
        passing=passing_ids,
    )


def _select_constrained(
    constraints: ConstrainedCapabilitySet,
    spec_set: SpecializationSet,
) -> Resolution:
    passing: List[SpecializationVariant] = []
    unknown: List[SpecializationVariant] = []
    for v in spec_set:
        verdict = evaluate_partial(v.guard, constraints)
        if verdict is True:
            passing.append(v)
        elif verdict is None:
            unknown.append(v)

    if unknown:
        # An undecided guard matters only if it could outrank or tie the best
        # variant already known to pass.
        best = min((v.rank_key for v in passing), default=None)
        relevant = [v for v in unknown if best is None or v.rank_key <= best]
        if relevant:
            return Resolution(
                contract=spec_set.name,
                status=ResolutionStatus.DEFERRED,
                undecided=tuple(v.variant_id for v in relevant),
                passing=tuple(v.variant_id for v in passing),
            )

    return _pick(spec_set.name, passing)


def select(caps: CapabilityInput, spec_set: SpecializationSet) -> Resolution:
    """Select the most specific passing variant.

    Selection rules:
    1) Keep variants whose guard passes (ALWAYS passes).
    2) Lowest tier wins: CONCRETE < MULTI_BOUND < SINGLE_BOUND < DEFAULT.
    3) Within a tier, the larger bound_count wins.
    4) An exact tie is AMBIGUOUS; declaration order never breaks ties.

    For a ConstrainedCapabilitySet the outcome is DEFERRED while an undecided
    guard could still change the winner.

    Time:  O(v * a) for v variants with up to a atoms per guard
    Space: O(v)
    """

    if not isinstance(spec_set, SpecializationSet):
        raise TypeError("spec_set must be a SpecializationSet instance")

    if isinstance(caps, CapabilitySet):
        passing = [v for v in spec_set if evaluate(v.guard, caps).satisfied]
        resolution = _pick(spec_set.name, passing)
    elif isinstance(caps, ConstrainedCapabilitySet):
        resolution = _select_constrained(caps, spec_set)
    else:
        raise TypeError("caps must be a CapabilitySet or ConstrainedCapabilitySet")

    log.debug(
        "specialization_selected",
        extra={
            "contract": spec_set.name,
            "status": resolution.status.value,
            "variant_id": resolution.variant.variant_id if resolution.variant else None,
        },
    )
    return resolution


def resolve(caps: CapabilityInput, spec_set: SpecializationSet) -> Any:
    """Return the winning body; raise NoMatch, AmbiguousMatch or DeferredResolution otherwise."""
    return select(caps, spec_set).unwrap()
