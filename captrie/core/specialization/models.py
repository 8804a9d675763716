from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from captrie.core.exceptions import SpecializationConfigurationError
from captrie.core.query.expr import Always, QueryExpr


class SpecificityTier(str, Enum):
    """
    Specificity tiers, most specific first.

    Using str Enum keeps manifests and API payloads stable.
    """

    CONCRETE = "concrete"
    MULTI_BOUND = "multi_bound"
    SINGLE_BOUND = "single_bound"
    DEFAULT = "default"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    @classmethod
    def from_string(cls, value: str) -> "SpecificityTier":
        """Accept 'single_bound', 'single-bound', 'SingleBound' and the like."""
        if not isinstance(value, str):
            raise TypeError("tier must be a string")
        normalized = value.strip().replace("-", "_").lower()
        if normalized in {"multibound", "singlebound"}:
            normalized = normalized[:-5] + "_bound"
        try:
            return cls(normalized)
        except ValueError:
            valid = [t.value for t in cls]
            raise SpecializationConfigurationError(
                f"Invalid specificity tier: {value!r}. Valid tiers: {valid}"
            ) from None


_TIER_RANK: Dict[SpecificityTier, int] = {
    SpecificityTier.CONCRETE: 0,
    SpecificityTier.MULTI_BOUND: 1,
    SpecificityTier.SINGLE_BOUND: 2,
    SpecificityTier.DEFAULT: 3,
}


@dataclass(frozen=True)
class SpecializationVariant:
    """
    One implementation variant of a behavioral contract.

    Invariants
    - guard is a QueryExpr; ALWAYS for unguarded defaults
    - bound_count is non-negative
    - body is opaque to the resolver
    """

    variant_id: str
    guard: QueryExpr
    tier: SpecificityTier
    bound_count: int
    body: Any = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.variant_id, str) or not self.variant_id.strip():
            raise ValueError("variant_id must be a non-empty string")
        object.__setattr__(self, "variant_id", self.variant_id.strip())

        if not isinstance(self.guard, QueryExpr):
            raise TypeError("guard must be a QueryExpr instance")
        if not isinstance(self.tier, SpecificityTier):
            raise TypeError("tier must be a SpecificityTier")
        if not isinstance(self.bound_count, int) or isinstance(self.bound_count, bool):
            raise TypeError("bound_count must be an int")
        if self.bound_count < 0:
            raise ValueError("bound_count must be non-negative")

    @property
    def rank_key(self) -> Tuple[int, int]:
        """Sort key: lower is more specific."""
        return (self.tier.rank, -self.bound_count)

    @property
    def specificity_score(self) -> int:
        """Single number, lower is more specific (0 / 100 - bounds / 1000)."""
        if self.tier is SpecificityTier.CONCRETE:
            return 0
        if self.tier is SpecificityTier.DEFAULT:
            return 1000
        return 100 - min(self.bound_count, 99)

    @property
    def unguarded(self) -> bool:
        return isinstance(self.guard, Always)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variant_id": self.variant_id,
            "guard": self.guard.render(),
            "tier": self.tier.value,
            "bound_count": self.bound_count,
        }


@dataclass(frozen=True)
class VariantDeclaration:
    """
    A variant as handed over by a front-end, before guards are resolved.

    guard may be requirement text, an expression AST, a QueryExpr or None.
    bounds is the alternative form used by generic implementations: a list of
    trait names that must all hold (``["Clone", "fmt::Debug"]``).
    tier and bound_count are inferred from the guard when omitted.
    """

    variant_id: str
    body: Any = None
    guard: Any = None
    bounds: Tuple[str, ...] = ()
    tier: Optional[Union[SpecificityTier, str]] = None
    bound_count: Optional[int] = None


@dataclass(frozen=True)
class SpecializationSet:
    """Ordered variants sharing one behavioral contract name."""

    name: str
    variants: Tuple[SpecializationVariant, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())

        variants = tuple(self.variants)
        seen = set()
        for v in variants:
            if not isinstance(v, SpecializationVariant):
                raise TypeError("variants must contain only SpecializationVariant instances")
            if v.variant_id in seen:
                raise SpecializationConfigurationError(
                    f"{self.name}: duplicate variant id '{v.variant_id}'"
                )
            seen.add(v.variant_id)
        object.__setattr__(self, "variants", variants)

    def get(self, variant_id: str) -> SpecializationVariant:
        for v in self.variants:
            if v.variant_id == variant_id:
                return v
        raise KeyError(variant_id)

    def __iter__(self) -> Iterator[SpecializationVariant]:
        return iter(self.variants)

    def __len__(self) -> int:
        return len(self.variants)
