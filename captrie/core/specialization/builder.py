from __future__ import annotations

from typing import Iterable, List

from captrie.core.catalog.standard import standard_capability_name
from captrie.core.exceptions import SpecializationConfigurationError
from captrie.core.query.expr import ALWAYS, QueryExpr, all_of
from captrie.core.trie.registry import CapabilityRegistry

from .models import SpecializationSet, SpecializationVariant, SpecificityTier, VariantDeclaration


def infer_tier(guard: QueryExpr) -> SpecificityTier:
    """Tier implied by a guard: no atoms -> DEFAULT, one -> SINGLE_BOUND, more -> MULTI_BOUND."""
    count = guard.bound_count
    if count == 0:
        return SpecificityTier.DEFAULT
    if count == 1:
        return SpecificityTier.SINGLE_BOUND
    return SpecificityTier.MULTI_BOUND


def build_variant(registry: CapabilityRegistry, decl: VariantDeclaration) -> SpecializationVariant:
    """Resolve a declaration's guard against the registry and fill in tier/bound_count."""
    if not isinstance(decl, VariantDeclaration):
        raise TypeError("declarations must be VariantDeclaration instances")

    if decl.guard is not None and decl.bounds:
        raise SpecializationConfigurationError(
            f"variant '{decl.variant_id}': declare either a guard or bounds, not both"
        )

    if decl.bounds:
        guard = all_of(
            *(registry.build_query(standard_capability_name(b)) for b in decl.bounds)
        )
    elif decl.guard is not None:
        guard = registry.build_query(decl.guard)
    else:
        guard = ALWAYS

    if decl.tier is None:
        tier = infer_tier(guard)
    elif isinstance(decl.tier, SpecificityTier):
        tier = decl.tier
    else:
        tier = SpecificityTier.from_string(decl.tier)

    unguarded = guard.bound_count == 0
    if tier is SpecificityTier.DEFAULT and not unguarded:
        raise SpecializationConfigurationError(
            f"variant '{decl.variant_id}': default variants cannot carry a guard"
        )
    if tier is not SpecificityTier.DEFAULT and unguarded:
        raise SpecializationConfigurationError(
            f"variant '{decl.variant_id}': tier {tier.value} requires a guard"
        )

    bound_count = guard.bound_count if decl.bound_count is None else decl.bound_count

    return SpecializationVariant(
        variant_id=decl.variant_id,
        guard=guard,
        tier=tier,
        bound_count=bound_count,
        body=decl.body,
    )


def build_specialization_set(
    registry: CapabilityRegistry,
    name: str,
    declarations: Iterable[VariantDeclaration],
) -> SpecializationSet:
    """Aggregate variant declarations into a SpecializationSet.

    Rejects, at declaration time, pairs of variants that would tie on every
    capability set where either passes: same tier, same bound count and a
    structurally identical guard.
    """

    variants: List[SpecializationVariant] = [build_variant(registry, d) for d in declarations]

    for i, a in enumerate(variants):
        for b in variants[i + 1 :]:
            if a.rank_key == b.rank_key and a.guard == b.guard:
                raise SpecializationConfigurationError(
                    f"{name}: variants '{a.variant_id}' and '{b.variant_id}' "
                    f"are always ambiguous (same tier and guard {a.guard.render()})"
                )

    return SpecializationSet(name=name, variants=tuple(variants))
