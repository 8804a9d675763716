from __future__ import annotations

import logging

import pytest

from captrie.core.catalog.standard import load_standard_capabilities
from captrie.core.exceptions import AmbiguousMatch, NoMatch, SpecializationConfigurationError
from captrie.core.specialization.builder import build_specialization_set, infer_tier
from captrie.core.specialization.models import (
    SpecializationSet,
    SpecializationVariant,
    SpecificityTier,
    VariantDeclaration,
)
from captrie.core.specialization.resolver import ResolutionStatus, resolve, select
from captrie.core.trie.registry import CapabilityRegistry


@pytest.fixture()
def registry() -> CapabilityRegistry:
    reg = CapabilityRegistry()
    load_standard_capabilities(reg)
    reg.define_capabilities("app.types", ["IsExactlyString"], file="types.py")
    reg.seal()
    return reg


def _four_tiers(registry, *, drop=()):
    decls = [
        VariantDeclaration("concrete", body="c", guard="IsExactlyString", tier="concrete"),
        VariantDeclaration("multi", body="m", guard="Clone & Debug"),
        VariantDeclaration("single", body="s", guard="Clone"),
        VariantDeclaration("default", body="d"),
    ]
    return build_specialization_set(
        registry, "fmt", [d for d in decls if d.variant_id not in drop]
    )


def test_inferred_tiers(registry) -> None:
    spec = _four_tiers(registry)
    assert [v.tier for v in spec] == [
        SpecificityTier.CONCRETE,
        SpecificityTier.MULTI_BOUND,
        SpecificityTier.SINGLE_BOUND,
        SpecificityTier.DEFAULT,
    ]
    assert [v.specificity_score for v in spec] == [0, 98, 99, 1000]
    assert spec.get("default").unguarded
    assert not spec.get("single").unguarded
    assert infer_tier(registry.build_query("Clone | Copy")) is SpecificityTier.MULTI_BOUND


def test_tier_priority_when_every_guard_passes(registry) -> None:
    caps = registry.capability_set("IsExactlyString", "Clone", "Debug")
    assert resolve(caps, _four_tiers(registry)) == "c"
    assert resolve(caps, _four_tiers(registry, drop={"concrete"})) == "m"
    assert resolve(caps, _four_tiers(registry, drop={"concrete", "multi"})) == "s"
    assert resolve(caps, _four_tiers(registry, drop={"concrete", "multi", "single"})) == "d"


def test_declaration_order_does_not_matter(registry) -> None:
    caps = registry.capability_set("Clone", "Debug")
    spec = _four_tiers(registry)
    reversed_spec = SpecializationSet(name="fmt", variants=tuple(reversed(spec.variants)))
    assert resolve(caps, spec) == resolve(caps, reversed_spec) == "m"


def test_more_bounds_win_within_a_tier(registry) -> None:
    spec = build_specialization_set(
        registry,
        "copy_out",
        [
            VariantDeclaration("two", body=2, bounds=("Clone", "Debug")),
            VariantDeclaration("three", body=3, bounds=("Clone", "core::fmt::Debug", "Send")),
        ],
    )
    assert resolve(registry.capability_set("Clone", "Debug", "Send"), spec) == 3
    assert resolve(registry.capability_set("Clone", "Debug"), spec) == 2


def test_string_entity_gets_concrete_body_regardless_of_clone(registry) -> None:
    spec = build_specialization_set(
        registry,
        "to_owned",
        [
            VariantDeclaration("default", body="generic"),
            VariantDeclaration("clone", body="via_clone", guard="Clone", tier="SingleBound"),
            VariantDeclaration("string", body="string_copy", guard="IsExactlyString", tier="Concrete"),
        ],
    )
    assert resolve(registry.capability_set("Clone"), spec) == "via_clone"
    assert resolve(registry.capability_set("IsExactlyString"), spec) == "string_copy"
    assert resolve(registry.capability_set("IsExactlyString", "Clone"), spec) == "string_copy"
    assert resolve(registry.capability_set(), spec) == "generic"


def test_equal_tier_and_bounds_is_ambiguous(registry) -> None:
    spec = build_specialization_set(
        registry,
        "show",
        [
            VariantDeclaration("by_clone", body=1, guard="Clone", tier="single_bound", bound_count=1),
            VariantDeclaration("by_debug", body=2, guard="Debug", tier="single_bound", bound_count=1),
        ],
    )
    caps = registry.capability_set("Clone", "Debug")

    res = select(caps, spec)
    assert res.status == ResolutionStatus.AMBIGUOUS
    assert set(res.tied) == {"by_clone", "by_debug"}
    with pytest.raises(AmbiguousMatch) as exc:
        resolve(caps, spec)
    assert set(exc.value.variant_ids) == {"by_clone", "by_debug"}

    assert resolve(registry.capability_set("Debug"), spec) == 2


def test_no_passing_variant_is_no_match(registry) -> None:
    spec = build_specialization_set(
        registry, "hash_it", [VariantDeclaration("hashable", body="h", guard="Hash")]
    )
    res = select(registry.capability_set("Clone"), spec)
    assert res.status == ResolutionStatus.NO_MATCH
    assert res.body is None
    with pytest.raises(NoMatch):
        res.unwrap()


def test_declaration_errors(registry) -> None:
    with pytest.raises(SpecializationConfigurationError):
        build_specialization_set(
            registry, "x", [VariantDeclaration("d", guard="Clone", tier="default")]
        )
    with pytest.raises(SpecializationConfigurationError):
        build_specialization_set(registry, "x", [VariantDeclaration("s", tier="single_bound")])
    with pytest.raises(SpecializationConfigurationError):
        build_specialization_set(
            registry, "x", [VariantDeclaration("s", guard="Clone", bounds=("Clone",))]
        )
    with pytest.raises(SpecializationConfigurationError):
        build_specialization_set(
            registry,
            "x",
            [VariantDeclaration("a", guard="Clone"), VariantDeclaration("b", guard="Clone")],
        )
    with pytest.raises(SpecializationConfigurationError):
        build_specialization_set(
            registry, "x", [VariantDeclaration("a"), VariantDeclaration("a", guard="Clone")]
        )
    with pytest.raises(SpecializationConfigurationError):
        SpecificityTier.from_string("very_specific")


def test_variant_validation() -> None:
    from captrie.core.query.expr import ALWAYS

    with pytest.raises(ValueError):
        SpecializationVariant("v", ALWAYS, SpecificityTier.DEFAULT, -1)
    with pytest.raises(TypeError):
        SpecializationVariant("v", "Clone", SpecificityTier.DEFAULT, 0)  # type: ignore[arg-type]


def test_selection_is_logged(registry, caplog) -> None:
    spec = _four_tiers(registry)
    with caplog.at_level(logging.DEBUG, logger="captrie.specialization"):
        select(registry.capability_set("Clone"), spec)
    rec = [r for r in caplog.records if r.getMessage() == "specialization_selected"][0]
    assert rec.contract == "fmt"
    assert rec.variant_id == "single"
