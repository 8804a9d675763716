from __future__ import annotations

import pytest

from captrie.core.catalog.standard import load_standard_capabilities
from captrie.core.exceptions import DeferredResolution
from captrie.core.sets.capability_set import ConstrainedCapabilitySet
from captrie.core.specialization.builder import build_specialization_set
from captrie.core.specialization.models import VariantDeclaration
from captrie.core.specialization.resolver import ResolutionStatus, resolve, select
from captrie.core.trie.registry import CapabilityRegistry


@pytest.fixture()
def registry() -> CapabilityRegistry:
    reg = CapabilityRegistry()
    load_standard_capabilities(reg)
    reg.seal()
    return reg


@pytest.fixture()
def spec(registry):
    return build_specialization_set(
        registry,
        "duplicate",
        [
            VariantDeclaration("fallback", body="fallback"),
            VariantDeclaration("clone", body="clone", guard="Clone"),
            VariantDeclaration("copy", body="copy", guard="Copy & Clone"),
        ],
    )


def _constrained(registry, required=(), excluded=()):
    return ConstrainedCapabilitySet(
        required=frozenset(registry.get(n) for n in required),
        excluded=frozenset(registry.get(n) for n in excluded),
    )


def test_undecided_more_specific_guard_defers(registry, spec) -> None:
    cs = _constrained(registry, required=["Clone"])
    res = select(cs, spec)
    assert res.status == ResolutionStatus.DEFERRED
    assert res.undecided == ("copy",)
    assert set(res.passing) == {"fallback", "clone"}
    with pytest.raises(DeferredResolution) as exc:
        resolve(cs, spec)
    assert exc.value.undecided == ("copy",)


def test_known_absence_lets_resolution_proceed(registry, spec) -> None:
    cs = _constrained(registry, required=["Clone"], excluded=["Copy"])
    assert resolve(cs, spec) == "clone"


def test_undecided_less_specific_guard_does_not_block(registry, spec) -> None:
    cs = _constrained(registry, required=["Clone", "Copy"])
    assert resolve(cs, spec) == "copy"


def test_nothing_known_defers_on_every_guard_that_could_win(registry, spec) -> None:
    res = select(_constrained(registry), spec)
    assert res.status == ResolutionStatus.DEFERRED
    assert set(res.undecided) == {"clone", "copy"}


def test_nothing_passing_and_nothing_undecided_is_no_match(registry) -> None:
    spec = build_specialization_set(
        registry, "only_copy", [VariantDeclaration("copy", body=1, guard="Copy")]
    )
    res = select(_constrained(registry, excluded=["Copy"]), spec)
    assert res.status == ResolutionStatus.NO_MATCH

    pending = select(_constrained(registry), spec)
    assert pending.status == ResolutionStatus.DEFERRED
    assert pending.undecided == ("copy",)


def test_select_rejects_other_inputs(spec) -> None:
    with pytest.raises(TypeError):
        select(frozenset(), spec)  # type: ignore[arg-type]
