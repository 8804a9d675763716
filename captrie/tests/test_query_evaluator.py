from __future__ import annotations

import random

import pytest

from captrie.core.exceptions import RequirementNotSatisfied
from captrie.core.query.evaluator import check_requirement, evaluate, evaluate_partial, require
from captrie.core.query.expr import ALWAYS, And, Atom, Group, Not, Or, QueryExpr, all_of, any_of
from captrie.core.sets.capability_set import CapabilitySet, ConstrainedCapabilitySet
from captrie.core.trie.registry import CapabilityRegistry

_NAMES = ["A", "B", "C", "D", "E"]


@pytest.fixture()
def registry() -> CapabilityRegistry:
    reg = CapabilityRegistry()
    reg.define_capabilities("tests.query", _NAMES, file="query.py")
    reg.seal()
    return reg


def _random_expr(rng: random.Random, reg: CapabilityRegistry, depth: int) -> QueryExpr:
    if depth == 0 or rng.random() < 0.25:
        return Atom(reg.get(rng.choice(_NAMES)))
    kind = rng.choice(["and", "or", "not", "group"])
    if kind == "not":
        return Not(_random_expr(rng, reg, depth - 1))
    if kind == "group":
        return Group(_random_expr(rng, reg, depth - 1))
    left = _random_expr(rng, reg, depth - 1)
    right = _random_expr(rng, reg, depth - 1)
    return And(left, right) if kind == "and" else Or(left, right)


def _random_set(rng: random.Random, reg: CapabilityRegistry) -> CapabilitySet:
    return reg.capability_set(*(n for n in _NAMES if rng.random() < 0.5))


def _holds(expr: QueryExpr, caps: CapabilitySet) -> bool:
    return evaluate(expr, caps).satisfied


def test_boolean_laws_on_generated_trees(registry) -> None:
    rng = random.Random(20240601)
    for _ in range(300):
        a = _random_expr(rng, registry, 4)
        b = _random_expr(rng, registry, 4)
        s = _random_set(rng, registry)

        assert _holds(And(a, b), s) == (_holds(a, s) and _holds(b, s))
        assert _holds(Or(a, b), s) == (_holds(a, s) or _holds(b, s))
        assert _holds(Not(Not(a)), s) == _holds(a, s)
        assert _holds(Group(a), s) == _holds(a, s)
        # De Morgan
        assert _holds(Not(And(a, b)), s) == _holds(Or(Not(a), Not(b)), s)
        assert _holds(Not(Or(a, b)), s) == _holds(And(Not(a), Not(b)), s)


def test_trace_renders_infix(registry) -> None:
    q = registry.build_query("A & (B | !C)")
    result = check_requirement(registry.capability_set("A"), q)
    assert result.trace == "(A & (B | !C))"
    assert not result.satisfied


def test_missing_lists_absent_positive_atoms(registry) -> None:
    q = registry.build_query("A & B & C")
    result = evaluate(q, registry.capability_set("A", "C"))
    assert not result
    assert result.missing == ("B",)

    negated = evaluate(registry.build_query("!A"), registry.capability_set("A"))
    assert not negated.satisfied
    assert negated.missing == ()

    ok = evaluate(registry.build_query("A | B"), registry.capability_set("B"))
    assert ok.satisfied
    assert ok.missing == ()


def test_evaluation_does_not_mutate_inputs(registry) -> None:
    s = registry.capability_set("A")
    q = registry.build_query("A & !B")
    before = (s.members, q.render())
    evaluate(q, s)
    assert (s.members, q.render()) == before


def test_require_raises_with_trace(registry) -> None:
    q = registry.build_query("A & B")
    with pytest.raises(RequirementNotSatisfied) as exc:
        require(registry.capability_set("A"), q)
    assert exc.value.trace == "(A & B)"
    assert exc.value.missing == ("B",)
    assert require(registry.capability_set("A", "B"), q).satisfied


def test_helpers_and_always(registry) -> None:
    a, b = Atom(registry.get("A")), Atom(registry.get("B"))
    assert all_of() is ALWAYS
    assert _holds(ALWAYS, CapabilitySet.empty())
    assert all_of(a, b).render() == "(A & B)"
    assert any_of(a, b).render() == "(A | B)"
    assert all_of(a, b).bound_count == 2
    with pytest.raises(ValueError):
        any_of()
    with pytest.raises(TypeError):
        And(a, ALWAYS)


def test_partial_evaluation_is_kleene(registry) -> None:
    a, b = registry.get("A"), registry.get("B")
    cs = ConstrainedCapabilitySet(required=frozenset({a}), excluded=frozenset({b}))

    assert evaluate_partial(registry.build_query("A"), cs) is True
    assert evaluate_partial(registry.build_query("B"), cs) is False
    assert evaluate_partial(registry.build_query("C"), cs) is None
    assert evaluate_partial(registry.build_query("B & C"), cs) is False
    assert evaluate_partial(registry.build_query("A | C"), cs) is True
    assert evaluate_partial(registry.build_query("A & C"), cs) is None
    assert evaluate_partial(registry.build_query("!C"), cs) is None
    assert evaluate_partial(registry.build_query("!B"), cs) is True


def test_partial_agrees_with_full_evaluation_when_everything_is_known(registry) -> None:
    rng = random.Random(7)
    caps = [registry.get(n) for n in _NAMES]
    for _ in range(200):
        expr = _random_expr(rng, registry, 4)
        s = _random_set(rng, registry)
        cs = ConstrainedCapabilitySet(
            required=s.members,
            excluded=frozenset(c for c in caps if c not in s),
        )
        assert evaluate_partial(expr, cs) is _holds(expr, s)
