from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from captrie.core.exceptions import RequirementNotSatisfied
from captrie.core.sets.capability_set import CapabilitySet, ConstrainedCapabilitySet

from .expr import Always, And, Atom, Group, Not, Or, QueryExpr


@dataclass(frozen=True)
class RequirementResult:
    """
    Outcome of checking a requirement against a capability set.

    trace is the requirement rendered with infix operators, ready to be shown
    to the user verbatim. missing lists positive atoms found absent while
    evaluating, in evaluation order.
    """

    satisfied: bool
    trace: str
    missing: Tuple[str, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.satisfied

    def to_dict(self) -> Dict[str, Any]:
        return {
            "satisfied": self.satisfied,
            "trace": self.trace,
            "missing": list(self.missing),
        }


def _eval(expr: QueryExpr, caps: CapabilitySet, missing: List[str]) -> bool:
    if isinstance(expr, Atom):
        held = caps.has(expr.capability)
        if not held:
            missing.append(expr.render())
        return held

    if isinstance(expr, And):
        # Right side is skipped when the left already fails.
        return _eval(expr.left, caps, missing) and _eval(expr.right, caps, missing)

    if isinstance(expr, Or):
        return _eval(expr.left, caps, missing) or _eval(expr.right, caps, missing)

    if isinstance(expr, Not):
        # Atoms under a negation are not "missing" when absent.
        return not _eval(expr.inner, caps, [])

    if isinstance(expr, Group):
        return _eval(expr.inner, caps, missing)

    if isinstance(expr, Always):
        return True

    raise TypeError(f"unsupported expression node: {type(expr).__name__}")


def evaluate(expr: QueryExpr, caps: CapabilitySet) -> RequirementResult:
    """Evaluate a requirement expression against a capability set.

    Pure: neither argument is mutated.

    Time:  O(a) for a atoms, less with short-circuiting
    Space: O(d) for tree depth d
    """

    if not isinstance(expr, QueryExpr):
        raise TypeError("expr must be a QueryExpr instance")
    if not isinstance(caps, CapabilitySet):
        raise TypeError("caps must be a CapabilitySet instance")

    missing: List[str] = []
    satisfied = _eval(expr, caps, missing)
    return RequirementResult(
        satisfied=satisfied,
        trace=expr.render(),
        missing=tuple(missing) if not satisfied else (),
    )


def evaluate_partial(expr: QueryExpr, constraints: ConstrainedCapabilitySet) -> Optional[bool]:
    """Three-valued evaluation against a set known only by constraints.

    Returns True/False when the outcome is already decided, None when it
    depends on capabilities whose membership is unknown.
    """

    if isinstance(expr, Atom):
        return constraints.knows(expr.capability)

    if isinstance(expr, And):
        left = evaluate_partial(expr.left, constraints)
        if left is False:
            return False
        right = evaluate_partial(expr.right, constraints)
        if right is False:
            return False
        if left is True and right is True:
            return True
        return None

    if isinstance(expr, Or):
        left = evaluate_partial(expr.left, constraints)
        if left is True:
            return True
        right = evaluate_partial(expr.right, constraints)
        if right is True:
            return True
        if left is False and right is False:
            return False
        return None

    if isinstance(expr, Not):
        inner = evaluate_partial(expr.inner, constraints)
        return None if inner is None else not inner

    if isinstance(expr, Group):
        return evaluate_partial(expr.inner, constraints)

    if isinstance(expr, Always):
        return True

    raise TypeError(f"unsupported expression node: {type(expr).__name__}")


def check_requirement(caps: CapabilitySet, query: QueryExpr) -> RequirementResult:
    """Guard entry point: the caller surfaces result.trace on failure."""
    return evaluate(query, caps)


def require(caps: CapabilitySet, query: QueryExpr) -> RequirementResult:
    """Like check_requirement, but raise RequirementNotSatisfied on failure."""
    result = evaluate(query, caps)
    if not result.satisfied:
        raise RequirementNotSatisfied(result.trace, result.missing)
    return result
