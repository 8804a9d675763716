from .evaluator import (
    RequirementResult,
    check_requirement,
    evaluate,
    evaluate_partial,
    require,
)
from .expr import ALWAYS, Always, And, Atom, Group, Not, Or, QueryExpr, all_of, any_of
from .parser import parse_requirement

__all__ = [
    "ALWAYS",
    "Always",
    "And",
    "Atom",
    "Group",
    "Not",
    "Or",
    "QueryExpr",
    "RequirementResult",
    "all_of",
    "any_of",
    "check_requirement",
    "evaluate",
    "evaluate_partial",
    "parse_requirement",
    "require",
]
