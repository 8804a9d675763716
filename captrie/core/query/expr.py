from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from captrie.core.identity.capabilities import Capability


class QueryExpr:
    """
    Base class for requirement expression nodes.

    Nodes are frozen dataclasses built bottom-up, so a tree can never contain
    a cycle and can be shared freely between threads.
    """

    def render(self) -> str:
        raise NotImplementedError

    def atoms(self) -> Iterator["Atom"]:
        raise NotImplementedError

    @property
    def bound_count(self) -> int:
        return sum(1 for _ in self.atoms())

    def capabilities(self) -> frozenset:
        return frozenset(a.capability for a in self.atoms())

    def _renders_parenthesized(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.render()


def _check_child(value: object, field_name: str) -> None:
    if not isinstance(value, QueryExpr) or isinstance(value, Always):
        raise TypeError(f"{field_name} must be a QueryExpr instance")


@dataclass(frozen=True)
class Atom(QueryExpr):
    """Satisfied iff the capability is held. `label` keeps the user's spelling."""

    capability: Capability
    label: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.capability, Capability):
            raise TypeError("capability must be a Capability instance")
        if self.label is not None and not isinstance(self.label, str):
            raise TypeError("label must be a string or None")

    def render(self) -> str:
        return self.label or self.capability.name

    def atoms(self) -> Iterator["Atom"]:
        yield self


@dataclass(frozen=True)
class And(QueryExpr):
    left: QueryExpr
    right: QueryExpr

    def __post_init__(self) -> None:
        _check_child(self.left, "left")
        _check_child(self.right, "right")

    def render(self) -> str:
        return f"({self.left.render()} & {self.right.render()})"

    def atoms(self) -> Iterator[Atom]:
        yield from self.left.atoms()
        yield from self.right.atoms()

    def _renders_parenthesized(self) -> bool:
        return True


@dataclass(frozen=True)
class Or(QueryExpr):
    left: QueryExpr
    right: QueryExpr

    def __post_init__(self) -> None:
        _check_child(self.left, "left")
        _check_child(self.right, "right")

    def render(self) -> str:
        return f"({self.left.render()} | {self.right.render()})"

    def atoms(self) -> Iterator[Atom]:
        yield from self.left.atoms()
        yield from self.right.atoms()

    def _renders_parenthesized(self) -> bool:
        return True


@dataclass(frozen=True)
class Not(QueryExpr):
    inner: QueryExpr

    def __post_init__(self) -> None:
        _check_child(self.inner, "inner")

    def render(self) -> str:
        return f"!{self.inner.render()}"

    def atoms(self) -> Iterator[Atom]:
        yield from self.inner.atoms()


@dataclass(frozen=True)
class Group(QueryExpr):
    """Explicit parentheses from the source text. Transparent for evaluation."""

    inner: QueryExpr

    def __post_init__(self) -> None:
        _check_child(self.inner, "inner")

    def render(self) -> str:
        text = self.inner.render()
        if self.inner._renders_parenthesized():
            return text
        return f"({text})"

    def atoms(self) -> Iterator[Atom]:
        yield from self.inner.atoms()

    def _renders_parenthesized(self) -> bool:
        return True


@dataclass(frozen=True)
class Always(QueryExpr):
    """Guard that always passes (unbounded default implementations)."""

    def render(self) -> str:
        return "always"

    def atoms(self) -> Iterator[Atom]:
        return iter(())


ALWAYS = Always()


def all_of(*exprs: QueryExpr) -> QueryExpr:
    """Left-fold expressions with And. No operands means ALWAYS."""
    if not exprs:
        return ALWAYS
    acc = exprs[0]
    for e in exprs[1:]:
        acc = And(acc, e)
    return acc


def any_of(*exprs: QueryExpr) -> QueryExpr:
    """Left-fold expressions with Or."""
    if not exprs:
        raise ValueError("any_of requires at least one expression")
    acc = exprs[0]
    for e in exprs[1:]:
        acc = Or(acc, e)
    return acc
