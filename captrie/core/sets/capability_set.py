from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Iterator, List, Optional

from captrie.core.identity.capabilities import Capability


def _freeze(caps: Iterable[Capability], field_name: str) -> FrozenSet[Capability]:
    if isinstance(caps, frozenset):
        frozen = caps
    else:
        try:
            frozen = frozenset(caps)
        except TypeError as e:
            raise TypeError(f"{field_name} must be an iterable of Capability") from e

    for c in frozen:
        if not isinstance(c, Capability):
            raise TypeError(f"{field_name} must contain only Capability instances")
    return frozen


def _coerce(other: object) -> "CapabilitySet":
    if not isinstance(other, CapabilitySet):
        raise TypeError("operand must be a CapabilitySet instance")
    return other


@dataclass(frozen=True)
class CapabilitySet:
    """
    Immutable set of capabilities held by one entity.

    Invariants
    - Stored as a frozenset: duplicate-free, order carries no meaning
    - Every operation returns a new set; entities move between sets
      (typestate transitions) rather than mutating one

    Time:  has O(1) average; union/intersect/difference O(|a| + |b|)
    Space: O(n)
    """

    members: FrozenSet[Capability] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", _freeze(self.members, "members"))

    @classmethod
    def of(cls, *capabilities: Capability) -> "CapabilitySet":
        return cls(members=frozenset(capabilities))

    @classmethod
    def empty(cls) -> "CapabilitySet":
        return cls()

    def has(self, capability: Capability) -> bool:
        if not isinstance(capability, Capability):
            raise TypeError("capability must be a Capability instance")
        return capability in self.members

    def union(self, other: "CapabilitySet") -> "CapabilitySet":
        return CapabilitySet(self.members | _coerce(other).members)

    def intersect(self, other: "CapabilitySet") -> "CapabilitySet":
        return CapabilitySet(self.members & _coerce(other).members)

    def difference(self, other: "CapabilitySet") -> "CapabilitySet":
        return CapabilitySet(self.members - _coerce(other).members)

    def with_(self, *capabilities: Capability) -> "CapabilitySet":
        """Return a new set with capabilities added."""
        return CapabilitySet(self.members | _freeze(capabilities, "capabilities"))

    def without(self, *capabilities: Capability) -> "CapabilitySet":
        """Return a new set with capabilities removed (missing ones are ignored)."""
        return CapabilitySet(self.members - _freeze(capabilities, "capabilities"))

    def issuperset(self, other: "CapabilitySet") -> bool:
        """True if every capability of other is held here.

        Lets a caller forget extra capabilities when passing an entity to code
        that demands a smaller set.
        """
        return self.members >= _coerce(other).members

    def names(self) -> List[str]:
        """Qualified names in digest order, for logging and diagnostics."""
        return [c.qualified_name for c in self]

    def __contains__(self, item: object) -> bool:
        return item in self.members

    def __iter__(self) -> Iterator[Capability]:
        return iter(sorted(self.members, key=Capability.sort_key))

    def __len__(self) -> int:
        return len(self.members)

    def __or__(self, other: "CapabilitySet") -> "CapabilitySet":
        return self.union(other)

    def __and__(self, other: "CapabilitySet") -> "CapabilitySet":
        return self.intersect(other)

    def __sub__(self, other: "CapabilitySet") -> "CapabilitySet":
        return self.difference(other)


@dataclass(frozen=True)
class ConstrainedCapabilitySet:
    """
    An entity known only through constraints.

    required: capabilities known to be held
    excluded: capabilities known to be absent
    Anything else is unknown until more information is available.
    """

    required: FrozenSet[Capability] = field(default_factory=frozenset)
    excluded: FrozenSet[Capability] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        required = _freeze(self.required, "required")
        excluded = _freeze(self.excluded, "excluded")
        overlap = required & excluded
        if overlap:
            names = ", ".join(sorted(c.qualified_name for c in overlap))
            raise ValueError(f"capabilities both required and excluded: {names}")
        object.__setattr__(self, "required", required)
        object.__setattr__(self, "excluded", excluded)

    def knows(self, capability: Capability) -> Optional[bool]:
        """True/False when membership is known, None otherwise."""
        if not isinstance(capability, Capability):
            raise TypeError("capability must be a Capability instance")
        if capability in self.required:
            return True
        if capability in self.excluded:
            return False
        return None

    def with_known(
        self,
        *,
        present: Iterable[Capability] = (),
        absent: Iterable[Capability] = (),
    ) -> "ConstrainedCapabilitySet":
        return ConstrainedCapabilitySet(
            required=self.required | _freeze(present, "present"),
            excluded=self.excluded | _freeze(absent, "absent"),
        )
