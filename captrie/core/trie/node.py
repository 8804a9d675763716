from __future__ import annotations

from bisect import insort
from typing import Iterator, List, Optional, Tuple, Union

from captrie.core.identity.capabilities import Capability
from captrie.core.identity.hashing import ARITY


def _entry_order(capability: Capability) -> Tuple[str, str]:
    return (capability.fallback_digest, capability.canonical_key)


class TrieLeaf:
    """Terminal node holding capabilities that share a full digit path.

    More than one entry only happens on a routing digest collision; entries are
    then told apart by fallback digest and canonical key, and kept ordered by
    that pair so the leaf reads the same whatever the registration order.
    """

    __slots__ = ("_entries",)

    def __init__(self, first: Capability):
        self._entries: List[Capability] = [first]

    @property
    def entries(self) -> Tuple[Capability, ...]:
        return tuple(self._entries)

    def find(self, candidate: Capability) -> Optional[Capability]:
        """Linear scan by full identity.

        Time:  O(k) for k colliding entries (k is 1 in practice)
        """
        for existing in self._entries:
            if existing == candidate:
                return existing
        return None

    def add(self, capability: Capability) -> None:
        insort(self._entries, capability, key=_entry_order)

    def __len__(self) -> int:
        return len(self._entries)


Slot = Union["TrieBranch", TrieLeaf, None]


class TrieBranch:
    """Interior node with exactly ARITY child slots, one per digit value."""

    __slots__ = ("_slots",)

    def __init__(self) -> None:
        self._slots: List[Slot] = [None] * ARITY

    def child(self, digit: int) -> Slot:
        return self._slots[digit]

    def set_child(self, digit: int, node: Union["TrieBranch", TrieLeaf]) -> None:
        if self._slots[digit] is not None:
            raise RuntimeError(f"slot {digit:x} already occupied")
        self._slots[digit] = node

    def children(self) -> Iterator[Union["TrieBranch", TrieLeaf]]:
        for node in self._slots:
            if node is not None:
                yield node
