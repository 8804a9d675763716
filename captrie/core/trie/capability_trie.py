from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, List, Optional, Tuple

from captrie.core.exceptions import DuplicateCapability
from captrie.core.identity.capabilities import Capability

from .node import TrieBranch, TrieLeaf

if TYPE_CHECKING:
    from captrie.core.sets.capability_set import CapabilitySet


class CapabilityTrie:
    """16-ary radix trie keyed by the routing digits of a capability digest.

    Invariants
    - Every leaf sits at depth DIGIT_COUNT; a lookup always takes the same
      number of steps regardless of how many capabilities are registered.
    - Placement depends only on the digest, and colliding entries are kept
      in (fallback digest, canonical key) order, so registration order across
      independent modules never changes the shape.
    - Nothing is ever removed.

    - insert: O(DIGIT_COUNT + k)
    - lookup / contains: O(DIGIT_COUNT + k)
    - k = entries sharing a full digest (1 unless the digest collides)
    """

    __slots__ = ("_root", "_size")

    def __init__(self) -> None:
        self._root = TrieBranch()
        self._size = 0

    def insert(self, capability: Capability) -> Capability:
        """Store a capability at the leaf addressed by its digits.

        Raises DuplicateCapability when an entry with the same fallback digest
        and the same canonical key already exists.
        """

        if not isinstance(capability, Capability):
            raise TypeError("capability must be a Capability instance")

        digits = capability.digits
        node = self._root
        for digit in digits[:-1]:
            nxt = node.child(digit)
            if nxt is None:
                nxt = TrieBranch()
                node.set_child(digit, nxt)
            node = nxt

        last = digits[-1]
        leaf = node.child(last)
        if leaf is None:
            node.set_child(last, TrieLeaf(capability))
            self._size += 1
            return capability

        for existing in leaf.entries:
            if existing.fallback_digest != capability.fallback_digest:
                continue
            if existing.canonical_key == capability.canonical_key:
                raise DuplicateCapability(capability.canonical_key)

        # Accepted collision: same routing digest, different identity.
        leaf.add(capability)
        self._size += 1
        return capability

    def _leaf_for(self, candidate: Capability) -> Optional[TrieLeaf]:
        node = self._root
        digits = candidate.digits
        for digit in digits[:-1]:
            nxt = node.child(digit)
            if nxt is None:
                return None
            node = nxt
        return node.child(digits[-1])

    def lookup(self, candidate: Capability) -> Optional[Capability]:
        """Return the registered capability equal to candidate, or None."""
        if not isinstance(candidate, Capability):
            raise TypeError("candidate must be a Capability instance")
        leaf = self._leaf_for(candidate)
        if leaf is None:
            return None
        return leaf.find(candidate)

    def contains(self, capability_set: "CapabilitySet", candidate: Capability) -> bool:
        """True iff candidate is registered here and is a member of capability_set."""
        if self.lookup(candidate) is None:
            return False
        return capability_set.has(candidate)

    def __contains__(self, candidate: object) -> bool:
        return isinstance(candidate, Capability) and self.lookup(candidate) is not None

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Capability]:
        """Iterate registered capabilities in digit order."""
        out: List[Capability] = []
        self._walk(self._root, out)
        return iter(out)

    def _walk(self, node: TrieBranch, out: List[Capability]) -> None:
        for child in node.children():
            if isinstance(child, TrieLeaf):
                out.extend(child.entries)
            else:
                self._walk(child, out)

    def collisions(self) -> List[Tuple[Capability, ...]]:
        """Leaves holding more than one capability (digest collisions)."""
        found: List[Tuple[Capability, ...]] = []
        self._collect_collisions(self._root, found)
        return found

    def _collect_collisions(self, node: TrieBranch, found: List[Tuple[Capability, ...]]) -> None:
        for child in node.children():
            if isinstance(child, TrieLeaf):
                if len(child) > 1:
                    found.append(child.entries)
            else:
                self._collect_collisions(child, found)
