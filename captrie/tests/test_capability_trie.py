from __future__ import annotations

import pytest

from captrie.core.exceptions import DuplicateCapability
from captrie.core.identity.capabilities import Capability, CapabilitySite
from captrie.core.sets.capability_set import CapabilitySet
from captrie.core.trie.capability_trie import CapabilityTrie


def _cap(name: str, *, line: int = 1, digest_fn=None) -> Capability:
    site = CapabilitySite(module="tests.trie", file="trie.py", line=line, column=1)
    if digest_fn is None:
        return Capability.declare(name, site)
    return Capability.declare(name, site, digest_fn=digest_fn)


def test_no_false_positives_across_many_capabilities() -> None:
    trie = CapabilityTrie()
    caps = [trie.insert(_cap(f"Cap{i}", line=i + 1)) for i in range(200)]

    for held in caps:
        s = CapabilitySet.of(held)
        assert trie.contains(s, held)
        for other in caps:
            if other is not held:
                assert not trie.contains(s, other)


def test_unregistered_capability_is_never_contained() -> None:
    trie = CapabilityTrie()
    stranger = _cap("Stranger")
    assert trie.lookup(stranger) is None
    assert not trie.contains(CapabilitySet.of(stranger), stranger)
    assert stranger not in trie


def test_forced_collision_keeps_both_and_rejects_true_duplicate() -> None:
    same = lambda key: 0xDEADBEEF  # noqa: E731
    trie = CapabilityTrie()
    a = trie.insert(_cap("Alpha", digest_fn=same))
    b = trie.insert(_cap("Beta", digest_fn=same))

    assert a.digest == b.digest
    assert trie.lookup(a) is a
    assert trie.lookup(b) is b
    assert len(trie) == 2
    assert trie.collisions() == [tuple(sorted((a, b), key=lambda c: c.fallback_digest))]

    s = CapabilitySet.of(a)
    assert trie.contains(s, a)
    assert not trie.contains(s, b)

    with pytest.raises(DuplicateCapability) as exc:
        trie.insert(_cap("Alpha", digest_fn=same))
    assert exc.value.canonical_key == a.canonical_key
    assert len(trie) == 2


def test_duplicate_without_collision_is_rejected() -> None:
    trie = CapabilityTrie()
    trie.insert(_cap("Once"))
    with pytest.raises(DuplicateCapability):
        trie.insert(_cap("Once"))


def test_shape_is_independent_of_insertion_order() -> None:
    caps = [_cap(f"C{i}", line=i + 1) for i in range(50)]
    forward, backward = CapabilityTrie(), CapabilityTrie()
    for c in caps:
        forward.insert(c)
    for c in reversed(caps):
        backward.insert(c)

    assert list(forward) == list(backward)
    assert list(forward) == sorted(caps, key=lambda c: c.digest)


def test_colliding_entries_do_not_depend_on_insertion_order() -> None:
    same = lambda key: 7  # noqa: E731
    names = ["Alpha", "Beta", "Gamma"]
    caps = {n: _cap(n, digest_fn=same) for n in names}

    forward, backward = CapabilityTrie(), CapabilityTrie()
    for n in names:
        forward.insert(caps[n])
    for n in reversed(names):
        backward.insert(caps[n])

    expected = sorted(caps.values(), key=lambda c: (c.fallback_digest, c.canonical_key))
    assert list(forward) == list(backward) == expected
    assert forward.collisions() == backward.collisions() == [tuple(expected)]
