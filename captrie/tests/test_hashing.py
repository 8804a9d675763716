from __future__ import annotations

import pytest

from captrie.core.identity.hashing import (
    ARITY,
    DIGIT_COUNT,
    SAMPLE_THRESHOLD,
    compute_digest,
    compute_fallback_digest,
    fnv1a_64,
    routing_digits,
    routing_key,
)


def test_fnv1a_reference_vectors() -> None:
    assert fnv1a_64(b"") == 0xCBF29CE484222325
    assert fnv1a_64(b"a") == 0xAF63DC4C8601EC8C
    assert fnv1a_64(b"foobar") == 0x85944171F73967E8


def test_digest_is_deterministic_and_64_bit() -> None:
    key = "app.pipeline::Parsed@app/pipeline.py:3:1"
    assert compute_digest(key) == compute_digest(key)
    assert 0 <= compute_digest(key) < (1 << 64)
    assert compute_digest(key) != compute_digest(key.replace(":3:", ":4:"))


def test_short_keys_route_whole() -> None:
    key = "m::A@f.py:1:1"
    assert routing_key(key) == key
    assert compute_digest(key) == fnv1a_64(key.encode("utf-8"))

    exact = "x" * SAMPLE_THRESHOLD
    assert routing_key(exact) == exact


def test_long_keys_sample_head_middle_tail() -> None:
    key = "".join(chr(ord("a") + (i % 26)) for i in range(100))
    sampled = routing_key(key)

    mid = (100 - 16) // 2
    assert sampled == key[:32] + key[mid : mid + 16] + key[-16:]
    assert len(sampled) == 64
    assert compute_digest(key) == fnv1a_64(sampled.encode("utf-8"))


def test_sampling_ignores_unsampled_characters_but_fallback_does_not() -> None:
    base = ["a"] * 200
    other = list(base)
    # Position 50 is outside head (0-31), middle (92-107) and tail (184-199).
    other[50] = "b"
    k1, k2 = "".join(base), "".join(other)

    assert compute_digest(k1) == compute_digest(k2)
    assert compute_fallback_digest(k1) != compute_fallback_digest(k2)


def test_fallback_digest_is_sha512_hex() -> None:
    fb = compute_fallback_digest("m::A@f.py:1:1")
    assert len(fb) == 128
    int(fb, 16)


def test_routing_digits_most_significant_first() -> None:
    digits = routing_digits(0x0123456789ABCDEF)
    assert digits == tuple(range(16))
    assert len(digits) == DIGIT_COUNT
    assert all(0 <= d < ARITY for d in routing_digits(compute_digest("anything")))


def test_routing_digits_rejects_out_of_range() -> None:
    with pytest.raises(ValueError):
        routing_digits(1 << 64)
    with pytest.raises(ValueError):
        routing_digits(-1)
    with pytest.raises(TypeError):
        routing_digits(True)
