from __future__ import annotations

import hashlib
from typing import Tuple

DIGEST_BITS = 64
DIGIT_BITS = 4
ARITY = 1 << DIGIT_BITS
DIGIT_COUNT = DIGEST_BITS // DIGIT_BITS

FNV_OFFSET_BASIS = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3
_MASK_64 = (1 << DIGEST_BITS) - 1

# Keys longer than this are sampled head/middle/tail before routing.
SAMPLE_THRESHOLD = 64
_HEAD = 32
_MID = 16
_TAIL = 16


def routing_key(key: str) -> str:
    """Return the bounded key used for routing.

    Keys up to SAMPLE_THRESHOLD characters are used whole. Longer keys keep
    the first 32, the 16 starting at (len - 16) // 2, and the last 16.

    Time:  O(1) for long keys (fixed sample), O(n) otherwise
    Space: O(1)
    """

    if not isinstance(key, str):
        raise TypeError("key must be a string")

    n = len(key)
    if n <= SAMPLE_THRESHOLD:
        return key

    mid_start = (n - _MID) // 2
    return key[:_HEAD] + key[mid_start : mid_start + _MID] + key[n - _TAIL :]


def fnv1a_64(data: bytes) -> int:
    """64-bit FNV-1a over raw bytes."""
    h = FNV_OFFSET_BASIS
    for b in data:
        h ^= b
        h = (h * FNV_PRIME) & _MASK_64
    return h


def compute_digest(key: str) -> int:
    """
    Compute the fixed-width routing digest of a canonical key.

    Deterministic across processes: no salt, no randomness.
    """
    return fnv1a_64(routing_key(key).encode("utf-8"))


def compute_fallback_digest(key: str) -> str:
    """
    Compute the wide (512-bit) digest of the full key, used only to
    disambiguate capabilities that share a routing digest.
    """
    if not isinstance(key, str):
        raise TypeError("key must be a string")
    return hashlib.sha512(key.encode("utf-8")).hexdigest()


def routing_digits(digest: int) -> Tuple[int, ...]:
    """Slice a 64-bit digest into 16 four-bit digits, most significant first.

    Time:  O(DIGIT_COUNT)
    Space: O(DIGIT_COUNT)
    """

    if not isinstance(digest, int) or isinstance(digest, bool):
        raise TypeError("digest must be an int")
    if digest < 0 or digest > _MASK_64:
        raise ValueError("digest must fit in 64 bits")

    top = DIGEST_BITS - DIGIT_BITS
    return tuple((digest >> (top - i * DIGIT_BITS)) & (ARITY - 1) for i in range(DIGIT_COUNT))
