from .capabilities import Capability, CapabilitySite, canonical_key
from .hashing import (
    ARITY,
    DIGIT_COUNT,
    compute_digest,
    compute_fallback_digest,
    routing_digits,
    routing_key,
)

__all__ = [
    "ARITY",
    "DIGIT_COUNT",
    "Capability",
    "CapabilitySite",
    "canonical_key",
    "compute_digest",
    "compute_fallback_digest",
    "routing_digits",
    "routing_key",
]
