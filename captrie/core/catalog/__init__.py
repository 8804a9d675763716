from .standard import (
    STANDARD_CAPABILITIES,
    STANDARD_MODULE,
    STANDARD_TYPES,
    STANDARD_TYPES_MODULE,
    load_standard_capabilities,
    standard_capability_name,
)

__all__ = [
    "STANDARD_CAPABILITIES",
    "STANDARD_MODULE",
    "STANDARD_TYPES",
    "STANDARD_TYPES_MODULE",
    "load_standard_capabilities",
    "standard_capability_name",
]
