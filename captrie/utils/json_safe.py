from __future__ import annotations

from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from captrie.core.identity.capabilities import Capability
from captrie.core.query.expr import QueryExpr
from captrie.core.sets.capability_set import CapabilitySet


def to_jsonable(obj: Any) -> Any:
    """
    Convert engine values and common Python objects to JSON-serializable equivalents.

    - Capability -> "module::Name"
    - CapabilitySet -> sorted list of qualified names
    - QueryExpr -> rendered trace
    - objects with to_dict() (results, resolutions, variants) -> that dict

    Security considerations:
    - does NOT execute or import anything dynamically.
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, Enum):
        return to_jsonable(obj.value)

    if isinstance(obj, Capability):
        return obj.qualified_name

    if isinstance(obj, CapabilitySet):
        return [c.qualified_name for c in obj]

    if isinstance(obj, QueryExpr):
        return obj.render()

    if isinstance(obj, Path):
        return str(obj)

    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_jsonable(to_dict())

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_jsonable(x) for x in obj]

    # fallback: string representation
    return str(obj)
