from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional


class CapabilityOut(BaseModel):
    """A registered capability and the identity it routes by."""

    name: str
    qualified_name: str
    module: str
    site: str
    digest: str
    doc: Optional[str] = None


class EntityOut(BaseModel):
    """A named capability set declared by the manifest."""

    name: str
    capabilities: List[str] = Field(default_factory=list)


class CheckIn(BaseModel):
    """Requirement check request.

    The capability set comes from exactly one of `entity` or `capabilities`.
    The requirement comes from exactly one of `requirement` (text) or
    `requirement_name` (declared in the manifest).
    """

    entity: Optional[str] = None
    capabilities: Optional[List[str]] = None
    requirement: Optional[str] = None
    requirement_name: Optional[str] = None


class CheckOut(BaseModel):
    """Requirement check result; `trace` is safe to show verbatim."""

    satisfied: bool
    trace: str
    missing: List[str] = Field(default_factory=list)


class ResolveIn(BaseModel):
    """Specialization lookup request.

    mode=exact treats the capability set as fully known. mode=constrained
    treats `capabilities` as known-present and `excluded` as known-absent;
    everything else is undecided.
    """

    contract: str
    entity: Optional[str] = None
    capabilities: Optional[List[str]] = None
    excluded: List[str] = Field(default_factory=list)
    mode: Literal["exact", "constrained"] = "exact"


class ResolveOut(BaseModel):
    """Outcome of a specialization lookup."""

    contract: str
    status: str
    variant_id: Optional[str] = None
    tier: Optional[str] = None
    body: Any = None
    tied: List[str] = Field(default_factory=list)
    undecided: List[str] = Field(default_factory=list)
    passing: List[str] = Field(default_factory=list)


class HealthOut(BaseModel):
    ok: bool
    manifest: Optional[str] = None
    capability_count: int = 0
    details: Dict[str, Any] = Field(default_factory=dict)
