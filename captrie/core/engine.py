from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Union

from captrie.core.catalog.standard import load_standard_capabilities
from captrie.core.config import EngineConfig
from captrie.core.identity.capabilities import Capability, CapabilitySite
from captrie.core.query.evaluator import RequirementResult, check_requirement, require
from captrie.core.query.expr import QueryExpr
from captrie.core.sets.capability_set import CapabilitySet, ConstrainedCapabilitySet
from captrie.core.specialization.builder import build_specialization_set
from captrie.core.specialization.models import SpecializationSet, VariantDeclaration
from captrie.core.specialization.resolver import CapabilityInput, Resolution, resolve, select
from captrie.core.trie.registry import CapabilityRef, CapabilityRegistry


def _query(engine: "CapabilityEngine", query: Any) -> QueryExpr:
    return query if isinstance(query, QueryExpr) else engine.build_query(query)


@dataclass
class CapabilityEngine:
    """
    Entry point used by declaration front-ends and call sites.

    Build phase: register_capability / define_capabilities / build_query /
    build_specialization_set, then seal(). Query phase: check_requirement,
    require, select, resolve. All query-phase calls are pure.
    """

    registry: CapabilityRegistry = field(default_factory=CapabilityRegistry)

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None) -> "CapabilityEngine":
        cfg = config or EngineConfig.from_env()
        engine = cls()
        if cfg.standard_catalog:
            load_standard_capabilities(engine.registry)
        return engine

    # -- build phase -------------------------------------------------------

    def register_capability(
        self,
        name: str,
        site: CapabilitySite,
        *,
        doc: Optional[str] = None,
    ) -> Capability:
        return self.registry.register_capability(name, site, doc=doc)

    def define_capabilities(
        self,
        module: str,
        entries: Union[Mapping[str, Optional[str]], Iterable[str]],
        *,
        file: str = "",
    ) -> List[Capability]:
        return self.registry.define_capabilities(module, entries, file=file)

    def build_query(self, expression: Any) -> QueryExpr:
        return self.registry.build_query(expression)

    def build_specialization_set(
        self,
        name: str,
        declarations: Iterable[VariantDeclaration],
    ) -> SpecializationSet:
        return build_specialization_set(self.registry, name, declarations)

    def seal(self) -> None:
        self.registry.seal()

    # -- query phase -------------------------------------------------------

    def capability_set(self, *refs: CapabilityRef) -> CapabilitySet:
        return self.registry.capability_set(*refs)

    def constrained_set(
        self,
        *,
        required: Iterable[CapabilityRef] = (),
        excluded: Iterable[CapabilityRef] = (),
    ) -> ConstrainedCapabilitySet:
        return ConstrainedCapabilitySet(
            required=frozenset(self.registry.resolve_ref(r) for r in required),
            excluded=frozenset(self.registry.resolve_ref(r) for r in excluded),
        )

    def check_requirement(self, caps: CapabilitySet, query: Any) -> RequirementResult:
        return check_requirement(caps, _query(self, query))

    def require(self, caps: CapabilitySet, query: Any) -> RequirementResult:
        return require(caps, _query(self, query))

    def select(self, caps: CapabilityInput, spec_set: SpecializationSet) -> Resolution:
        return select(caps, spec_set)

    def resolve(self, caps: CapabilityInput, spec_set: SpecializationSet) -> Any:
        return resolve(caps, spec_set)
