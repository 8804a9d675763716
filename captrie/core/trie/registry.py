from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Union

from captrie.core.exceptions import (
    AmbiguousCapabilityReference,
    RegistrySealedError,
    UnknownCapabilityReference,
)
from captrie.core.identity.capabilities import Capability, CapabilitySite, DigestFn
from captrie.core.identity.hashing import compute_digest
from captrie.core.query.expr import And, Atom, Group, Not, Or, QueryExpr
from captrie.core.query.parser import ExprAst, parse_requirement
from captrie.core.sets.capability_set import CapabilitySet

from .capability_trie import CapabilityTrie

log = logging.getLogger("captrie.registry")

CapabilityRef = Union[str, Capability]

_BINARY = {"and": And, "or": Or}
_UNARY = {"not": Not, "group": Group}


@dataclass
class CapabilityRegistry:
    """In-memory registry of declared capabilities, backed by a CapabilityTrie.

    Registration belongs to the build phase. Once `seal()` is called the
    registry is read-only and may be shared by any number of threads.

    - register: O(DIGIT_COUNT) plus a dict insert
    - get: O(1) average
    - contains: O(DIGIT_COUNT)
    """

    digest_fn: DigestFn = compute_digest
    _trie: CapabilityTrie = field(default_factory=CapabilityTrie, init=False, repr=False)
    _by_name: Dict[str, List[Capability]] = field(default_factory=dict, init=False, repr=False)
    _by_qualified: Dict[str, List[Capability]] = field(default_factory=dict, init=False, repr=False)
    _sealed: bool = field(default=False, init=False)

    # -- build phase -------------------------------------------------------

    def register(self, capability: Capability) -> Capability:
        """Register an already declared capability."""
        if self._sealed:
            raise RegistrySealedError(
                f"cannot register {capability.qualified_name}: registry is sealed"
            )

        self._trie.insert(capability)
        self._by_name.setdefault(capability.name, []).append(capability)
        self._by_qualified.setdefault(capability.qualified_name, []).append(capability)

        log.debug(
            "capability_registered",
            extra={
                "capability": capability.qualified_name,
                "site": capability.site.coordinate,
                "digest": f"{capability.digest:016x}",
            },
        )
        return capability

    def register_capability(
        self,
        name: str,
        site: CapabilitySite,
        *,
        doc: Optional[str] = None,
    ) -> Capability:
        """Declare and register a capability at its defining site."""
        return self.register(Capability.declare(name, site, doc=doc, digest_fn=self.digest_fn))

    def define_capabilities(
        self,
        module: str,
        entries: Union[Mapping[str, Optional[str]], Iterable[str]],
        *,
        file: str = "",
    ) -> List[Capability]:
        """Batch form: declare several capabilities of one module.

        entries is either a list of names or a mapping of name -> doc string.
        """
        if isinstance(entries, Mapping):
            items = list(entries.items())
        else:
            items = [(name, None) for name in entries]

        site = CapabilitySite(module=module, file=file)
        return [self.register_capability(name, site, doc=doc) for name, doc in items]

    def seal(self) -> None:
        """End the build phase."""
        if not self._sealed:
            self._sealed = True
            log.debug("registry_sealed", extra={"capability_count": len(self._trie)})

    @property
    def sealed(self) -> bool:
        return self._sealed

    # -- query phase -------------------------------------------------------

    def get(self, reference: str) -> Capability:
        """Resolve a plain name or a ``module::Name`` reference."""
        if not isinstance(reference, str):
            raise TypeError("reference must be a string")
        ref = reference.strip()

        index = self._by_qualified if "::" in ref else self._by_name
        matches = index.get(ref, [])
        if not matches:
            raise UnknownCapabilityReference(ref)
        if len(matches) > 1:
            raise AmbiguousCapabilityReference(
                ref, sorted(f"{c.qualified_name}@{c.site.coordinate}" for c in matches)
            )
        return matches[0]

    def find(self, name: str) -> List[Capability]:
        """All capabilities declared under a plain name, in registration order."""
        return list(self._by_name.get(name, []))

    def lookup(self, capability: Capability) -> Optional[Capability]:
        return self._trie.lookup(capability)

    def contains(self, capability_set: CapabilitySet, capability: Capability) -> bool:
        return self._trie.contains(capability_set, capability)

    def resolve_ref(self, ref: CapabilityRef) -> Capability:
        if isinstance(ref, Capability):
            if self._trie.lookup(ref) is None:
                raise UnknownCapabilityReference(ref.qualified_name)
            return ref
        return self.get(ref)

    def capability_set(self, *refs: CapabilityRef) -> CapabilitySet:
        """Build a CapabilitySet from names or capabilities, all of which must be registered."""
        return CapabilitySet(frozenset(self.resolve_ref(r) for r in refs))

    def build_query(self, expression: Union[ExprAst, Capability, QueryExpr]) -> QueryExpr:
        """Translate an expression AST (or requirement text) into a QueryExpr.

        A top-level string is parsed as requirement text; strings nested in a
        tuple AST are capability references.
        """
        if isinstance(expression, str):
            expression = parse_requirement(expression)
        return self._build(expression)

    def _build(self, node: Union[ExprAst, Capability, QueryExpr]) -> QueryExpr:
        if isinstance(node, QueryExpr):
            for atom in node.atoms():
                self.resolve_ref(atom.capability)
            return node

        if isinstance(node, Capability):
            return Atom(self.resolve_ref(node))

        if isinstance(node, str):
            return Atom(self.get(node), label=node.strip())

        if isinstance(node, tuple) and node:
            op = node[0]
            if op in _BINARY and len(node) == 3:
                return _BINARY[op](self._build(node[1]), self._build(node[2]))
            if op in _UNARY and len(node) == 2:
                return _UNARY[op](self._build(node[1]))
            raise ValueError(f"malformed expression node: {node!r}")

        raise TypeError(f"unsupported expression node: {type(node).__name__}")

    # -- inspection --------------------------------------------------------

    def collisions(self) -> List[tuple]:
        return self._trie.collisions()

    def __contains__(self, item: object) -> bool:
        return item in self._trie

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._trie)

    def __len__(self) -> int:
        return len(self._trie)
