from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from .hashing import compute_digest, compute_fallback_digest, routing_digits

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_MODULE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

DigestFn = Callable[[str], int]


@dataclass(frozen=True)
class CapabilitySite:
    """
    Source coordinate where a capability is declared.

    Invariants
    - module is a dotted identifier path
    - line and column are non-negative
    """

    module: str
    file: str = ""
    line: int = 0
    column: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.module, str):
            raise TypeError("module must be a string")
        module = self.module.strip()
        if not _MODULE_RE.match(module):
            raise ValueError(f"invalid module path: {self.module!r}")
        object.__setattr__(self, "module", module)

        if not isinstance(self.file, str):
            raise TypeError("file must be a string")

        for attr in ("line", "column"):
            value = getattr(self, attr)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{attr} must be an int")
            if value < 0:
                raise ValueError(f"{attr} must be non-negative")

    @property
    def coordinate(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


def canonical_key(name: str, site: CapabilitySite) -> str:
    """Canonical identity string: ``module::Name@file:line:column``."""
    return f"{site.module}::{name}@{site.coordinate}"


@dataclass(frozen=True)
class Capability:
    """
    Immutable, globally unique capability marker.

    Identity is (name, site, digest, fallback_digest). The doc string is
    informational and does not take part in equality.

    Security invariants
    - Immutable and hashable for safe set membership
    - Name is a plain identifier so requirement text can reference it
    """

    name: str
    site: CapabilitySite
    digest: int
    fallback_digest: str
    doc: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise TypeError("Capability name must be a string")
        name = self.name.strip()
        if not _NAME_RE.match(name):
            raise ValueError(f"Capability name must be an identifier, got {self.name!r}")
        object.__setattr__(self, "name", name)

        if not isinstance(self.site, CapabilitySite):
            raise TypeError("site must be a CapabilitySite instance")
        if not isinstance(self.digest, int) or isinstance(self.digest, bool):
            raise TypeError("digest must be an int")
        if not isinstance(self.fallback_digest, str) or not self.fallback_digest:
            raise TypeError("fallback_digest must be a non-empty string")
        if self.doc is not None and not isinstance(self.doc, str):
            raise TypeError("doc must be a string or None")

    @classmethod
    def declare(
        cls,
        name: str,
        site: CapabilitySite,
        *,
        doc: Optional[str] = None,
        digest_fn: DigestFn = compute_digest,
    ) -> "Capability":
        """Build a capability, deriving both digests from its canonical key."""
        if not isinstance(name, str):
            raise TypeError("Capability name must be a string")
        if not isinstance(site, CapabilitySite):
            raise TypeError("site must be a CapabilitySite instance")

        key = canonical_key(name.strip(), site)
        return cls(
            name=name,
            site=site,
            digest=digest_fn(key),
            fallback_digest=compute_fallback_digest(key),
            doc=doc,
        )

    @property
    def canonical_key(self) -> str:
        return canonical_key(self.name, self.site)

    @property
    def qualified_name(self) -> str:
        return f"{self.site.module}::{self.name}"

    @property
    def digits(self) -> Tuple[int, ...]:
        return routing_digits(self.digest)

    def sort_key(self) -> Tuple[int, str]:
        return (self.digest, self.fallback_digest)

    def __str__(self) -> str:
        return self.name
