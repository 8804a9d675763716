from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from captrie.core.catalog.standard import load_standard_capabilities
from captrie.core.config import EngineConfig
from captrie.core.engine import CapabilityEngine
from captrie.core.exceptions import CapabilityConfigurationError, ManifestError
from captrie.core.query.expr import QueryExpr
from captrie.core.sets.capability_set import CapabilitySet
from captrie.core.specialization.models import SpecializationSet, VariantDeclaration

_MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")
_VARIANT_KEYS = {"tier", "guard", "bounds", "bound_count", "body"}


@dataclass(frozen=True, slots=True)
class CapabilityManifest:
    """Declarations for one module, as read from a manifest file.

    Supported schema (YAML/JSON)

    module: app.pipeline
    standard: true
    capabilities:            # mapping name -> doc, or a list of names
      Parsed: Document has been parsed
    entities:                # entity -> capability names
      draft:
        - Parsed
    requirements:            # name -> requirement text
      publishable: Parsed & Validated
    specializations:         # contract -> variant id -> variant fields
      render:
        generic:
          tier: default
          body: render_generic

    Security notes:
    - Treat manifest files as trusted configuration.
    - In the API, do NOT allow arbitrary filesystem paths by default.

    Complexity
    - load: O(n) time, O(n) space for file size n.
    """

    module: str
    source: str = ""
    standard: bool = False
    capabilities: Dict[str, Optional[str]] = field(default_factory=dict)
    entities: Dict[str, List[str]] = field(default_factory=dict)
    requirements: Dict[str, str] = field(default_factory=dict)
    specializations: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)


@dataclass
class LoadedManifest:
    """A manifest materialized against a sealed engine."""

    manifest: CapabilityManifest
    engine: CapabilityEngine
    entities: Dict[str, CapabilitySet] = field(default_factory=dict)
    requirements: Dict[str, QueryExpr] = field(default_factory=dict)
    specializations: Dict[str, SpecializationSet] = field(default_factory=dict)

    def entity(self, name: str) -> CapabilitySet:
        try:
            return self.entities[name]
        except KeyError:
            raise ManifestError(f"unknown entity: {name}") from None

    def requirement(self, name: str) -> QueryExpr:
        try:
            return self.requirements[name]
        except KeyError:
            raise ManifestError(f"unknown requirement: {name}") from None

    def specialization(self, name: str) -> SpecializationSet:
        try:
            return self.specializations[name]
        except KeyError:
            raise ManifestError(f"unknown specialization set: {name}") from None


def _strip_comment(line: str) -> str:
    # '#' starts a comment unless it sits inside quotes.
    quote = ""
    for idx, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = ""
        elif ch in {"'", '"'}:
            quote = ch
        elif ch == "#":
            return line[:idx].rstrip()
    return line.rstrip()


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _parse_minimal_yaml(text: str) -> Dict[str, Any]:
    """Parse the minimal YAML subset used by manifests.

    Supports:
    - Nested mappings by indentation
    - Lists of scalars ("- item") under a key
    - Scalar strings, optionally quoted, and the empty list "[]"

    This is not a general YAML parser.

    Time:  O(n)
    Space: O(n)
    """

    lines = [ln for ln in (_strip_comment(l) for l in text.splitlines()) if ln.strip()]
    root: Dict[str, Any] = {}
    # (indent of keys in this mapping, mapping)
    stack: List[Tuple[int, Dict[str, Any]]] = [(0, root)]

    i = 0
    while i < len(lines):
        line = lines[i]
        indent = _indent_of(line)
        stripped = line.strip()

        while len(stack) > 1 and indent < stack[-1][0]:
            stack.pop()
        if indent != stack[-1][0]:
            raise ValueError(f"line {i + 1}: invalid indentation")
        cur = stack[-1][1]

        if stripped.startswith("-"):
            raise ValueError(f"line {i + 1}: list item outside a list")
        if ":" not in stripped:
            raise ValueError(f"line {i + 1}: expected 'key: value'")

        key, rest = stripped.split(":", 1)
        key = _unquote(key.strip())
        rest = rest.strip()
        if not key:
            raise ValueError(f"line {i + 1}: empty key")
        if key in cur:
            raise ValueError(f"line {i + 1}: duplicate key '{key}'")
        i += 1

        if rest == "[]":
            cur[key] = []
            continue
        if rest == "{}":
            cur[key] = {}
            continue
        if rest:
            cur[key] = _unquote(rest)
            continue

        nxt_indent = _indent_of(lines[i]) if i < len(lines) else -1
        if nxt_indent <= indent:
            cur[key] = None
            continue

        if lines[i].strip().startswith("-"):
            items: List[str] = []
            while i < len(lines) and _indent_of(lines[i]) == nxt_indent:
                item = lines[i].strip()
                if not item.startswith("-"):
                    raise ValueError(f"line {i + 1}: mixed list and mapping entries")
                items.append(_unquote(item[1:].strip()))
                i += 1
            cur[key] = items
            continue

        nested: Dict[str, Any] = {}
        cur[key] = nested
        stack.append((nxt_indent, nested))

    return root


def _parse_json(text: str) -> Dict[str, Any]:
    obj = json.loads(text)
    if not isinstance(obj, dict):
        raise ValueError("manifest JSON must be an object")
    return obj


def _as_bool(value: Any, where: str) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str) and value.strip().lower() in {"true", "yes", "on", "1"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "no", "off", "0", ""}:
        return False
    raise ManifestError(f"{where} must be a boolean")


def _as_mapping(value: Any, where: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestError(f"{where} must be a mapping")
    return value


def _as_str_list(value: Any, where: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise ManifestError(f"{where} must be a list of strings")
    return list(value)


def _parse_capabilities(value: Any) -> Dict[str, Optional[str]]:
    if value is None:
        return {}
    if isinstance(value, list):
        names = _as_str_list(value, "capabilities")
        return {n: None for n in names}
    if isinstance(value, dict):
        out: Dict[str, Optional[str]] = {}
        for name, doc in value.items():
            if doc is not None and not isinstance(doc, str):
                raise ManifestError(f"capabilities.{name}: doc must be a string")
            out[str(name)] = doc or None
        return out
    raise ManifestError("capabilities must be a list or a mapping")


def _parse_specializations(value: Any) -> Dict[str, Dict[str, Dict[str, Any]]]:
    out: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for contract, variants in _as_mapping(value, "specializations").items():
        where = f"specializations.{contract}"
        parsed: Dict[str, Dict[str, Any]] = {}
        for variant_id, fields in _as_mapping(variants, where).items():
            fields = _as_mapping(fields, f"{where}.{variant_id}")
            unknown = set(fields) - _VARIANT_KEYS
            if unknown:
                raise ManifestError(
                    f"{where}.{variant_id}: unknown fields {sorted(unknown)}"
                )
            parsed[str(variant_id)] = dict(fields)
        out[str(contract)] = parsed
    return out


def parse_manifest(data: Dict[str, Any], *, source: str = "") -> CapabilityManifest:
    """Validate a decoded manifest document."""

    if not isinstance(data, dict):
        raise ManifestError("manifest must be a mapping")

    module = data.get("module")
    if not isinstance(module, str) or not module.strip():
        raise ManifestError("manifest missing module")

    entities = {
        str(name): _as_str_list(caps, f"entities.{name}")
        for name, caps in _as_mapping(data.get("entities"), "entities").items()
    }

    requirements: Dict[str, str] = {}
    for name, text in _as_mapping(data.get("requirements"), "requirements").items():
        if not isinstance(text, str) or not text.strip():
            raise ManifestError(f"requirements.{name} must be requirement text")
        requirements[str(name)] = text

    return CapabilityManifest(
        module=module.strip(),
        source=source,
        standard=_as_bool(data.get("standard"), "standard"),
        capabilities=_parse_capabilities(data.get("capabilities")),
        entities=entities,
        requirements=requirements,
        specializations=_parse_specializations(data.get("specializations")),
    )


def load_manifest(path: str) -> CapabilityManifest:
    """Load a manifest from YAML/JSON.

    Time:  O(n)
    Space: O(n)
    """

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"cannot read manifest {path}: {e}") from e

    suffix = p.suffix.lower()
    try:
        if suffix == ".json":
            data = _parse_json(text)
        elif suffix in {".yaml", ".yml"}:
            data = _parse_minimal_yaml(text)
        elif text.lstrip().startswith("{"):
            data = _parse_json(text)
        else:
            data = _parse_minimal_yaml(text)
    except ValueError as e:
        raise ManifestError(f"{p.name}: {e}") from e

    return parse_manifest(data, source=str(p))


def resolve_manifest_path(
    manifest: str,
    *,
    base_dir: str,
    allow_arbitrary_paths: bool = False,
) -> str:
    """Resolve a manifest reference to a safe filesystem path.

    - If manifest is an existing path and allow_arbitrary_paths is True, return it.
    - Otherwise, treat manifest as a name within base_dir; the extension may be omitted.

    Security notes:
    - Prevent path traversal by forcing resolution under base_dir.

    Time:  O(1)
    Space: O(1)
    """

    p = Path(manifest)
    if allow_arbitrary_paths and p.exists():
        return str(p)

    base = Path(base_dir).resolve()
    candidate = (base / manifest).resolve()
    if base not in candidate.parents:
        raise ManifestError("manifest path traversal blocked")

    if not candidate.exists() and candidate.suffix == "":
        for ext in _MANIFEST_SUFFIXES:
            alt = Path(str(candidate) + ext)
            if alt.exists():
                candidate = alt
                break
    if not candidate.is_file():
        raise FileNotFoundError(str(candidate))
    return str(candidate)


def _variant_declaration(variant_id: str, fields: Dict[str, Any]) -> VariantDeclaration:
    bound_count = fields.get("bound_count")
    if bound_count is not None:
        try:
            bound_count = int(bound_count)
        except (TypeError, ValueError):
            raise ManifestError(f"variant '{variant_id}': bound_count must be an integer") from None

    return VariantDeclaration(
        variant_id=variant_id,
        body=fields.get("body"),
        guard=fields.get("guard"),
        bounds=tuple(_as_str_list(fields.get("bounds"), f"{variant_id}.bounds")),
        tier=fields.get("tier"),
        bound_count=bound_count,
    )


def build_engine(
    manifest: CapabilityManifest,
    *,
    config: Optional[EngineConfig] = None,
) -> LoadedManifest:
    """Register a manifest's declarations, seal the engine and build its artifacts.

    Capabilities are declared at ``<source>:0:0``; manifests have no finer
    source coordinates.
    """

    cfg = config or EngineConfig()
    engine = CapabilityEngine()
    try:
        if manifest.standard or cfg.standard_catalog:
            load_standard_capabilities(engine.registry)
        engine.define_capabilities(manifest.module, manifest.capabilities, file=manifest.source)

        specializations: Dict[str, SpecializationSet] = {}
        for contract, variants in manifest.specializations.items():
            decls = [_variant_declaration(vid, f) for vid, f in variants.items()]
            specializations[contract] = engine.build_specialization_set(contract, decls)

        requirements = {
            name: engine.build_query(text) for name, text in manifest.requirements.items()
        }
        engine.seal()

        entities = {name: engine.capability_set(*caps) for name, caps in manifest.entities.items()}
    except (CapabilityConfigurationError, TypeError, ValueError) as e:
        if isinstance(e, ManifestError):
            raise
        raise ManifestError(f"{manifest.source or manifest.module}: {e}") from e

    return LoadedManifest(
        manifest=manifest,
        engine=engine,
        entities=entities,
        requirements=requirements,
        specializations=specializations,
    )
