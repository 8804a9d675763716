from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from typing import List, Optional

from captrie.core.config import EngineConfig
from captrie.core.engine import CapabilityEngine
from captrie.core.exceptions import CapabilityError
from captrie.core.identity.hashing import compute_digest, compute_fallback_digest, routing_digits, routing_key
from captrie.core.manifest import LoadedManifest, build_engine, load_manifest, resolve_manifest_path
from captrie.core.sets.capability_set import CapabilitySet, ConstrainedCapabilitySet
from captrie.core.specialization.resolver import CapabilityInput, ResolutionStatus
from captrie.utils.json_safe import to_jsonable


def _json_default(o):
    return to_jsonable(o)


def _emit_json(payload) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=_json_default))


def _load_manifest(ref: Optional[str], cfg: EngineConfig) -> Optional[LoadedManifest]:
    """Load a manifest given as a path or as a name under the manifest directory.

    The CLI runs with the caller's own permissions, so explicit paths are accepted.
    """

    ref = (ref or cfg.manifest or "").strip() or None
    if ref is None:
        return None
    path = resolve_manifest_path(ref, base_dir=cfg.manifest_dir, allow_arbitrary_paths=True)
    return build_engine(load_manifest(path), config=cfg)


def _require_loaded(args: argparse.Namespace, cfg: EngineConfig) -> LoadedManifest:
    loaded = _load_manifest(args.manifest, cfg)
    if loaded is None:
        raise CapabilityError("a manifest is required (--manifest or CAPTRIE_MANIFEST)")
    return loaded


def _capability_set(loaded: LoadedManifest, args: argparse.Namespace) -> CapabilitySet:
    if args.entity and args.capability:
        raise CapabilityError("give either --entity or --capability, not both")
    if args.entity:
        return loaded.entity(args.entity)
    return loaded.engine.capability_set(*(args.capability or []))


def cmd_digest(args: argparse.Namespace) -> int:
    """Print the routing digest of canonical keys (module::Name@file:line:column)."""

    rows = []
    for key in args.key:
        digest = compute_digest(key)
        rows.append(
            {
                "key": key,
                "routing_key": routing_key(key),
                "digest": f"{digest:016x}",
                "digits": list(routing_digits(digest)),
                "fallback_digest": compute_fallback_digest(key),
            }
        )

    if args.json:
        _emit_json(rows)
        return 0
    for row in rows:
        digits = ".".join(f"{d:x}" for d in row["digits"])
        print(f"{row['digest']}  {digits}  {row['key']}")
    return 0


def cmd_list_capabilities(args: argparse.Namespace) -> int:
    """List registered capabilities in digest order."""

    cfg = EngineConfig.from_env()
    if args.standard:
        cfg = replace(cfg, standard_catalog=True)

    loaded = _load_manifest(args.manifest, cfg)
    engine = loaded.engine if loaded is not None else CapabilityEngine.from_config(cfg)
    caps = sorted(engine.registry, key=lambda c: c.sort_key())

    if args.json:
        _emit_json(
            [
                {
                    "qualified_name": c.qualified_name,
                    "site": c.site.coordinate,
                    "digest": f"{c.digest:016x}",
                    "doc": c.doc,
                }
                for c in caps
            ]
        )
        return 0

    for c in caps:
        doc = f"  {c.doc}" if c.doc else ""
        print(f"{c.digest:016x}  {c.qualified_name}{doc}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Check a requirement; exit code 1 when it is not satisfied."""

    cfg = EngineConfig.from_env()
    loaded = _require_loaded(args, cfg)
    caps = _capability_set(loaded, args)

    if bool(args.requirement) == bool(args.requirement_name):
        raise CapabilityError("give exactly one of --requirement or --requirement-name")
    if args.requirement_name:
        query = loaded.requirement(args.requirement_name)
    else:
        query = loaded.engine.build_query(args.requirement)

    result = loaded.engine.check_requirement(caps, query)
    if args.json:
        _emit_json(result.to_dict())
    elif result.satisfied:
        print(f"satisfied: {result.trace}")
    else:
        missing = f" (missing: {', '.join(result.missing)})" if result.missing else ""
        print(f"not satisfied: {result.trace}{missing}")
    return 0 if result.satisfied else 1


def cmd_resolve(args: argparse.Namespace) -> int:
    """Resolve a specialization set; exit code 1 when there is no single winner."""

    cfg = EngineConfig.from_env()
    loaded = _require_loaded(args, cfg)
    spec_set = loaded.specialization(args.contract)
    caps: CapabilityInput = _capability_set(loaded, args)

    if args.constrained:
        excluded = loaded.engine.capability_set(*(args.exclude or []))
        try:
            caps = ConstrainedCapabilitySet(required=caps.members, excluded=excluded.members)
        except ValueError as e:
            raise CapabilityError(str(e)) from e
    elif args.exclude:
        raise CapabilityError("--exclude requires --constrained")

    resolution = loaded.engine.select(caps, spec_set)
    if args.json:
        payload = resolution.to_dict()
        payload["body"] = to_jsonable(resolution.body)
        _emit_json(payload)
    elif resolution.status == ResolutionStatus.MATCH:
        v = resolution.variant
        print(f"{spec_set.name}: {v.variant_id}  tier={v.tier.value}  guard={v.guard.render()}")
    elif resolution.status == ResolutionStatus.AMBIGUOUS:
        print(f"{spec_set.name}: AMBIGUOUS between {', '.join(resolution.tied)}")
    elif resolution.status == ResolutionStatus.DEFERRED:
        print(f"{spec_set.name}: DEFERRED on {', '.join(resolution.undecided)}")
    else:
        print(f"{spec_set.name}: NO_MATCH")
    return 0 if resolution.status == ResolutionStatus.MATCH else 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the captrie API server.

    Security notes:
    - Bind to 127.0.0.1 by default (safer than 0.0.0.0).
    """

    try:
        import uvicorn
    except Exception as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return 2

    try:
        from captrie.api.server import create_app
    except Exception as e:
        print(f"error: API server dependencies missing: {e}", file=sys.stderr)
        return 2

    app = create_app(manifest=args.manifest)
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=args.log_level)
    return 0


def _add_manifest_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--manifest",
        "-m",
        default=None,
        help="Manifest path or name under CAPTRIE_MANIFEST_DIR (default: CAPTRIE_MANIFEST)",
    )


def _add_caps_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--entity", default=None, help="Entity declared in the manifest")
    p.add_argument(
        "--capability",
        action="append",
        default=[],
        help="Capability held (repeatable; plain or module::Name)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="captrie", description="captrie CLI")
    sub = p.add_subparsers(dest="cmd", required=True)

    dp = sub.add_parser("digest", help="Show the routing digest of canonical keys")
    dp.add_argument("key", nargs="+", help="Canonical key, e.g. app::Parsed@app.py:3:1")
    dp.add_argument("--json", action="store_true", help="JSON output")
    dp.set_defaults(func=cmd_digest)

    lp = sub.add_parser("list-capabilities", help="List registered capabilities")
    _add_manifest_arg(lp)
    lp.add_argument("--standard", action="store_true", help="Include the standard catalog")
    lp.add_argument("--json", action="store_true", help="JSON output")
    lp.set_defaults(func=cmd_list_capabilities)

    cp = sub.add_parser("check", help="Check a requirement against a capability set")
    _add_manifest_arg(cp)
    _add_caps_args(cp)
    cp.add_argument("--requirement", "-r", default=None, help="Requirement text, e.g. 'A & !B'")
    cp.add_argument("--requirement-name", default=None, help="Requirement declared in the manifest")
    cp.add_argument("--json", action="store_true", help="JSON output")
    cp.set_defaults(func=cmd_check)

    rp = sub.add_parser("resolve", help="Select the most specific specialization variant")
    _add_manifest_arg(rp)
    rp.add_argument("contract", help="Specialization set name")
    _add_caps_args(rp)
    rp.add_argument(
        "--constrained",
        action="store_true",
        help="Treat capabilities as known-present only; others are undecided",
    )
    rp.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Capability known to be absent (repeatable, with --constrained)",
    )
    rp.add_argument("--json", action="store_true", help="JSON output")
    rp.set_defaults(func=cmd_resolve)

    sp = sub.add_parser("serve", help="Run the HTTP API")
    _add_manifest_arg(sp)
    sp.add_argument("--host", default="127.0.0.1", help="Bind host")
    sp.add_argument("--port", default=8000, type=int, help="Bind port")
    sp.add_argument("--log-level", default="info", help="uvicorn log level")
    sp.set_defaults(func=cmd_serve)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except (CapabilityError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
