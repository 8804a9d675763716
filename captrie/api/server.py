from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException

from captrie.api.middleware import RequestLogMiddleware
from captrie.api.models import CapabilityOut, CheckIn, CheckOut, EntityOut, HealthOut, ResolveIn, ResolveOut
from captrie.core.config import EngineConfig
from captrie.core.engine import CapabilityEngine
from captrie.core.exceptions import CapabilityConfigurationError
from captrie.core.manifest import LoadedManifest, build_engine, load_manifest, resolve_manifest_path
from captrie.core.query.expr import QueryExpr
from captrie.core.sets.capability_set import CapabilitySet, ConstrainedCapabilitySet
from captrie.core.specialization.resolver import CapabilityInput, ResolutionStatus
from captrie.utils.json_safe import to_jsonable

log = logging.getLogger("captrie.api")


def _load(cfg: EngineConfig, manifest: Optional[str]) -> Optional[LoadedManifest]:
    """Resolve and build the startup manifest, if one is configured.

    Security notes:
    - Manifest names resolve under cfg.manifest_dir unless arbitrary paths are allowed.
    """

    ref = (manifest or cfg.manifest or "").strip() or None
    if ref is None:
        return None
    path = resolve_manifest_path(
        ref,
        base_dir=cfg.manifest_dir,
        allow_arbitrary_paths=cfg.allow_manifest_paths,
    )
    loaded = build_engine(load_manifest(path), config=cfg)
    log.info(
        "manifest_loaded",
        extra={"manifest": path, "capability_count": len(loaded.engine.registry)},
    )
    return loaded


def create_app(*, manifest: Optional[str] = None) -> FastAPI:
    """Create the FastAPI app.

    The engine is built and sealed once here; request handlers only run
    query-phase operations against it.
    """

    cfg = EngineConfig.from_env()

    # Logging: safe defaults (no request bodies), can be configured by host app.
    log.setLevel(cfg.log_level)

    loaded = _load(cfg, manifest)
    if loaded is not None:
        engine = loaded.engine
    else:
        engine = CapabilityEngine.from_config(cfg)
        engine.seal()

    app = FastAPI(title="captrie API", version="0.1")
    app.state.cfg = cfg
    app.state.engine = engine
    app.state.loaded = loaded

    app.add_middleware(RequestLogMiddleware)

    def _require_manifest() -> LoadedManifest:
        if loaded is None:
            raise HTTPException(status_code=404, detail="no_manifest_loaded")
        return loaded

    def _capability_set(entity: Optional[str], names: Optional[List[str]]) -> CapabilitySet:
        if (entity is None) == (names is None):
            raise HTTPException(status_code=400, detail="give exactly one of entity or capabilities")
        if entity is not None:
            source = _require_manifest()
            if entity not in source.entities:
                raise HTTPException(status_code=404, detail="entity_not_found")
            return source.entities[entity]
        try:
            return engine.capability_set(*names)
        except CapabilityConfigurationError as e:
            raise HTTPException(status_code=422, detail=str(e))

    def _requirement(text: Optional[str], name: Optional[str]) -> QueryExpr:
        if (text is None) == (name is None):
            raise HTTPException(
                status_code=400, detail="give exactly one of requirement or requirement_name"
            )
        if name is not None:
            source = _require_manifest()
            if name not in source.requirements:
                raise HTTPException(status_code=404, detail="requirement_not_found")
            return source.requirements[name]
        try:
            return engine.build_query(text)
        except CapabilityConfigurationError as e:
            raise HTTPException(status_code=422, detail=str(e))

    @app.get("/health", response_model=HealthOut)
    def health() -> HealthOut:
        return HealthOut(
            ok=True,
            manifest=loaded.manifest.source if loaded is not None else None,
            capability_count=len(engine.registry),
            details={"collisions": len(engine.registry.collisions())},
        )

    @app.get("/capabilities", response_model=List[CapabilityOut])
    def list_capabilities() -> List[CapabilityOut]:
        caps = sorted(engine.registry, key=lambda c: c.sort_key())
        return [
            CapabilityOut(
                name=c.name,
                qualified_name=c.qualified_name,
                module=c.site.module,
                site=c.site.coordinate,
                digest=f"{c.digest:016x}",
                doc=c.doc,
            )
            for c in caps
        ]

    @app.get("/entities", response_model=List[EntityOut])
    def list_entities() -> List[EntityOut]:
        source = _require_manifest()
        return [
            EntityOut(name=name, capabilities=list(caps.names()))
            for name, caps in sorted(source.entities.items())
        ]

    @app.post("/check", response_model=CheckOut)
    def check(req: CheckIn) -> CheckOut:
        """Check a requirement against a capability set.

        Unsatisfied requirements are a normal 200 answer; only malformed
        requests and unknown references are errors.
        """

        caps = _capability_set(req.entity, req.capabilities)
        query = _requirement(req.requirement, req.requirement_name)
        result = engine.check_requirement(caps, query)
        return CheckOut(satisfied=result.satisfied, trace=result.trace, missing=list(result.missing))

    @app.post("/resolve", response_model=ResolveOut)
    def resolve(req: ResolveIn) -> ResolveOut:
        """Select the most specific variant of a specialization set.

        Returns 409 with the resolution as detail when there is no single
        winner (NO_MATCH, AMBIGUOUS or DEFERRED).
        """

        source = _require_manifest()
        if req.contract not in source.specializations:
            raise HTTPException(status_code=404, detail="specialization_not_found")
        spec_set = source.specializations[req.contract]

        caps: CapabilityInput = _capability_set(req.entity, req.capabilities)
        if req.mode == "constrained":
            try:
                excluded = engine.capability_set(*req.excluded)
                caps = ConstrainedCapabilitySet(required=caps.members, excluded=excluded.members)
            except (CapabilityConfigurationError, ValueError) as e:
                raise HTTPException(status_code=422, detail=str(e))
        elif req.excluded:
            raise HTTPException(status_code=400, detail="excluded requires mode=constrained")

        resolution = engine.select(caps, spec_set)
        out = ResolveOut(body=to_jsonable(resolution.body), **resolution.to_dict())
        if resolution.status != ResolutionStatus.MATCH:
            log.info(
                "resolution_failed",
                extra={"contract": spec_set.name, "status": resolution.status.value},
            )
            raise HTTPException(status_code=409, detail=out.model_dump())
        return out

    return app
