from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.environ.get(name, "").strip()
    return raw or default


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean environment variable.

    Env vars are trusted configuration; unrecognized values fall back to the default.
    """

    raw = os.environ.get(name, "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Configuration shared by the CLI and the API service.

    - manifest: manifest loaded by the API at startup (name or path)
    - manifest_dir: base directory that manifest names resolve under
    - allow_manifest_paths: accept arbitrary filesystem paths for manifests
    - standard_catalog: register the standard marker capabilities
    """

    log_level: str = "INFO"
    manifest: Optional[str] = None
    manifest_dir: str = "manifests"
    allow_manifest_paths: bool = False
    standard_catalog: bool = False

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            log_level=(_env_str("CAPTRIE_LOG_LEVEL", "INFO") or "INFO").upper(),
            manifest=_env_str("CAPTRIE_MANIFEST"),
            manifest_dir=_env_str("CAPTRIE_MANIFEST_DIR", "manifests") or "manifests",
            allow_manifest_paths=_env_bool("CAPTRIE_ALLOW_MANIFEST_PATHS", False),
            standard_catalog=_env_bool("CAPTRIE_STANDARD_CATALOG", False),
        )
