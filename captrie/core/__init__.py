from .config import EngineConfig
from .engine import CapabilityEngine

__all__ = ["CapabilityEngine", "EngineConfig"]
