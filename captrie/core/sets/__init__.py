from .capability_set import CapabilitySet, ConstrainedCapabilitySet

__all__ = ["CapabilitySet", "ConstrainedCapabilitySet"]
