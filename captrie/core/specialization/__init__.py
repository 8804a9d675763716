from .builder import build_specialization_set, build_variant, infer_tier
from .models import SpecializationSet, SpecializationVariant, SpecificityTier, VariantDeclaration
from .resolver import Resolution, ResolutionStatus, resolve, select

__all__ = [
    "Resolution",
    "ResolutionStatus",
    "SpecializationSet",
    "SpecializationVariant",
    "SpecificityTier",
    "VariantDeclaration",
    "build_specialization_set",
    "build_variant",
    "infer_tier",
    "resolve",
    "select",
]
