from __future__ import annotations

from typing import Sequence, Tuple


class CapabilityError(Exception):
    """
    Base exception for all capability-related failures.
    """

    pass


class CapabilityConfigurationError(CapabilityError):
    """
    Raised when declarations are invalid. Always a build-time failure.
    """

    pass


class DuplicateCapability(CapabilityConfigurationError):
    """
    Raised when the same capability identity is registered twice.
    """

    def __init__(self, canonical_key: str):
        self.canonical_key = canonical_key
        super().__init__(f"Duplicate capability declaration: {canonical_key}")


class UnknownCapabilityReference(CapabilityConfigurationError):
    """
    Raised when a query or guard references a capability that was never registered.
    """

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Unknown capability reference: {reference}")


class AmbiguousCapabilityReference(CapabilityConfigurationError):
    """
    Raised when a plain name matches capabilities declared in several modules.
    """

    def __init__(self, reference: str, candidates: Sequence[str]):
        self.reference = reference
        self.candidates: Tuple[str, ...] = tuple(candidates)
        super().__init__(
            f"Ambiguous capability reference '{reference}'; "
            f"qualify it as one of: {', '.join(self.candidates)}"
        )


class RegistrySealedError(CapabilityConfigurationError):
    """
    Raised when registering after the build phase has been sealed.
    """

    pass


class RequirementSyntaxError(CapabilityConfigurationError):
    """
    Raised when a requirement expression cannot be parsed.
    """

    def __init__(self, message: str, column: int):
        self.message = message
        self.column = column
        super().__init__(f"column {column}: {message}")


class SpecializationConfigurationError(CapabilityConfigurationError):
    """
    Raised when a specialization set is declared inconsistently.
    """

    pass


class ManifestError(CapabilityConfigurationError):
    """
    Raised when a manifest file is malformed.
    """

    pass


class RequirementNotSatisfied(CapabilityError):
    """
    Raised by strict requirement checks. Carries the rendered requirement so
    callers can surface it verbatim.
    """

    def __init__(self, trace: str, missing: Sequence[str] = ()):
        self.trace = trace
        self.missing: Tuple[str, ...] = tuple(missing)
        detail = f" (missing: {', '.join(self.missing)})" if self.missing else ""
        super().__init__(f"Requirement not satisfied: {trace}{detail}")


class ResolutionError(CapabilityError):
    """
    Base class for specialization failures. Never silently resolved.
    """

    def __init__(self, contract: str, message: str):
        self.contract = contract
        super().__init__(f"{contract}: {message}")


class NoMatch(ResolutionError):
    """
    Raised when no variant guard passes.
    """

    def __init__(self, contract: str):
        super().__init__(contract, "no specialization variant matches")


class AmbiguousMatch(ResolutionError):
    """
    Raised when several variants tie on tier and bound count.
    """

    def __init__(self, contract: str, variant_ids: Sequence[str]):
        self.variant_ids: Tuple[str, ...] = tuple(variant_ids)
        super().__init__(
            contract,
            f"ambiguous specialization between: {', '.join(self.variant_ids)}",
        )


class DeferredResolution(ResolutionError):
    """
    Raised when the capability set is only known by constraints and the
    winner cannot be decided yet.
    """

    def __init__(self, contract: str, undecided: Sequence[str]):
        self.undecided: Tuple[str, ...] = tuple(undecided)
        super().__init__(
            contract,
            f"resolution deferred; undecided guards: {', '.join(self.undecided)}",
        )
