"""
Exception types raised by the rate-estimation engine.

Numerical degeneracies (``ZeroLikelihoodError``) are absorbed by the search
objectives and turned into score penalties. Structural problems
(``ParameterCountError``, ``LambdaStructureError``) propagate to the caller.
"""

from typing import Optional


class BDRatesError(Exception):
    """Base class for all bdrates errors."""


class ParameterCountError(BDRatesError, ValueError):
    """Supplied parameter values do not match the model dimensionality."""

    def __init__(self, what: str, expected: int, got: int):
        super().__init__(
            f"Expected {expected} {what} value(s) for this rate partition, got {got}"
        )
        self.expected = expected
        self.got = got


class LambdaStructureError(BDRatesError, ValueError):
    """Malformed lambda structure (rate partition) string."""

    def __init__(self, message: str, structure: Optional[str] = None):
        if structure is not None:
            message = f"{message}: {structure}"
        super().__init__(message)
        self.structure = structure


class ZeroLikelihoodError(BDRatesError, RuntimeError):
    """A family has zero likelihood for every candidate root size."""

    def __init__(self, family_id: str):
        super().__init__(f"Calculated posterior probability for family {family_id} = 0")
        self.family_id = family_id
