# Author: Emrullah Erce Dutkan
"""
Error types raised by the incremental PCA engine.

All errors derive from ValueError so callers that already guard numeric
input with ``except ValueError`` keep working.
"""


class PCAError(ValueError):
    """Base class for incremental PCA errors."""


class NotInitializedError(PCAError):
    """Operation requires a fitted or loaded model."""


class DimensionMismatchError(PCAError):
    """Feature count of the input disagrees with the model or accumulator."""


class InvalidArgumentError(PCAError):
    """Argument outside its valid range (e.g. too many components requested)."""
