"""
Exception taxonomy for the clustering and projection engine.

Parameter errors subclass the matching builtins so that callers catching
``ValueError`` / ``IndexError`` keep working.
"""


class ProjectionError(Exception):
    """Base class for all engine errors."""


class InvalidParameterError(ProjectionError, ValueError):
    """A caller-supplied parameter is out of its valid range."""


class InvalidIndexError(InvalidParameterError, IndexError):
    """An item index falls outside ``[0, N)``."""


class NumericalFailureError(ProjectionError):
    """The least-squares system could not be factorized.

    Raised when ``AᵗA`` is not positive definite, typically because the
    neighbor mesh leaves part of the layout unconstrained. Retrying with a
    larger neighbor count usually helps.
    """


class UnreachableError(ProjectionError, AssertionError):
    """An internal invariant was violated. Never expected to be caught."""
