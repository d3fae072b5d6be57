"""
Paper Projection - Core Package

Clustering and 2D map layout for academic search results.

This package provides:
- Distance matrix, k-medoid clustering and label extraction
- Control-point projection (NNP + Force Scheme + least-squares interpolation)
- A per-request search processing pipeline
"""

__version__ = "0.1.0"

from .config import ProjectionConfig
from .exceptions import (
    ProjectionError,
    InvalidParameterError,
    InvalidIndexError,
    NumericalFailureError,
    UnreachableError,
)
from .services import SearchProcessor, SearchProcessingResult

from . import algorithms
from . import services
from . import utils

__all__ = [
    "ProjectionConfig",
    "ProjectionError",
    "InvalidParameterError",
    "InvalidIndexError",
    "NumericalFailureError",
    "UnreachableError",
    "SearchProcessor",
    "SearchProcessingResult",
    "algorithms",
    "services",
    "utils",
]
