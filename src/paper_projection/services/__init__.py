"""
Service layer for paper_projection.

Turns search hits into clusters and map coordinates by composing the
algorithm stages.
"""

from .term_matrix import TermMatrix, build_term_matrix
from .search_processing import SearchProcessor, SearchProcessingResult

__all__ = [
    "TermMatrix",
    "build_term_matrix",
    "SearchProcessor",
    "SearchProcessingResult",
]
