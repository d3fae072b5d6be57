"""
Distance measures and the cached pairwise distance matrix.

The matrix is the single dense structure every later stage reads from:
clustering, nearest-neighbor search, mesh repair and both projection steps.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from ..exceptions import InvalidIndexError, InvalidParameterError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray


class DistanceMeasure(ABC):
    """Pluggable dissimilarity between two feature vectors."""

    name: str = "abstract"

    @abstractmethod
    def measure(self, a: np.ndarray, b: np.ndarray) -> float:
        """Return the distance between two feature vectors."""

    def compare(self, x: float, y: float) -> bool:
        """Return True if value *x* is better (closer) than value *y*."""
        return x < y

    def min_value(self) -> float:
        """Best value this measure can produce (accumulator seed)."""
        return 0.0

    def max_value(self) -> float:
        """Worst value this measure can produce (accumulator seed)."""
        return float("inf")


class EuclideanDistance(DistanceMeasure):
    """L2 distance."""

    name = "euclidean"

    def measure(self, a: np.ndarray, b: np.ndarray) -> float:
        a = np.asarray(a, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64)
        if a.shape != b.shape:
            raise InvalidParameterError(
                f"Both vectors must have the same shape, got {a.shape} and {b.shape}"
            )
        diff = a - b
        return float(np.sqrt(np.dot(diff, diff)))


class CosineDistance(DistanceMeasure):
    """``1 - cos(a, b)``, clipped to [0, 2].

    A zero vector is at distance 1.0 from any non-zero vector and 0.0 from
    another zero vector.
    """

    name = "cosine"

    def measure(self, a: np.ndarray, b: np.ndarray) -> float:
        a = np.asarray(a, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64)
        if a.shape != b.shape:
            raise InvalidParameterError(
                f"Both vectors must have the same shape, got {a.shape} and {b.shape}"
            )
        na = np.linalg.norm(a)
        nb = np.linalg.norm(b)
        if na == 0.0 or nb == 0.0:
            return 0.0 if na == nb else 1.0
        sim = float(np.dot(a, b) / (na * nb))
        return float(np.clip(1.0 - sim, 0.0, 2.0))

    def max_value(self) -> float:
        return 2.0


_MEASURES = {
    "euclidean": EuclideanDistance,
    "cosine": CosineDistance,
}


def get_distance_measure(name: str) -> DistanceMeasure:
    """Instantiate a distance measure by name ("euclidean" or "cosine")."""
    try:
        return _MEASURES[name.lower()]()
    except KeyError:
        raise InvalidParameterError(
            f"Unknown distance measure {name!r}; expected one of {sorted(_MEASURES)}"
        ) from None


class DistanceMatrix:
    """
    Symmetric N x N distance matrix with running min/max.

    N is fixed at creation. ``set_distance`` stores the value at both (i, j)
    and (j, i); min and max track every non-negative value ever set and are
    used later to normalize distances into [0, 1].
    """

    def __init__(self, n: int):
        if n < 0:
            raise InvalidParameterError(f"Element count must be >= 0, got {n}")
        self._n = int(n)
        self._values = np.zeros((self._n, self._n), dtype=np.float64)
        self._min = float("inf")
        self._max = float("-inf")

    @classmethod
    def from_features(cls, features: Array2D, measure: DistanceMeasure) -> "DistanceMatrix":
        """
        Build the full matrix from a feature matrix.

        Args:
            features: Array of shape (n_items, n_features)
            measure: Distance measure applied to every pair (diagonal included)

        Returns:
            Filled DistanceMatrix
        """
        X = np.asarray(features, dtype=np.float64)
        if X.ndim != 2:
            raise InvalidParameterError(f"features must be 2D (n_items, n_features), got {X.shape}")

        start = time.perf_counter()
        n = X.shape[0]
        dmat = cls(n)
        for i in range(n):
            for j in range(i, n):
                dmat.set_distance(i, j, measure.measure(X[i], X[j]))
        logger.debug(
            "Distance matrix (%d items, %s) built in %.3fs",
            n, measure.name, time.perf_counter() - start,
        )
        return dmat

    @classmethod
    def from_array(cls, distances: Array2D) -> "DistanceMatrix":
        """Wrap a precomputed square distance array (must be symmetric)."""
        D = np.asarray(distances, dtype=np.float64)
        if D.ndim != 2 or D.shape[0] != D.shape[1]:
            raise InvalidParameterError(f"distances must be square, got {D.shape}")
        if not np.allclose(D, D.T):
            raise InvalidParameterError("distances must be symmetric")
        n = D.shape[0]
        dmat = cls(n)
        for i in range(n):
            for j in range(i, n):
                dmat.set_distance(i, j, D[i, j])
        return dmat

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self._n:
            raise InvalidIndexError(f"Index {index} out of range [0, {self._n})")

    def set_distance(self, i: int, j: int, value: float) -> None:
        """Store *value* symmetrically and update the running min/max."""
        self._check_index(i)
        self._check_index(j)
        value = float(value)
        self._values[i, j] = value
        self._values[j, i] = value
        if value >= 0.0:
            if value < self._min:
                self._min = value
            if value > self._max:
                self._max = value

    def get(self, i: int, j: int) -> float:
        """Distance between items *i* and *j*."""
        self._check_index(i)
        self._check_index(j)
        return float(self._values[i, j])

    def row(self, i: int) -> np.ndarray:
        """Read-only view of the distances from item *i* to every item."""
        self._check_index(i)
        view = self._values[i].view()
        view.flags.writeable = False
        return view

    def as_array(self) -> np.ndarray:
        """Read-only view of the whole matrix."""
        view = self._values.view()
        view.flags.writeable = False
        return view

    def submatrix(self, indices: Sequence[int]) -> "DistanceMatrix":
        """Distance matrix restricted to *indices*, in the given order."""
        idx = [int(i) for i in indices]
        for i in idx:
            self._check_index(i)
        sub = DistanceMatrix(len(idx))
        for a in range(len(idx)):
            for b in range(a, len(idx)):
                sub.set_distance(a, b, self._values[idx[a], idx[b]])
        return sub

    def max_distance(self) -> float:
        return self._max

    def min_distance(self) -> float:
        return self._min

    def element_count(self) -> int:
        return self._n

    def __len__(self) -> int:
        return self._n

    def __repr__(self) -> str:
        return f"DistanceMatrix(n={self._n}, min={self._min:.4g}, max={self._max:.4g})"
