"""
Nearest Neighbor Projection: incremental 2D placement from distances alone.

Each item is placed at an intersection of two circles centered on its two
nearest already-placed items, with radii equal to the original distances.
Non-Euclidean input (separated or nested circles) falls back to a point on
the line joining the two centers, so placement never fails.

Meant for control-point-sized inputs; cost is O(N^2).
"""

from __future__ import annotations

from typing import List

import numpy as np

from ..utils.logging_config import get_logger
from .distance import DistanceMatrix

logger = get_logger(__name__)

EPSILON = 1.0e-5
# Candidates whose reproduction errors differ by less than this are
# disambiguated against every placed item.
TIE_TOLERANCE = 1.0e-4


def _relative_error(target: float, placed: float) -> float:
    return abs(target - placed) / max(placed, EPSILON)


def intersect_circles(
    c1: np.ndarray, r1: float, c2: np.ndarray, r2: float
) -> List[np.ndarray]:
    """
    Intersect two circles.

    Returns two points when the circles cross (identical points when they
    touch). When they are separated, or one contains the other, a single
    point on the line through both centers is returned instead.
    """
    delta = c2 - c1
    d = float(np.hypot(delta[0], delta[1]))
    u = delta / d

    if d > r1 + r2:
        # Separated: middle of the gap between the circles
        return [c1 + u * (r1 + (d - r1 - r2) / 2.0)]

    if d < abs(r1 - r2):
        # Nested: halfway between the inner circle's far side and the outer circle
        offset = (r1 + r2 + d) / 2.0
        if r1 > r2:
            return [c1 + u * offset]
        return [c2 - u * offset]

    a = (r1 * r1 - r2 * r2 + d * d) / (2.0 * d)
    h = float(np.sqrt(max(r1 * r1 - a * a, 0.0)))
    base = c1 + u * a
    perp = np.array([u[1], -u[0]])
    return [base + perp * h, base - perp * h]


class NearestNeighborProjection:
    """Deterministic distance-only 2D placement (NNP)."""

    def place(self, matrix: DistanceMatrix) -> np.ndarray:
        """
        Place every item without normalization.

        Item 0 goes to (0, 0) and item 1 to (0, d(0, 1)); each later item is
        placed relative to its two nearest placed items.

        Returns:
            Array of shape (n_items, 2)
        """
        n = matrix.element_count()
        D = matrix.as_array()
        P = np.zeros((n, 2), dtype=np.float64)
        if n < 2:
            return P

        P[1] = (0.0, D[0, 1])
        fallbacks = 0
        for x in range(2, n):
            order = np.argsort(D[x, :x], kind="stable")
            q, r = int(order[0]), int(order[1])

            c1 = P[q].copy()
            c2 = P[r].copy()
            if abs(c1[0] - c2[0]) < EPSILON:
                c1[0] += EPSILON
            if abs(c1[1] - c2[1]) < EPSILON:
                c1[1] += EPSILON

            candidates = intersect_circles(c1, D[q, x], c2, D[r, x])
            if len(candidates) == 1:
                fallbacks += 1
                P[x] = candidates[0]
                continue

            errors = [
                _relative_error(D[q, x], float(np.linalg.norm(P[q] - cand)))
                + _relative_error(D[r, x], float(np.linalg.norm(P[r] - cand)))
                for cand in candidates
            ]
            if abs(errors[0] - errors[1]) < TIE_TOLERANCE:
                errors = [self._placement_error(D[x, :x], P[:x], cand) for cand in candidates]
            P[x] = candidates[0] if errors[0] <= errors[1] else candidates[1]

        if fallbacks:
            logger.debug("NNP placed %d of %d items by line fallback", fallbacks, n)
        return P

    @staticmethod
    def _placement_error(targets: np.ndarray, placed: np.ndarray, cand: np.ndarray) -> float:
        dists = np.linalg.norm(placed - cand, axis=1)
        return float(np.sum(np.abs(targets - dists) / np.maximum(dists, EPSILON)))

    def project(self, matrix: DistanceMatrix) -> np.ndarray:
        """Place every item, then normalize with ``normalize_2d``."""
        return normalize_2d(self.place(matrix))


def normalize_2d(projection: np.ndarray) -> np.ndarray:
    """
    Aspect-preserving normalization of a 2D layout into [0, 1] x [0, 1].

    Both axes are shifted to start at 0 and divided by the larger extent, so
    the longer axis spans [0, 1] and the shorter one [0, short / long].
    """
    P = np.asarray(projection, dtype=np.float64)
    if P.shape[0] == 0:
        return P.copy()
    lo = P.min(axis=0)
    scale = float((P.max(axis=0) - lo).max())
    if scale <= 0:
        return np.zeros_like(P)
    return (P - lo) / scale
