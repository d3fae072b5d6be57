"""
Force Scheme layout relaxation.

Each sweep visits every ordered pair (instance, other) and moves ``other``
along the line joining the two points so that their gap approaches the
normalized original distance. Only the second point of a pair moves.
"""

from __future__ import annotations

from typing import List

import numpy as np

from ..exceptions import InvalidParameterError, NumericalFailureError
from ..utils.logging_config import get_logger
from .distance import DistanceMatrix

logger = get_logger(__name__)

EPSILON = 1.0e-7


def stride_permutation(n: int) -> List[int]:
    """
    Visitation order that hops through the items instead of walking them.

    Items are drawn from a shrinking pool, advancing by a tenth of the
    remaining pool size after each draw and wrapping to the start.
    """
    pool = list(range(n))
    order = []
    pos = 0
    for _ in range(n):
        if pos >= len(pool):
            pos = 0
        order.append(pool.pop(pos))
        pos += len(pool) // 10
    return order


class ForceScheme:
    """
    Iterative force relaxation of a 2D or 3D layout.

    Args:
        fraction_delta: Damping; each displacement is divided by this value
        number_points: Number of points the layout will have
    """

    def __init__(self, fraction_delta: float = 0.8, number_points: int = 0):
        if fraction_delta <= 0:
            raise InvalidParameterError(f"fraction_delta must be > 0, got {fraction_delta}")
        self.fraction_delta = fraction_delta
        self.index = stride_permutation(number_points)

    def iteration(self, matrix: DistanceMatrix, projection: np.ndarray) -> float:
        """
        Run one sweep, updating *projection* in place.

        Args:
            matrix: Original distances (normalized with its min/max)
            projection: Float array of shape (n_points, 2) or (n_points, 3)

        Returns:
            Mean absolute displacement over all ordered pairs
        """
        n = projection.shape[0]
        if n != len(self.index):
            raise InvalidParameterError(
                f"Layout has {n} points but the scheme was built for {len(self.index)}"
            )
        if projection.ndim != 2 or projection.shape[1] not in (2, 3):
            raise InvalidParameterError(
                f"projection must have shape (n, 2) or (n, 3), got {projection.shape}"
            )
        if n < 2:
            return 0.0

        D = matrix.as_array()
        dmin = matrix.min_distance()
        span = matrix.max_distance() - dmin

        error = 0.0
        for instance in self.index:
            for other in self.index:
                if instance == other:
                    continue
                v = projection[other] - projection[instance]
                gap = float(np.sqrt(np.dot(v, v)))
                if gap < EPSILON:
                    gap = EPSILON

                raw = D[instance, other]
                if span > 0:
                    target = (raw - dmin) / span
                else:
                    target = 1.0 if raw > 0 else 0.0

                delta = target - gap
                delta *= abs(delta)
                delta /= self.fraction_delta
                error += abs(delta)

                projection[other] += delta * (v / gap)

        return error / (n * n - n)

    def relax(
        self,
        matrix: DistanceMatrix,
        projection: np.ndarray,
        iterations: int = 50,
        tolerance: float = 0.0,
    ) -> List[float]:
        """
        Run up to *iterations* sweeps, stopping early once the sweep error
        drops below *tolerance*.

        Returns:
            Error of every sweep that ran

        Raises:
            NumericalFailureError: If a sweep leaves non-finite coordinates
        """
        errors: List[float] = []
        for sweep in range(iterations):
            errors.append(self.iteration(matrix, projection))
            if not np.all(np.isfinite(projection)):
                raise NumericalFailureError(
                    f"Force scheme diverged at sweep {sweep + 1} (error {errors[-1]:.3g})"
                )
            if errors[-1] < tolerance:
                break
        if errors:
            logger.debug("Force scheme: %d sweeps, final error %.6g", len(errors), errors[-1])
        return errors
