"""
Full-set 2D projection anchored on a few control points.

Pipeline:
  1. Distance sub-matrix of the control points
  2. NNP layout of the control points
  3. Force Scheme relaxation of that layout
  4. k nearest neighbors over the full matrix
  5. Mesh connectivity repair
  6. Least-squares system: every non-control item sits at the inverse-distance
     weighted average of its neighbors, every control point is pinned
  7. Normal equations solved by Cholesky factorization

Only the control points go through the O(k^2) force simulation; everything
else is interpolated by the local-smoothness solve.
"""

from __future__ import annotations

import time
from typing import List, Sequence, Tuple

import numpy as np

from ..exceptions import InvalidParameterError, NumericalFailureError, UnreachableError
from ..utils.logging_config import get_logger
from .distance import DistanceMatrix
from .force_scheme import ForceScheme
from .neighbors import KNNSearch, MeshConnectivityRepair, NeighborTable, reachable_from
from .nnp import NearestNeighborProjection

logger = get_logger(__name__)


def inverse_distance_weights(distances: Sequence[float]) -> np.ndarray:
    """
    Normalized inverse-distance weights for one item's neighbors.

    Distances are rescaled into [0.1, 1] over the item's own neighbor set
    before inversion; equal distances give uniform weights.
    """
    d = np.asarray(distances, dtype=np.float64)
    if d.size == 0:
        return d
    lo = d.min()
    hi = d.max()
    if hi > lo:
        normalized = (d - lo) / (hi - lo) * 0.9 + 0.1
        inv = 1.0 / normalized
        return inv / inv.sum()
    return np.full(d.size, 1.0 / d.size)


class ProjectionSolver:
    """
    Control-point based multidimensional projection.

    Args:
        num_neighbors: Neighbors per item in the smoothness mesh
        iterations: Force Scheme sweeps over the control layout
        fraction_delta: Force Scheme damping
        tolerance: Optional early-stop error for the Force Scheme
    """

    def __init__(
        self,
        num_neighbors: int = 10,
        iterations: int = 50,
        fraction_delta: float = 0.8,
        tolerance: float = 0.0,
    ):
        if num_neighbors < 1:
            raise InvalidParameterError(f"num_neighbors must be >= 1, got {num_neighbors}")
        if iterations < 0:
            raise InvalidParameterError(f"iterations must be >= 0, got {iterations}")
        self.num_neighbors = num_neighbors
        self.iterations = iterations
        self.fraction_delta = fraction_delta
        self.tolerance = tolerance

    def layout_control_points(
        self, matrix: DistanceMatrix, control_points: Sequence[int]
    ) -> np.ndarray:
        """Steps 1-3: NNP followed by Force Scheme on the control points."""
        sub = matrix.submatrix(control_points)
        layout = NearestNeighborProjection().project(sub)
        force = ForceScheme(self.fraction_delta, len(control_points))
        force.relax(sub, layout, self.iterations, self.tolerance)
        return layout

    def project(
        self, matrix: DistanceMatrix, control_points: Sequence[int]
    ) -> Tuple[np.ndarray, NeighborTable]:
        """
        Project every item of *matrix* to 2D.

        Args:
            matrix: Full pairwise distances
            control_points: Distinct item indices anchoring the layout

        Returns:
            Tuple of:
            - coordinates: (n_items, 2) array; control points sit exactly at
              their relaxed control-layout positions
            - neighbor table after mesh repair

        Raises:
            InvalidParameterError: If control points are repeated or out of range,
                or num_neighbors > n_items - 1
            NumericalFailureError: If the normal equations are not positive definite
        """
        cps = [int(c) for c in control_points]
        if not cps:
            return np.zeros((0, 2), dtype=np.float64), []
        if len(set(cps)) != len(cps):
            raise InvalidParameterError(f"Control points must be distinct, got {cps}")

        n = matrix.element_count()
        cp_layout = self.layout_control_points(matrix, cps)

        if n == 1:
            return cp_layout.copy(), [[]]

        knn = KNNSearch(self.num_neighbors).execute(matrix)
        mesh = MeshConnectivityRepair().execute(knn, matrix)
        if len(reachable_from(mesh, 0)) != n:
            raise UnreachableError("Neighbor mesh is still disconnected after repair")

        coordinates = self._solve(mesh, n, cps, cp_layout)
        coordinates[cps] = cp_layout
        return coordinates, mesh

    @staticmethod
    def _build_system(
        mesh: NeighborTable, n: int, control_points: List[int], cp_layout: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Assemble A ((n - k) + k rows, n columns) and B (same rows, 2 columns)."""
        control_set = set(control_points)
        free = [i for i in range(n) if i not in control_set]
        n_rows = len(free) + len(control_points)

        A = np.zeros((n_rows, n), dtype=np.float64)
        B = np.zeros((n_rows, 2), dtype=np.float64)

        for row, i in enumerate(free):
            A[row, i] = 1.0
            weights = inverse_distance_weights([p.distance for p in mesh[i]])
            for p, w in zip(mesh[i], weights):
                A[row, p.index] -= w

        offset = len(free)
        for c, item in enumerate(control_points):
            A[offset + c, item] = 1.0
            B[offset + c] = cp_layout[c]

        return A, B

    def _solve(
        self, mesh: NeighborTable, n: int, control_points: List[int], cp_layout: np.ndarray
    ) -> np.ndarray:
        start = time.perf_counter()
        A, B = self._build_system(mesh, n, control_points, cp_layout)

        AtA = A.T @ A
        AtB = A.T @ B
        try:
            L = np.linalg.cholesky(AtA)
        except np.linalg.LinAlgError as e:
            raise NumericalFailureError(
                f"Normal equations are not positive definite (n={n}, "
                f"control points={len(control_points)}, neighbors={self.num_neighbors})"
            ) from e

        # numpy has no triangular solver; a general solve on L costs an extra
        # LU per substitution, which is negligible under max_items.
        X = np.empty((n, 2), dtype=np.float64)
        for col in range(2):
            y = np.linalg.solve(L, AtB[:, col])
            X[:, col] = np.linalg.solve(L.T, y)
        if not np.all(np.isfinite(X)):
            raise NumericalFailureError("Least-squares solve produced non-finite coordinates")

        logger.info(
            "Solving the %dx%d system took %.3fs", A.shape[0], A.shape[1], time.perf_counter() - start
        )
        return X
