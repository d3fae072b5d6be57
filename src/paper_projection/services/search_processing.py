"""
Search-result processing: clusters, labels and a 2D map for one query.

Wires the algorithm stages together for a single request. A new
``SearchProcessor`` (or at least a new ``process`` call) is used per query;
nothing is cached between calls.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..algorithms.clustering import Cluster, MedoidClusterer, make_init_policy
from ..algorithms.distance import DistanceMatrix, DistanceMeasure, get_distance_measure
from ..algorithms.neighbors import neighbor_indices
from ..algorithms.projection import ProjectionSolver
from ..config import ProjectionConfig
from ..exceptions import InvalidParameterError, NumericalFailureError, UnreachableError
from ..utils.logging_config import get_logger
from .term_matrix import build_term_matrix

logger = get_logger(__name__)

Array2D = np.ndarray


@dataclass
class SearchProcessingResult:
    """Clusters plus per-item layout for one search request."""

    clusters: List[Cluster]
    medoids: List[int]
    coordinates: Optional[np.ndarray]
    neighbors: Optional[List[List[int]]]
    n_items: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_layout(self) -> bool:
        return self.coordinates is not None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable view for the rendering layer."""
        return {
            "n_items": self.n_items,
            "medoids": list(self.medoids),
            "clusters": [c.to_dict() for c in self.clusters],
            "coordinates": None if self.coordinates is None else self.coordinates.tolist(),
            "neighbors": self.neighbors,
            "metadata": dict(self.metadata),
        }

    def to_dataframe(self) -> pd.DataFrame:
        """One row per item: index, x, y, cluster, is_medoid, labels, neighbors."""
        rows: List[Dict[str, Any]] = []
        medoid_set = set(self.medoids)
        for cluster in self.clusters:
            for pos, item in enumerate(cluster.members):
                has_xy = self.coordinates is not None
                rows.append(
                    {
                        "index": item,
                        "x": float(self.coordinates[item, 0]) if has_xy else np.nan,
                        "y": float(self.coordinates[item, 1]) if has_xy else np.nan,
                        "cluster": cluster.id,
                        "is_medoid": item in medoid_set,
                        "labels": ", ".join(cluster.labels),
                        "neighbors": list(cluster.neighbors[pos]) if cluster.neighbors else [],
                    }
                )
        columns = ["index", "x", "y", "cluster", "is_medoid", "labels", "neighbors"]
        df = pd.DataFrame(rows, columns=columns)
        return df.sort_values("index").reset_index(drop=True)


class SearchProcessor:
    """
    Run clustering and projection over the hits of one search.

    Args:
        config: Run parameters (defaults to ProjectionConfig())
        distance_measure: Overrides ``config.distance_measure`` when given
    """

    def __init__(
        self,
        config: Optional[ProjectionConfig] = None,
        distance_measure: Optional[DistanceMeasure] = None,
    ):
        self.config = config or ProjectionConfig()
        self.distance_measure = distance_measure or get_distance_measure(self.config.distance_measure)

    def process_documents(
        self, texts: Sequence[str], *, weighting: str = "tfidf"
    ) -> SearchProcessingResult:
        """Vectorize *texts* into term features, then ``process`` them."""
        if len(texts) == 0:
            return self._empty_result()
        term_matrix = build_term_matrix(texts, weighting=weighting)
        return self.process(term_matrix.features, terms=term_matrix.terms)

    def process(
        self, features: Array2D, terms: Optional[Sequence[str]] = None
    ) -> SearchProcessingResult:
        """
        Cluster and project one result set.

        Args:
            features: (n_items, n_features) feature matrix
            terms: Optional vocabulary for the feature columns (cluster labels)

        Returns:
            SearchProcessingResult

        Raises:
            InvalidParameterError: If features are malformed or exceed max_items
            NumericalFailureError: If the layout cannot be solved and
                allow_missing_layout is False
        """
        X = np.asarray(features, dtype=np.float64)
        if X.ndim != 2:
            raise InvalidParameterError(f"features must be 2D (n_items, n_features), got {X.shape}")
        if terms is not None and len(terms) != X.shape[1]:
            raise InvalidParameterError(
                f"terms has {len(terms)} entries but features has {X.shape[1]} columns"
            )
        n = X.shape[0]
        if n == 0:
            return self._empty_result()
        if n > self.config.max_items:
            raise InvalidParameterError(
                f"{n} items exceed max_items ({self.config.max_items}); cap the result set first"
            )

        matrix = DistanceMatrix.from_features(X, self.distance_measure)
        return self.process_matrix(matrix, features=X, terms=terms)

    def process_matrix(
        self,
        matrix: DistanceMatrix,
        *,
        features: Optional[Array2D] = None,
        terms: Optional[Sequence[str]] = None,
    ) -> SearchProcessingResult:
        """Cluster and project from an already built distance matrix."""
        cfg = self.config
        n = matrix.element_count()
        if n == 0:
            return self._empty_result()
        start = time.perf_counter()

        k = cfg.num_clusters
        if k > n:
            logger.warning("num_clusters=%d exceeds %d items; using %d clusters", k, n, n)
            k = n

        clusterer = MedoidClusterer(
            make_init_policy(cfg.init_policy, cfg.seed),
            tie_tolerance=cfg.tie_tolerance,
            label_count=cfg.label_count,
        )
        clustering = clusterer.cluster(matrix, k, cfg.max_iterations, features=features, terms=terms)

        coordinates, neighbors, used_neighbors = self._project(matrix, clustering.medoids)

        if coordinates is not None:
            for cluster in clustering.clusters:
                cluster.coordinates = coordinates[cluster.members].copy()
                cluster.neighbors = [list(neighbors[m]) for m in cluster.members]

        clusters = sorted(clustering.clusters, key=lambda c: (-c.size, c.labels, c.id))
        elapsed = time.perf_counter() - start
        logger.info(
            "Processed %d items into %d clusters in %.3fs (layout=%s)",
            n, k, elapsed, coordinates is not None,
        )
        return SearchProcessingResult(
            clusters=clusters,
            medoids=clustering.medoids,
            coordinates=coordinates,
            neighbors=neighbors,
            n_items=n,
            metadata={
                "num_clusters": k,
                "clustering_iterations": clustering.n_iter,
                "clustering_converged": clustering.converged,
                "num_neighbors": used_neighbors,
                "distance_measure": self.distance_measure.name,
                "elapsed_s": elapsed,
            },
        )

    def _project(self, matrix: DistanceMatrix, control_points: List[int]):
        """Solve the layout, retrying with a doubled neighbor count on numerical failure."""
        cfg = self.config
        n = matrix.element_count()
        num_neighbors = max(1, min(cfg.num_neighbors, n - 1))

        for attempt in range(cfg.solve_retries + 1):
            solver = ProjectionSolver(
                num_neighbors=num_neighbors,
                iterations=cfg.force_iterations,
                fraction_delta=cfg.fraction_delta,
                tolerance=cfg.force_tolerance,
            )
            try:
                coordinates, mesh = solver.project(matrix, control_points)
                return coordinates, neighbor_indices(mesh), num_neighbors
            except NumericalFailureError as e:
                wider = min(num_neighbors * 2, n - 1)
                if attempt < cfg.solve_retries and wider > num_neighbors:
                    logger.warning(
                        "Layout solve failed with %d neighbors; retrying with %d", num_neighbors, wider
                    )
                    num_neighbors = wider
                    continue
                if cfg.allow_missing_layout:
                    logger.warning("Layout solve failed; returning clusters without coordinates: %s", e)
                    return None, None, num_neighbors
                raise

        raise UnreachableError("Layout retry loop exited without a result")

    @staticmethod
    def _empty_result() -> SearchProcessingResult:
        return SearchProcessingResult(
            clusters=[],
            medoids=[],
            coordinates=np.zeros((0, 2), dtype=np.float64),
            neighbors=[],
            n_items=0,
        )
