"""
K-medoid (PAM-style) clustering over a precomputed distance matrix.

Medoids are real items, so they double as control points for the projection.
Initialization is pluggable: ``StripedInit`` is deterministic and the default,
``RandomInit`` draws distinct indices from a seeded generator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from ..exceptions import InvalidParameterError, UnreachableError
from ..utils.logging_config import get_logger
from .distance import DistanceMatrix

logger = get_logger(__name__)

Array2D = np.ndarray


@dataclass
class Cluster:
    """One partition cell; coordinates and neighbors are filled in after projection."""

    id: int
    members: List[int]
    medoid: int
    labels: List[str] = field(default_factory=list)
    label_features: List[int] = field(default_factory=list)
    coordinates: Optional[np.ndarray] = None
    neighbors: Optional[List[List[int]]] = None

    @property
    def size(self) -> int:
        return len(self.members)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "member_indices": list(self.members),
            "medoid_index": self.medoid,
            "labels": list(self.labels),
            "coordinates": None if self.coordinates is None else self.coordinates.tolist(),
            "neighbors": None if self.neighbors is None else [list(n) for n in self.neighbors],
        }


@dataclass
class ClusteringResult:
    """Result of a single medoid clustering run."""

    medoids: List[int]
    clusters: List[Cluster]
    assignments: np.ndarray
    n_iter: int = 0
    converged: bool = False


class InitPolicy(ABC):
    """Chooses the starting medoids and replacements for empty clusters."""

    @abstractmethod
    def initial_medoids(self, n: int, k: int) -> List[int]:
        """Return *k* medoid indices in ``[0, n)``."""

    @abstractmethod
    def reseed(self, n: int, used: Set[int]) -> int:
        """Return an index in ``[0, n)`` that is not in *used*."""


class StripedInit(InitPolicy):
    """``medoid[i] = i * (n // k)``; reseeds with the lowest unused index."""

    def initial_medoids(self, n: int, k: int) -> List[int]:
        step = n // k
        return [i * step for i in range(k)]

    def reseed(self, n: int, used: Set[int]) -> int:
        for i in range(n):
            if i not in used:
                return i
        raise UnreachableError("No unused index left to reseed an empty cluster")


class RandomInit(InitPolicy):
    """Distinct uniformly random medoids from a seeded generator."""

    def __init__(self, seed: Optional[int] = 0):
        self.rng = np.random.default_rng(seed)

    def initial_medoids(self, n: int, k: int) -> List[int]:
        return [int(i) for i in self.rng.choice(n, size=k, replace=False)]

    def reseed(self, n: int, used: Set[int]) -> int:
        unused = [i for i in range(n) if i not in used]
        if not unused:
            raise UnreachableError("No unused index left to reseed an empty cluster")
        return int(self.rng.choice(unused))


def make_init_policy(name: str, seed: Optional[int] = 0) -> InitPolicy:
    """Build an init policy from its config name ("striped" or "random")."""
    if name == "striped":
        return StripedInit()
    if name == "random":
        return RandomInit(seed)
    raise InvalidParameterError(f"Unknown init policy {name!r}; expected 'striped' or 'random'")


def extract_labels(
    features: Array2D,
    members: Sequence[int],
    label_count: int,
    terms: Optional[Sequence[str]] = None,
) -> Tuple[List[int], List[str]]:
    """
    Pick the highest-weighted feature dimensions of a cluster.

    Member vectors are summed into a centroid; the top *label_count*
    dimensions with positive weight are returned, ties broken by feature
    index order. Fewer labels come back when fewer dimensions are positive.

    Args:
        features: (n_items, n_features) matrix
        members: Item indices of the cluster
        label_count: Number of labels to return
        terms: Optional vocabulary aligned with the feature columns

    Returns:
        Tuple of (feature indices, label strings)
    """
    if label_count <= 0 or len(members) == 0:
        return [], []
    centroid = np.asarray(features, dtype=np.float64)[list(members)].sum(axis=0)
    order = np.argsort(-centroid, kind="stable")[:label_count]
    indices = [int(i) for i in order if centroid[i] > 0]
    if terms is not None:
        labels = [str(terms[i]) for i in indices]
    else:
        labels = [f"feature_{i}" for i in indices]
    return indices, labels


class MedoidClusterer:
    """
    PAM-style clustering with real-item medoids.

    Instances hold configuration only; every ``cluster`` call works on local
    state and returns a fresh ``ClusteringResult``.

    Args:
        init_policy: Initialization strategy (default: StripedInit)
        tie_tolerance: Distances within this tolerance of the nearest medoid
            count as ties; 0.0 only treats bit-exact equality as a tie
        label_count: Number of label terms per cluster
    """

    def __init__(
        self,
        init_policy: Optional[InitPolicy] = None,
        *,
        tie_tolerance: float = 0.0,
        label_count: int = 3,
    ):
        if tie_tolerance < 0:
            raise InvalidParameterError(f"tie_tolerance must be >= 0, got {tie_tolerance}")
        self.init_policy = init_policy or StripedInit()
        self.tie_tolerance = tie_tolerance
        self.label_count = label_count

    def cluster(
        self,
        matrix: DistanceMatrix,
        k: int,
        max_iterations: int = 15,
        *,
        features: Optional[Array2D] = None,
        terms: Optional[Sequence[str]] = None,
    ) -> ClusteringResult:
        """
        Partition the items of *matrix* into *k* clusters.

        Args:
            matrix: Pairwise distances
            k: Number of clusters, 1 <= k <= N
            max_iterations: Maximum assignment/update passes (capped at N)
            features: Optional feature matrix used for labels
            terms: Optional vocabulary for the feature columns

        Returns:
            ClusteringResult with k medoids and k non-empty clusters

        Raises:
            InvalidParameterError: If k is out of range
        """
        n = matrix.element_count()
        if k < 1:
            raise InvalidParameterError(f"k must be >= 1, got {k}")
        if k > n:
            raise InvalidParameterError(f"k ({k}) cannot exceed number of items ({n})")
        if max_iterations < 1:
            raise InvalidParameterError(f"max_iterations must be >= 1, got {max_iterations}")
        if features is not None and np.asarray(features).shape[0] != n:
            raise InvalidParameterError(
                f"features has {np.asarray(features).shape[0]} rows, expected {n}"
            )

        D = matrix.as_array()
        limit = min(max_iterations, n)
        medoids = [int(m) for m in self.init_policy.initial_medoids(n, k)]

        n_iter = 0
        converged = False
        while True:
            members = self._assign(D, medoids)
            n_iter += 1

            empty = [c for c, idx in enumerate(members) if not idx]
            if empty:
                used = set(medoids)
                for c in empty:
                    replacement = self.init_policy.reseed(n, used)
                    logger.debug("Cluster %d empty; reseeding medoid %d -> %d", c, medoids[c], replacement)
                    medoids[c] = replacement
                    used.add(replacement)
                continue

            new_medoids = self._update(D, members)
            changed = new_medoids != medoids
            medoids = new_medoids
            if not changed:
                converged = True
                break
            if n_iter >= limit:
                break

        logger.debug("Medoid clustering: k=%d n=%d passes=%d converged=%s", k, n, n_iter, converged)

        assignments = np.empty(n, dtype=int)
        clusters: List[Cluster] = []
        for c, idx in enumerate(members):
            if medoids[c] not in idx:
                raise UnreachableError(f"Medoid {medoids[c]} is not a member of cluster {c}")
            assignments[idx] = c
            label_features: List[int] = []
            labels: List[str] = []
            if features is not None:
                label_features, labels = extract_labels(features, idx, self.label_count, terms)
            clusters.append(
                Cluster(
                    id=c,
                    members=list(idx),
                    medoid=medoids[c],
                    labels=labels,
                    label_features=label_features,
                )
            )

        return ClusteringResult(
            medoids=list(medoids),
            clusters=clusters,
            assignments=assignments,
            n_iter=n_iter,
            converged=converged,
        )

    def _assign(self, D: np.ndarray, medoids: List[int]) -> List[List[int]]:
        """Assign every item to its nearest medoid; medoids stay in their own cluster."""
        n = D.shape[0]
        members: List[List[int]] = [[] for _ in medoids]
        owner: Dict[int, int] = {}
        for c, m in enumerate(medoids):
            if m not in owner:
                owner[m] = c
                members[c].append(m)

        med = np.asarray(medoids, dtype=int)
        for point in range(n):
            if point in owner:
                continue
            dists = D[point, med]
            best = dists.min()
            candidates = np.flatnonzero(dists <= best + self.tie_tolerance)
            # Prefer the cluster with fewer members, then the lower id
            chosen = min((int(c) for c in candidates), key=lambda c: (len(members[c]), c))
            members[chosen].append(point)

        return [sorted(idx) for idx in members]

    @staticmethod
    def _update(D: np.ndarray, members: List[List[int]]) -> List[int]:
        """Return the true medoid (minimum mean intra-cluster distance) of each cluster."""
        medoids = []
        for idx in members:
            sub = D[np.ix_(idx, idx)]
            mean_dist = sub.sum(axis=1) / len(idx)
            medoids.append(int(idx[int(np.argmin(mean_dist))]))
        return medoids
