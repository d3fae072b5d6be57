"""
Algorithm Core Library - clustering and multidimensional projection.

This package holds the numerical engine behind the search-result map: the
distance matrix, k-medoid clustering, neighbor search with mesh repair, NNP
placement, Force Scheme relaxation and the least-squares projection solver.
"""

from .distance import (
    DistanceMeasure,
    EuclideanDistance,
    CosineDistance,
    DistanceMatrix,
    get_distance_measure,
)
from .clustering import (
    Cluster,
    ClusteringResult,
    InitPolicy,
    StripedInit,
    RandomInit,
    MedoidClusterer,
    extract_labels,
    make_init_policy,
)
from .neighbors import (
    Pair,
    NeighborTable,
    KNNSearch,
    MeshConnectivityRepair,
    neighbor_indices,
    reachable_from,
)
from .nnp import NearestNeighborProjection, intersect_circles, normalize_2d
from .force_scheme import ForceScheme, stride_permutation
from .projection import ProjectionSolver, inverse_distance_weights

__all__ = [
    # Distances
    "DistanceMeasure",
    "EuclideanDistance",
    "CosineDistance",
    "DistanceMatrix",
    "get_distance_measure",
    # Clustering
    "Cluster",
    "ClusteringResult",
    "InitPolicy",
    "StripedInit",
    "RandomInit",
    "MedoidClusterer",
    "extract_labels",
    "make_init_policy",
    # Neighbors
    "Pair",
    "NeighborTable",
    "KNNSearch",
    "MeshConnectivityRepair",
    "neighbor_indices",
    "reachable_from",
    # Projection
    "NearestNeighborProjection",
    "intersect_circles",
    "normalize_2d",
    "ForceScheme",
    "stride_permutation",
    "ProjectionSolver",
    "inverse_distance_weights",
]
