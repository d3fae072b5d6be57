"""
Tests for k-nearest-neighbor search and mesh connectivity repair.
"""

import numpy as np
import pytest

from paper_projection.algorithms.distance import DistanceMatrix, EuclideanDistance
from paper_projection.algorithms.neighbors import (
    KNNSearch,
    MeshConnectivityRepair,
    Pair,
    neighbor_indices,
    reachable_from,
)
from paper_projection.exceptions import InvalidParameterError


def test_knn_counts_and_order():
    """Exactly k entries per item, ascending distance, never itself."""
    rng = np.random.default_rng(5)
    matrix = DistanceMatrix.from_features(rng.standard_normal((15, 3)), EuclideanDistance())
    table = KNNSearch(4).execute(matrix)

    assert len(table) == 15
    for i, row in enumerate(table):
        assert len(row) == 4
        dists = [p.distance for p in row]
        assert dists == sorted(dists)
        assert i not in [p.index for p in row]
        for p in row:
            assert p.distance == matrix.get(i, p.index)


def test_knn_collinear(euclidean_matrix):
    """Points on a line: both adjacent items first, then the nearer item two away."""
    matrix = euclidean_matrix([[float(x)] for x in range(6)])
    table = neighbor_indices(KNNSearch(3).execute(matrix))

    assert table[0] == [1, 2, 3]
    assert table[1] == [0, 2, 3]
    assert table[2] == [1, 3, 0]
    assert table[3] == [2, 4, 1]
    assert table[4] == [3, 5, 2]
    assert table[5] == [4, 3, 2]


def test_knn_k_equals_n_minus_one(euclidean_matrix):
    matrix = euclidean_matrix([[0.0], [1.0], [3.0]])
    table = KNNSearch(2).execute(matrix)
    assert neighbor_indices(table) == [[1, 2], [0, 2], [1, 0]]


def test_knn_invalid_k(euclidean_matrix):
    matrix = euclidean_matrix([[0.0], [1.0], [3.0]])

    with pytest.raises(InvalidParameterError, match="bigger than the number of items"):
        KNNSearch(3).execute(matrix)
    with pytest.raises(InvalidParameterError, match=">= 1"):
        KNNSearch(0)


def test_pair_ordering():
    assert Pair(3, 1.0) < Pair(0, 2.0)
    assert not Pair(0, 2.0) < Pair(3, 1.0)


def test_reachable_from():
    table = [[Pair(1, 1.0)], [Pair(0, 1.0)], [Pair(0, 5.0)]]
    assert reachable_from(table, 0) == {0, 1}
    assert reachable_from(table, 2) == {0, 1, 2}
    assert reachable_from([], 0) == set()


def test_mesh_repair_links_components(euclidean_matrix):
    """Two far pairs: one mutual edge from the first unvisited item to its nearest visited item."""
    matrix = euclidean_matrix([[0.0], [1.0], [100.0], [101.0]])
    knn = KNNSearch(1).execute(matrix)
    assert reachable_from(knn, 0) == {0, 1}

    mesh = MeshConnectivityRepair().execute(knn, matrix)

    assert reachable_from(mesh, 0) == {0, 1, 2, 3}
    assert mesh[2][-1] == Pair(1, 99.0)
    assert mesh[1][-1] == Pair(2, 99.0)
    # input table untouched
    assert len(knn[1]) == 1
    assert len(knn[2]) == 1


def test_mesh_repair_many_components(euclidean_matrix):
    points = [[0.0], [0.5], [50.0], [50.5], [120.0], [120.5], [300.0], [300.5]]
    matrix = euclidean_matrix(points)
    mesh = MeshConnectivityRepair().execute(KNNSearch(1).execute(matrix), matrix)

    assert reachable_from(mesh, 0) == set(range(len(points)))
    # one mutual edge per extra component
    assert sum(len(row) for row in mesh) == len(points) + 2 * 3


def test_mesh_repair_connected_is_unchanged(euclidean_matrix):
    matrix = euclidean_matrix([[float(x)] for x in range(5)])
    knn = KNNSearch(2).execute(matrix)
    mesh = MeshConnectivityRepair().execute(knn, matrix)

    assert mesh == knn


def test_mesh_repair_size_mismatch(euclidean_matrix):
    matrix = euclidean_matrix([[0.0], [1.0], [2.0]])
    with pytest.raises(InvalidParameterError, match="rows"):
        MeshConnectivityRepair().execute([[Pair(1, 1.0)], [Pair(0, 1.0)]], matrix)


def test_mesh_repair_does_not_duplicate_existing_edge(euclidean_matrix):
    """Item 4 already points at its nearest visited item; only the reverse edge is added."""
    matrix = euclidean_matrix([[0.0], [0.1], [5.0], [5.05], [5.2]])
    mesh = MeshConnectivityRepair().execute(KNNSearch(1).execute(matrix), matrix)
    table = neighbor_indices(mesh)

    assert table[4] == [3]
    assert table[3] == [2, 4]
    assert reachable_from(mesh, 0) == set(range(5))
