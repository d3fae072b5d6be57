"""
Tests for medoid clustering (PAM), init policies and label extraction.
"""

import numpy as np
import pytest

from paper_projection.algorithms.clustering import (
    MedoidClusterer,
    RandomInit,
    StripedInit,
    extract_labels,
    make_init_policy,
)
from paper_projection.algorithms.distance import DistanceMatrix, EuclideanDistance
from paper_projection.exceptions import InvalidParameterError


class DuplicateInit(StripedInit):
    """Init policy that hands out the same medoid for every cluster."""

    def initial_medoids(self, n, k):
        return [0] * k


# ============================================================================
# Init policies
# ============================================================================


def test_striped_init():
    """Medoid i starts at i * (N // k)."""
    assert StripedInit().initial_medoids(10, 3) == [0, 3, 6]
    assert StripedInit().initial_medoids(4, 4) == [0, 1, 2, 3]


def test_striped_reseed_takes_lowest_unused():
    assert StripedInit().reseed(5, {0, 1, 3}) == 2


def test_random_init_is_distinct_and_seeded():
    a = RandomInit(seed=3).initial_medoids(20, 6)
    b = RandomInit(seed=3).initial_medoids(20, 6)
    assert a == b
    assert len(set(a)) == 6
    assert all(0 <= m < 20 for m in a)


def test_random_reseed_avoids_used():
    policy = RandomInit(seed=1)
    used = {0, 1, 2, 3}
    assert policy.reseed(5, used) == 4


def test_make_init_policy():
    assert isinstance(make_init_policy("striped"), StripedInit)
    assert isinstance(make_init_policy("random", 5), RandomInit)
    with pytest.raises(InvalidParameterError, match="Unknown init policy"):
        make_init_policy("kmeans++")


# ============================================================================
# Clustering
# ============================================================================


@pytest.mark.parametrize("policy", [StripedInit(), RandomInit(seed=0), RandomInit(seed=11)])
def test_two_blobs(two_blobs, euclidean_matrix, policy):
    """Interleaved blobs are separated whatever the starting medoids."""
    X, blob_a, blob_b = two_blobs
    result = MedoidClusterer(policy).cluster(euclidean_matrix(X), k=2)

    partition = {frozenset(c.members) for c in result.clusters}
    assert partition == {frozenset(blob_a), frozenset(blob_b)}
    assert result.converged


@pytest.mark.parametrize("k", [1, 2, 5, 9])
def test_cluster_invariants(k):
    """k medoids, k non-empty clusters, every item exactly once, medoid in its cluster."""
    rng = np.random.default_rng(42)
    X = rng.standard_normal((9, 3))
    matrix = DistanceMatrix.from_features(X, EuclideanDistance())
    result = MedoidClusterer().cluster(matrix, k)

    assert len(result.medoids) == k
    assert len(result.clusters) == k
    assert len(set(result.medoids)) == k
    all_members = sorted(m for c in result.clusters for m in c.members)
    assert all_members == list(range(9))
    for c in result.clusters:
        assert c.size > 0
        assert c.medoid in c.members
        assert c.members == sorted(c.members)
        np.testing.assert_array_equal(result.assignments[c.members], c.id)


def test_clustering_is_deterministic(two_blobs, euclidean_matrix):
    X, _, _ = two_blobs
    matrix = euclidean_matrix(X)
    r1 = MedoidClusterer().cluster(matrix, 3)
    r2 = MedoidClusterer().cluster(matrix, 3)

    assert r1.medoids == r2.medoids
    assert [c.members for c in r1.clusters] == [c.members for c in r2.clusters]
    np.testing.assert_array_equal(r1.assignments, r2.assignments)


def test_duplicate_initial_medoids_still_fill_every_cluster(two_blobs, euclidean_matrix):
    X, _, _ = two_blobs
    result = MedoidClusterer(DuplicateInit()).cluster(euclidean_matrix(X), 3)

    assert len(set(result.medoids)) == 3
    assert all(c.size > 0 for c in result.clusters)


def test_k_equals_n_gives_singletons(euclidean_matrix):
    matrix = euclidean_matrix([[0.0], [1.0], [5.0]])
    result = MedoidClusterer().cluster(matrix, 3)

    assert sorted(result.medoids) == [0, 1, 2]
    assert all(c.size == 1 for c in result.clusters)


def test_exact_tie_goes_to_smaller_cluster(euclidean_matrix):
    """Item 3 is exactly 2 from both medoids; the cluster with fewer members wins."""
    matrix = euclidean_matrix([[0.0], [-1.0], [4.0], [2.0]])
    result = MedoidClusterer().cluster(matrix, 2)

    assert result.medoids == [0, 2]
    np.testing.assert_array_equal(result.assignments, [0, 0, 1, 1])


def test_exact_tie_between_equal_sizes_goes_to_lower_id(euclidean_matrix):
    matrix = euclidean_matrix([[0.0], [2.0], [1.0]])
    result = MedoidClusterer().cluster(matrix, 2)

    np.testing.assert_array_equal(result.assignments, [0, 1, 0])


def test_tie_tolerance_widens_ties(euclidean_matrix):
    """A near tie is only a tie when tie_tolerance covers the gap."""
    points = [[0.0], [-1.0], [4.0], [1.9999999]]

    strict = MedoidClusterer().cluster(euclidean_matrix(points), 2)
    np.testing.assert_array_equal(strict.assignments, [0, 0, 1, 0])

    loose = MedoidClusterer(tie_tolerance=1e-3).cluster(euclidean_matrix(points), 2)
    np.testing.assert_array_equal(loose.assignments, [0, 0, 1, 1])


def test_invalid_k(euclidean_matrix):
    matrix = euclidean_matrix([[0.0], [1.0], [2.0]])

    with pytest.raises(InvalidParameterError, match="k must be >= 1"):
        MedoidClusterer().cluster(matrix, 0)
    with pytest.raises(ValueError, match="cannot exceed"):
        MedoidClusterer().cluster(matrix, 4)


def test_invalid_arguments(euclidean_matrix):
    matrix = euclidean_matrix([[0.0], [1.0], [2.0]])

    with pytest.raises(InvalidParameterError, match="max_iterations"):
        MedoidClusterer().cluster(matrix, 2, max_iterations=0)
    with pytest.raises(InvalidParameterError, match="rows"):
        MedoidClusterer().cluster(matrix, 2, features=np.zeros((2, 2)))
    with pytest.raises(InvalidParameterError, match="tie_tolerance"):
        MedoidClusterer(tie_tolerance=-1.0)


def test_iteration_cap():
    """Never more passes than max_iterations."""
    rng = np.random.default_rng(3)
    X = rng.standard_normal((30, 2))
    matrix = DistanceMatrix.from_features(X, EuclideanDistance())
    result = MedoidClusterer().cluster(matrix, 6, max_iterations=1)

    assert result.n_iter == 1
    assert len(result.clusters) == 6


# ============================================================================
# Labels
# ============================================================================


def test_extract_labels_with_terms():
    features = np.array([[1.0, 0.0, 3.0], [0.0, 2.0, 3.0]])
    indices, labels = extract_labels(features, [0, 1], 2, terms=["a", "b", "c"])

    assert indices == [2, 1]
    assert labels == ["c", "b"]


def test_extract_labels_ties_and_fallback_names():
    indices, labels = extract_labels(np.array([[1.0, 1.0, 0.0]]), [0], 2)

    assert indices == [0, 1]
    assert labels == ["feature_0", "feature_1"]


def test_extract_labels_skips_zero_weight_terms():
    """Terms absent from every member are never labels."""
    features = np.array([[0.0, 0.0, 1.0, 2.0], [0.0, 0.0, 3.0, 0.0]])
    indices, labels = extract_labels(features, [0, 1], 3, terms=["alpha", "beta", "gamma", "delta"])

    assert indices == [2, 3]
    assert labels == ["gamma", "delta"]


def test_extract_labels_empty():
    assert extract_labels(np.ones((2, 2)), [0], 0) == ([], [])


def test_cluster_labels_attached(euclidean_matrix):
    features = np.array([[5.0, 0.0], [4.0, 0.0], [0.0, 5.0], [0.0, 4.0]])
    result = MedoidClusterer(label_count=1).cluster(
        euclidean_matrix(features), 2, features=features, terms=["genes", "graphs"]
    )

    by_medoid = {c.medoid: c for c in result.clusters}
    assert by_medoid[0].labels == ["genes"]
    assert by_medoid[2].labels == ["graphs"]
    assert by_medoid[0].to_dict()["medoid_index"] == 0
