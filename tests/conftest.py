"""
Pytest configuration and shared fixtures.

This file is automatically discovered by pytest and provides fixtures
available to all test modules.
"""

import numpy as np
import pytest

from paper_projection.algorithms.distance import DistanceMatrix, EuclideanDistance


@pytest.fixture
def euclidean_matrix():
    """
    Fixture factory building a Euclidean DistanceMatrix from feature rows.

    Usage:
        matrix = euclidean_matrix([[0, 0], [1, 0]])
    """
    def _build(points):
        return DistanceMatrix.from_features(np.asarray(points, dtype=np.float64), EuclideanDistance())

    return _build


@pytest.fixture
def two_blobs():
    """
    Two well-separated 2D blobs of 5 points each, interleaved A, B, A, B, ...

    Returns (features, indices of blob A, indices of blob B).
    """
    rng = np.random.default_rng(7)
    blob_a = rng.normal(loc=(0.0, 0.0), scale=0.3, size=(5, 2))
    blob_b = rng.normal(loc=(10.0, 10.0), scale=0.3, size=(5, 2))
    features = np.empty((10, 2))
    features[0::2] = blob_a
    features[1::2] = blob_b
    return features, [0, 2, 4, 6, 8], [1, 3, 5, 7, 9]


@pytest.fixture
def unit_square():
    """Corners of the unit square, walked around the perimeter."""
    return np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])


@pytest.fixture
def topic_documents():
    """Six short abstracts on two unrelated topics (three each)."""
    return [
        "Deep neural network training with gradient descent for image recognition",
        "Neural network architectures and gradient descent for deep image recognition",
        "Training deep neural network models for image recognition benchmarks",
        "Protein folding simulation with molecular dynamics in cell biology",
        "Molecular dynamics of protein folding and cell biology experiments",
        "Cell biology insights from protein folding molecular dynamics",
    ]
