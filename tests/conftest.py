"""
Pytest fixtures for the medoid clustering tests.
"""

import numpy as np
import pytest


@pytest.fixture
def two_block_distances():
    """Two tight pairs {0, 1} and {2, 3}, with an asymmetric [3][2] entry."""
    return np.array([
        [0, 1, 9, 9],
        [1, 0, 9, 9],
        [9, 9, 0, 1],
        [9, 9, 9, 0],
    ], dtype=float)


@pytest.fixture
def equal_distances():
    """Five objects all at distance 1 from each other."""
    D = np.ones((5, 5))
    np.fill_diagonal(D, 0.0)
    return D


@pytest.fixture
def blobs():
    """Three well separated 2-D blobs of 10 points each."""
    rng = np.random.RandomState(0)
    centers = np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 10.0]])
    X = np.vstack([c + rng.randn(10, 2) * 0.3 for c in centers])
    y = np.repeat(np.arange(3), 10)
    return X, y


@pytest.fixture
def random_points():
    rng = np.random.RandomState(7)
    return rng.rand(25, 3)
