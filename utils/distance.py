"""
Pairwise dissimilarity utilities.

This module provides the distance matrix consumed by the medoid algorithms.
Observations are compared with the Euclidean distance; user supplied
(precomputed) matrices are validated before use.

References
----------
[1] SciPy documentation, "scipy.spatial.distance.pdist" and "squareform".
"""

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform
from typing import Union


def calculate_distance_matrix(X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
    """
    Computes the Euclidean distance between every pair of observations.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        The observations. A 1-D input is treated as a single feature.

    Returns
    -------
    np.ndarray
        Symmetric (n_samples, n_samples) matrix with a zero diagonal.
    """
    if isinstance(X, pd.DataFrame):
        X = X.values
    X = np.asarray(X, dtype=float)

    if X.ndim == 1:
        X = X.reshape(-1, 1)

    # pdist returns the condensed (upper triangular) form, squareform expands it
    return squareform(pdist(X, metric='euclidean'))


def check_distance_matrix(D: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
    """
    Validates a precomputed dissimilarity matrix.

    Symmetry is not enforced, so hand-written matrices with small
    asymmetries are accepted as given.

    Parameters
    ----------
    D : array-like of shape (n_samples, n_samples)
        The dissimilarity matrix.

    Returns
    -------
    np.ndarray
        The matrix as a float array.

    Raises
    ------
    ValueError
        If the matrix is not square, contains non-finite values or
        negative entries.
    """
    if isinstance(D, pd.DataFrame):
        D = D.values
    D = np.asarray(D, dtype=float)

    if D.ndim != 2 or D.shape[0] != D.shape[1]:
        raise ValueError(f"Precomputed distance matrix must be square, got shape {D.shape}.")
    if not np.all(np.isfinite(D)):
        raise ValueError("Precomputed distance matrix contains NaN or infinite values.")
    if np.any(D < 0):
        raise ValueError("Precomputed distance matrix contains negative values.")

    return D
