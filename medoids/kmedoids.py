"""
K-Medoids Estimator.

This module wraps the PAM algorithm in the same fit / predict interface
as the other clustering estimators of the project, so that it can be
plugged into the experiment runners unchanged.

References
----------
[1] Kaufman, L., Rousseeuw, P.J., "Finding Groups in Data: An Introduction
    to Cluster Analysis", 1990, Wiley, Chapter 2.
"""

import numpy as np
import pandas as pd
from scipy.spatial.distance import cdist
from typing import Union

from medoids.pam import partition
from utils.clustering_metrics import labels_from_classification


class KMedoids:
    """
    K-Medoids clustering using Partitioning Around Medoids (PAM).

    The algorithm is deterministic: the BUILD phase selects the initial
    medoids greedily, so there is no random_state.

    Parameters
    ----------
    n_clusters : int
        The number of clusters (medoids) to find. Must be at least 2.
    metric : str, default='euclidean'
        - 'euclidean': X holds observations, compared with the L2 distance.
        - 'precomputed': X is already an (n_samples, n_samples) dissimilarity
          matrix.
    verbose : bool, default=False
        If True, prints the progress of the BUILD and SWAP phases.
    """

    def __init__(
        self,
        n_clusters: int,
        metric: str = 'euclidean',
        verbose: bool = False
    ):
        self.n_clusters = n_clusters
        self.metric = metric
        self.verbose = verbose

        self.medoid_indices_ = None
        self.cluster_centers_ = None
        self.classification_ = None
        self.labels_ = None
        self.inertia_ = None
        self.n_swaps_ = None

        if self.metric not in ['euclidean', 'precomputed']:
            raise ValueError(f"Metric '{self.metric}' not supported.")

    def fit(self, X: Union[np.ndarray, pd.DataFrame]):
        """
        Fit the K-Medoids model to the data.

        Parameters
        ----------
        X : array-like
            Observations of shape (n_samples, n_features), or a distance
            matrix of shape (n_samples, n_samples) if metric='precomputed'.

        Returns
        -------
        self
        """
        if isinstance(X, pd.DataFrame):
            X = X.values
        X = np.asarray(X, dtype=float)
        if self.metric == 'euclidean' and X.ndim == 1:
            X = X.reshape(-1, 1)

        result = partition(self.n_clusters, X, metric=self.metric, verbose=self.verbose)

        self.medoid_indices_ = np.array(sorted(result.medoids), dtype=int)
        self.classification_ = np.array(result.classification, dtype=int)
        self.labels_ = labels_from_classification(self.classification_)
        self.inertia_ = result.total_dissimilarity
        self.n_swaps_ = result.n_swaps

        if self.metric == 'euclidean':
            self.cluster_centers_ = X[self.medoid_indices_].copy()
        else:
            self.cluster_centers_ = None

        return self

    def predict(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """
        Assign each sample in X to its nearest medoid.

        Parameters
        ----------
        X : array-like
            New observations of shape (n_query, n_features), or a distance
            matrix of shape (n_query, n_train) to the training objects if
            metric='precomputed'.

        Returns
        -------
        np.ndarray
            Cluster labels in 0..n_clusters-1, ordered as ``medoid_indices_``.
        """
        if self.medoid_indices_ is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")

        if isinstance(X, pd.DataFrame):
            X = X.values
        X = np.asarray(X, dtype=float)

        if self.metric == 'euclidean':
            if X.ndim == 1:
                X = X.reshape(-1, 1)
            distances = cdist(X, self.cluster_centers_, metric='euclidean')
        else:
            if X.ndim != 2 or X.shape[1] != self.classification_.shape[0]:
                raise ValueError(
                    f"Expected distances to the {self.classification_.shape[0]} "
                    f"training objects, got shape {X.shape}."
                )
            if np.any(X < 0) or not np.all(np.isfinite(X)):
                raise ValueError("Precomputed distances must be finite and non-negative.")
            distances = X[:, self.medoid_indices_]

        return np.argmin(distances, axis=1)

    def fit_predict(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """
        Fit the model and return cluster labels.

        Parameters
        ----------
        X : array-like
            Training data.

        Returns
        -------
        np.ndarray
            Cluster labels of the training objects.
        """
        self.fit(X)
        return self.labels_
