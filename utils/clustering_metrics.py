"""
Clustering validation metrics for medoid partitions.

This module turns a medoid classification into conventional cluster labels
and evaluates it. The internal index (Silhouette) works directly on the
dissimilarity matrix, so it applies to precomputed inputs as well. External
indexes (ARI, Purity) are added when ground truth labels are available.

References
----------
[1] Rousseeuw, P.J., "Silhouettes: a graphical aid to the interpretation and
    validation of cluster analysis", 1987, Journal of Computational and
    Applied Mathematics, 20, pp. 53-65.
[2] Hubert, L., Arabie, P., "Comparing partitions", 1985, Journal of
    Classification, 2(1), pp. 193-218.
"""

import numpy as np
from sklearn.metrics import (
    adjusted_rand_score,
    confusion_matrix,
    silhouette_score,
)
from typing import Dict, Optional, Sequence, Union


def labels_from_classification(classification: Union[np.ndarray, Sequence[int]]) -> np.ndarray:
    """
    Converts medoid indices into contiguous cluster labels.

    The medoid with the smallest object index becomes label 0, the next one
    label 1, and so on.

    Parameters
    ----------
    classification : array-like of int
        ``classification[o]`` is the medoid serving object ``o``.

    Returns
    -------
    np.ndarray
        Labels in 0..k-1.
    """
    classification = np.asarray(classification, dtype=int)
    # np.unique sorts, and return_inverse gives the position of every entry
    _, labels = np.unique(classification, return_inverse=True)
    return labels.reshape(-1)


def purity_score(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Fraction of objects belonging to the majority class of their cluster.

    Purity = (1 / N) * sum_k max_j n_kj, n_kj being the number of objects of
    class j in cluster k.
    """
    # Rows = true classes, columns = clusters
    cm = confusion_matrix(y_true, y_pred)
    return float(cm.max(axis=0).sum() / cm.sum())


def silhouette_from_distances(distances: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Mean silhouette coefficient computed from the dissimilarity matrix.

    The silhouette is only defined for 2 <= n_labels <= n_samples - 1;
    NaN is returned outside that range (e.g. when k equals n).
    """
    n_labels = len(np.unique(y_pred))
    if n_labels < 2 or n_labels > distances.shape[0] - 1:
        return float('nan')
    return float(silhouette_score(distances, y_pred, metric='precomputed'))


def compute_clustering_metrics(
        distances: np.ndarray,
        y_pred: np.ndarray,
        y_true: Optional[np.ndarray] = None
) -> Dict[str, float]:
    """
    Computes the validation metrics of a clustering.

    Parameters
    ----------
    distances : np.ndarray
        The (n_samples, n_samples) dissimilarity matrix used for clustering.
    y_pred : np.ndarray
        Predicted cluster labels.
    y_true : np.ndarray, optional
        Ground truth labels. If given, 'ari' and 'purity' are included.

    Returns
    -------
    Dict[str, float]
        'silhouette', plus 'ari' and 'purity' when y_true is given.
    """
    metrics = {"silhouette": silhouette_from_distances(distances, y_pred)}

    if y_true is not None:
        metrics["ari"] = float(adjusted_rand_score(y_true, y_pred))
        metrics["purity"] = purity_score(y_true, y_pred)

    return metrics
