"""
Utilities package initialization.

Exposes the distance and validation helpers to the top-level utils package
for cleaner imports throughout the project.
"""

from .distance import (
    calculate_distance_matrix,
    check_distance_matrix
)

from .clustering_metrics import (
    compute_clustering_metrics,
    labels_from_classification,
    purity_score,
    silhouette_from_distances
)
