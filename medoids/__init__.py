"""
Medoid Clustering Package.

This package contains the Partitioning Around Medoids (PAM) algorithm and a
fit / predict estimator built on top of it.

Modules
-------
- pam: The BUILD and SWAP phases, the clustering state and `partition`.
- kmedoids: K-Medoids estimator (fit, predict, fit_predict).
"""

from .pam import PAMResult, PAMState, build, partition, refine
from .kmedoids import KMedoids
