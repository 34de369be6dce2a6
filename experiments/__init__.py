"""
Experiments Package.

This package contains the runner script that evaluates PAM on synthetic
datasets over a grid of cluster counts.

Runners
-------
- pam_runner: PAM on Gaussian blobs, scored with Silhouette, ARI and Purity.
"""
# Note: This is typically run as a __main__ script, but exposing it
# allows other scripts to import and run it programmatically.
