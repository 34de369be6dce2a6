"""
Experiment Runner for Partitioning Around Medoids.

This script runs PAM over a grid of synthetic datasets and cluster counts.
Each dataset is a set of Gaussian blobs with known ground truth, so the
resulting partitions can be scored with both internal (Silhouette) and
external (ARI, Purity) indexes.

PAM is deterministic, so every (dataset, k) pair is run exactly once. The
distance matrix of each dataset is computed once and reused for every k.

Usage:
    Run from project root: python -m experiments.pam_runner
"""

import os
import time
import datetime
import numpy as np
import pandas as pd
from tqdm import tqdm
from sklearn.datasets import make_blobs
from typing import Any, Dict, List, Tuple

from medoids.kmedoids import KMedoids
from utils.clustering_metrics import compute_clustering_metrics
from utils.distance import calculate_distance_matrix

# ---------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------
RUN_CONFIG = {
    "datasets": {
        "blobs-separated": True,
        "blobs-overlapping": True,
        "blobs-high-dim": True
    }
}

# make_blobs parameters for each synthetic dataset
DATASETS_MAP = {
    "blobs-separated": {"n_samples": 150, "n_features": 2, "centers": 3, "cluster_std": 0.5},
    "blobs-overlapping": {"n_samples": 200, "n_features": 2, "centers": 4, "cluster_std": 2.0},
    "blobs-high-dim": {"n_samples": 200, "n_features": 10, "centers": 5, "cluster_std": 1.0},
}

N_CLUSTERS_LIST = list(range(2, 9))
RANDOM_STATE = 42
PARTIAL_SAVE_INTERVAL = 10


# ---------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------
def load_dataset(ds_name: str) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generates the synthetic dataset registered under ``ds_name``.

    Returns
    -------
    X : np.ndarray
        Observations of shape (n_samples, n_features).
    y : np.ndarray
        Ground truth blob of every observation.
    """
    if ds_name not in DATASETS_MAP:
        raise ValueError(f"Unknown dataset '{ds_name}'.")
    X, y = make_blobs(random_state=RANDOM_STATE, **DATASETS_MAP[ds_name])
    return X, y


def generate_task_list() -> List[Dict[str, Any]]:
    """
    Generates the grid of experiment configurations.
    """
    tasks = []
    for ds_name, ds_enabled in RUN_CONFIG["datasets"].items():
        if not ds_enabled: continue

        n_samples = DATASETS_MAP[ds_name]["n_samples"]
        for k in N_CLUSTERS_LIST:
            # PAM needs at least k objects
            if k > n_samples: continue
            tasks.append({
                "dataset": ds_name,
                "algo_name": "PAM",
                "n_clusters": k,
            })
    return tasks


def run_task(task: Dict[str, Any], distances: np.ndarray, y: np.ndarray) -> Dict[str, Any]:
    """
    Runs PAM once for a task on a precomputed distance matrix.

    Returns
    -------
    dict
        Metadata, cost, number of swaps, runtime and validation metrics.
    """
    start = time.perf_counter()

    model = KMedoids(n_clusters=task["n_clusters"], metric="precomputed")
    labels = model.fit_predict(distances)

    runtime = time.perf_counter() - start

    res = {
        "dataset": task["dataset"],
        "algorithm": task["algo_name"],
        "n_clusters": task["n_clusters"],
        "total_dissimilarity": model.inertia_,
        "n_swaps": model.n_swaps_,
        "medoids": " ".join(str(m) for m in model.medoid_indices_),
        "runtime_sec": runtime,
    }
    res.update(compute_clustering_metrics(distances, labels, y))
    return res


def save_dataframe(data: Any, folder: str, filename: str):
    """
    Safely saves a list of dicts or DataFrame to CSV.
    """
    if isinstance(data, pd.DataFrame):
        if data.empty: return
        df_to_save = data
    elif not data:
        return
    else:
        df_to_save = pd.DataFrame(data)

    os.makedirs(folder, exist_ok=True)
    df_to_save.to_csv(os.path.join(folder, filename), index=False)


# ---------------------------------------------------------
# Main Execution Loop
# ---------------------------------------------------------
def main(output_root: str = "results_pam"):
    session_id = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    base_dir = os.path.join(output_root, f"run_{session_id}")
    dirs = [
        base_dir,
        os.path.join(base_dir, "partial"),
        os.path.join(base_dir, "by_dataset")
    ]
    for d in dirs: os.makedirs(d, exist_ok=True)

    print(f"PAM Runner Started: {session_id}")
    all_tasks = generate_task_list()

    if not all_tasks:
        print("No tasks configured.")
        return

    print(f"Total tasks scheduled: {len(all_tasks)}")

    global_results = []
    current_ds_results = []
    current_ds_name = None
    distances, y = None, None

    pbar = tqdm(all_tasks, unit="exp")

    for i, task in enumerate(pbar):
        ds_name = task["dataset"]
        desc = f"{ds_name} | {task['algo_name']} | k={task['n_clusters']}"
        pbar.set_description(f"{desc:<40}")

        # Lazy loading, one distance matrix per dataset
        if ds_name != current_ds_name:
            if current_ds_name and current_ds_results:
                save_dataframe(current_ds_results, dirs[2], f"{current_ds_name}_results.csv")
                current_ds_results = []

            try:
                X, y = load_dataset(ds_name)
                distances = calculate_distance_matrix(X)
                current_ds_name = ds_name
            except Exception as e:
                pbar.write(f"Error loading {ds_name}: {e}")
                continue

        try:
            res = run_task(task, distances, y)
            global_results.append(res)
            current_ds_results.append(res)
        except Exception as e:
            pbar.write(f"Failed: {task} - {e}")

        if (i + 1) % PARTIAL_SAVE_INTERVAL == 0:
            save_dataframe(global_results, dirs[1], f"partial_{session_id}.csv")

    if current_ds_results:
        save_dataframe(current_ds_results, dirs[2], f"{current_ds_name}_results.csv")
    if global_results:
        save_dataframe(global_results, base_dir, "pam_results_final.csv")
        print(f"\nPAM Run Complete. Data saved in {base_dir}")

    return base_dir


if __name__ == "__main__":
    main()
