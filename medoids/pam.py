"""
Partitioning Around Medoids (PAM) Implementation.

This module provides an implementation of the classical k-medoids algorithm
of Kaufman & Rousseeuw. Medoids are always actual objects of the dataset,
so the algorithm only ever needs the pairwise dissimilarity matrix.

The algorithm runs in two phases over a shared clustering state:
1. BUILD: greedy selection of an initial set of k medoids.
2. SWAP: repeated exchange of a medoid for a non-medoid object while the
   exchange strictly decreases the total dissimilarity.

References
----------
[1] Kaufman, L., Rousseeuw, P.J., "Partitioning Around Medoids (Program PAM)",
    1990, Finding Groups in Data: An Introduction to Cluster Analysis,
    Wiley, Chapter 2, pp. 68-125.
[2] Struyf, A., Hubert, M., Rousseeuw, P.J., "Clustering in an Object-Oriented
    Environment", 1997, Journal of Statistical Software, 1(4), pp. 1-30.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Tuple, Union

import numpy as np
import pandas as pd

from utils.distance import calculate_distance_matrix, check_distance_matrix


class PAMState:
    """
    Mutable bookkeeping for one run of PAM.

    The four fields are updated together and are only valid for the duration
    of a single run. ``medoids`` and ``nonselected`` always partition
    ``{0, ..., n-1}`` and every medoid is classified to itself.

    Parameters
    ----------
    n_objects : int
        Number of objects being clustered.
    initial_medoid : int
        The first medoid. Every object is provisionally assigned to it.
    """

    def __init__(self, n_objects: int, initial_medoid: int):
        self.medoids = {initial_medoid}
        self.nonselected = set(range(n_objects)) - self.medoids
        self.classification = np.full(n_objects, initial_medoid, dtype=int)
        self.second_closest_medoid = np.full(n_objects, initial_medoid, dtype=int)

    @property
    def n_objects(self) -> int:
        return self.classification.shape[0]

    def sorted_medoids(self) -> List[int]:
        return sorted(self.medoids)

    def sorted_nonselected(self) -> List[int]:
        return sorted(self.nonselected)

    def assign_medoid(self, obj: int, medoid: int):
        self.classification[obj] = medoid

    def add_medoid(self, medoid: int):
        self.medoids.add(medoid)
        self.nonselected.discard(medoid)
        self.assign_medoid(medoid, medoid)

    def swap_medoid(self, old_medoid: int, new_medoid: int):
        """
        Replaces ``old_medoid`` with ``new_medoid``.

        Every object served by the old medoid (the old medoid included) is
        handed to the new one, and so is every second-closest pointer. The
        caller is expected to run a full reclassification pass afterwards.
        """
        self.medoids.discard(old_medoid)
        self.nonselected.add(old_medoid)
        self.add_medoid(new_medoid)

        self.classification[self.classification == old_medoid] = new_medoid
        self.second_closest_medoid[self.second_closest_medoid == old_medoid] = new_medoid

    def copy(self) -> 'PAMState':
        snapshot = PAMState.__new__(PAMState)
        snapshot.restore(self)
        return snapshot

    def restore(self, snapshot: 'PAMState'):
        """Overwrites every field with the values held by ``snapshot``."""
        self.medoids = set(snapshot.medoids)
        self.nonselected = set(snapshot.nonselected)
        self.classification = snapshot.classification.copy()
        self.second_closest_medoid = snapshot.second_closest_medoid.copy()

    def total_dissimilarity(self, distances: np.ndarray) -> float:
        """Sum of distances from every object to its assigned medoid."""
        objects = np.arange(self.n_objects)
        return float(np.sum(distances[objects, self.classification]))


@dataclass(frozen=True)
class PAMResult:
    """
    Final clustering produced by :func:`partition`.

    Attributes
    ----------
    medoids : FrozenSet[int]
        Indices of the k objects selected as medoids.
    classification : Tuple[int, ...]
        ``classification[o]`` is the medoid index serving object ``o``.
    total_dissimilarity : float
        Sum of distances from each object to its medoid.
    n_swaps : int
        Number of swaps performed by the refine phase.
    """
    medoids: FrozenSet[int]
    classification: Tuple[int, ...]
    total_dissimilarity: float
    n_swaps: int


# ---------------------------------------------------------------------
# BUILD phase
# ---------------------------------------------------------------------

def find_initial_medoid(distances: np.ndarray) -> int:
    """
    Selects the object with the minimum sum of dissimilarities to all others.

    Ties go to the lowest index (``np.argmin`` returns the first minimum).
    """
    return int(np.argmin(distances.sum(axis=1)))


def find_next_medoid(distances: np.ndarray, state: PAMState) -> int:
    """
    Selects the non-selected object that decreases the objective the most.

    Ref [1], BUILD step: the gain of candidate i is
    sum_j max(D_j - d(j, i), 0) over all other non-selected objects j,
    where D_j is the dissimilarity between j and its current medoid.

    Parameters
    ----------
    distances : np.ndarray
        The n x n distance matrix.
    state : PAMState
        The current clustering state (not modified).

    Returns
    -------
    int
        The candidate with the greatest gain. Candidates are scanned in
        ascending order and only a strictly greater gain replaces the
        current best, so ties go to the lowest index.
    """
    candidates = np.array(state.sorted_nonselected(), dtype=int)

    # D_j for every non-selected object j
    current = distances[candidates, state.classification[candidates]]

    # gains[j_pos, i_pos] = max(D_j - d(j, i), 0)
    gains = np.maximum(current[:, np.newaxis] - distances[np.ix_(candidates, candidates)], 0.0)
    # j == i does not contribute to its own gain
    np.fill_diagonal(gains, 0.0)

    total_gain = gains.sum(axis=0)
    return int(candidates[np.argmax(total_gain)])


def reclassify_objects(distances: np.ndarray, state: PAMState) -> float:
    """
    Reassigns every non-selected object after a change of the medoid set.

    Each object is moved to any medoid that is closer than its current one,
    demoting the old medoid to second-closest. A medoid that is not closer
    but beats the current second-closest replaces it. This is the only
    place where ``second_closest_medoid`` is checked against the full medoid
    set; between two passes it may be stale.

    A second-closest equal to the object's own medoid (the state right after
    initialisation) counts as unset, so any other medoid takes its place.

    Parameters
    ----------
    distances : np.ndarray
        The n x n distance matrix.
    state : PAMState
        The clustering state, modified in place.

    Returns
    -------
    float
        Total dissimilarity of the non-selected objects to their medoids.
    """
    medoids = state.sorted_medoids()
    total_dissimilarity = 0.0

    for obj in state.sorted_nonselected():
        for medoid in medoids:
            obj_medoid = state.classification[obj]
            if obj_medoid == medoid:
                continue

            second_medoid = state.second_closest_medoid[obj]
            current_distance = distances[obj, obj_medoid]
            if second_medoid == obj_medoid:
                second_distance = np.inf
            else:
                second_distance = distances[obj, second_medoid]
            potential_distance = distances[obj, medoid]

            if potential_distance < current_distance:
                state.assign_medoid(obj, medoid)
                state.second_closest_medoid[obj] = obj_medoid
            elif potential_distance < second_distance:
                state.second_closest_medoid[obj] = medoid

        total_dissimilarity += distances[obj, state.classification[obj]]

    return float(total_dissimilarity)


def build(k: int, distances: np.ndarray, verbose: bool = False) -> PAMState:
    """
    First phase of PAM: constructs an initial clustering with k medoids.

    Parameters
    ----------
    k : int
        Number of medoids to select.
    distances : np.ndarray
        The n x n distance matrix.
    verbose : bool, default=False
        If True, prints every selected medoid and the resulting cost.

    Returns
    -------
    PAMState
        A state with exactly k medoids and every object classified to its
        nearest medoid.
    """
    initial_medoid = find_initial_medoid(distances)
    state = PAMState(distances.shape[0], initial_medoid)

    if verbose:
        print(f"[PAM BUILD] Initial medoid: {initial_medoid}")

    for _ in range(k - 1):
        next_medoid = find_next_medoid(distances, state)
        state.add_medoid(next_medoid)
        cost = reclassify_objects(distances, state)

        if verbose:
            print(f"[PAM BUILD] Added medoid {next_medoid} (cost={cost:.4f})")

    return state


# ---------------------------------------------------------------------
# SWAP phase
# ---------------------------------------------------------------------

def calculate_swap_costs(distances: np.ndarray, state: PAMState, medoid: int) -> np.ndarray:
    """
    Computes the swap cost of replacing ``medoid`` with every non-selected object.

    Ref [1], SWAP step. For a candidate h, contributions are summed over the
    non-selected objects j != h, with D_j the distance to j's medoid, E_j the
    distance to its second-closest medoid:
    - D_j >= d(j, i): d(j, h) - d(j, i) if d(j, h) < E_j, else E_j - d(j, i).
    - d(j, h) < D_j < d(j, i): d(j, h) - D_j.
    - otherwise: 0.

    Parameters
    ----------
    distances : np.ndarray
        The n x n distance matrix.
    state : PAMState
        The current clustering state (not modified).
    medoid : int
        The medoid i considered for removal.

    Returns
    -------
    np.ndarray
        Swap cost for each candidate, aligned with ``state.sorted_nonselected()``.
    """
    objects = np.array(state.sorted_nonselected(), dtype=int)
    if objects.size == 0:
        return np.zeros(0)

    D_j = distances[objects, state.classification[objects]]
    E_j = distances[objects, state.second_closest_medoid[objects]]
    d_j_i = distances[objects, medoid]

    # Rows are the objects j, columns the candidates h
    d_j_h = distances[np.ix_(objects, objects)]
    D_j = D_j[:, np.newaxis]
    E_j = E_j[:, np.newaxis]
    d_j_i = d_j_i[:, np.newaxis]

    closest_to_removed = D_j >= d_j_i
    pulled_by_candidate = (D_j < d_j_i) & (D_j > d_j_h)

    contribution = np.where(
        closest_to_removed,
        np.where(d_j_h < E_j, d_j_h - d_j_i, E_j - d_j_i),
        np.where(pulled_by_candidate, d_j_h - D_j, 0.0),
    )
    # The candidate itself does not contribute
    np.fill_diagonal(contribution, 0.0)

    return contribution.sum(axis=0)


def calculate_swap_cost(distances: np.ndarray, state: PAMState, medoid: int, candidate: int) -> float:
    """Swap cost of replacing a single ``medoid`` with a single ``candidate``."""
    if candidate not in state.nonselected:
        raise ValueError(f"Object {candidate} is not a non-selected object.")
    position = state.sorted_nonselected().index(candidate)
    return float(calculate_swap_costs(distances, state, medoid)[position])


def refine(distances: np.ndarray, state: PAMState, verbose: bool = False) -> int:
    """
    Second phase of PAM: swaps medoids while the objective strictly decreases.

    Every (medoid, non-selected) pair is evaluated per iteration and the
    pair with the minimum swap cost is kept, the first one found winning
    ties. The swap is applied only when that cost is negative.

    The swap cost leaves out the removed medoid's own new distance, so it
    can promise an improvement the full reclassification does not deliver.
    Such a swap is rolled back and the phase ends, which keeps the total
    dissimilarity strictly decreasing from one swap to the next.

    Parameters
    ----------
    distances : np.ndarray
        The n x n distance matrix.
    state : PAMState
        A state with k medoids, modified in place.
    verbose : bool, default=False
        If True, prints every performed swap.

    Returns
    -------
    int
        The number of swaps performed.
    """
    n_swaps = 0
    cost = state.total_dissimilarity(distances)

    while True:
        candidates = state.sorted_nonselected()
        if not candidates:
            break

        medoids = state.sorted_medoids()
        costs = np.vstack([calculate_swap_costs(distances, state, i) for i in medoids])

        # Row-major argmin reproduces the (medoid, candidate) scan order
        best = int(np.argmin(costs))
        minimum_cost = costs.flat[best]
        if minimum_cost >= 0:
            break

        old_medoid = medoids[best // len(candidates)]
        new_medoid = candidates[best % len(candidates)]

        snapshot = state.copy()
        state.swap_medoid(old_medoid, new_medoid)
        reclassify_objects(distances, state)
        new_cost = state.total_dissimilarity(distances)

        if new_cost >= cost:
            state.restore(snapshot)
            if verbose:
                print(f"[PAM SWAP] Rejected {old_medoid} -> {new_medoid} "
                      f"(delta={minimum_cost:.4f}, cost={new_cost:.4f} >= {cost:.4f})")
            break

        cost = new_cost
        n_swaps += 1

        if verbose:
            print(f"[PAM SWAP] {old_medoid} -> {new_medoid} "
                  f"(delta={minimum_cost:.4f}, cost={cost:.4f})")

    return n_swaps


# ---------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------

def partition(
        k: int,
        matrix: Union[np.ndarray, pd.DataFrame],
        metric: str = 'euclidean',
        verbose: bool = False
) -> PAMResult:
    """
    Partitions the objects of ``matrix`` around k medoids.

    Parameters
    ----------
    k : int
        Number of clusters. Must be at least 2.
    matrix : array-like
        Either observations of shape (n_samples, n_features) when
        ``metric='euclidean'``, or a precomputed (n_samples, n_samples)
        dissimilarity matrix when ``metric='precomputed'``.
    metric : str, default='euclidean'
        'euclidean' or 'precomputed'.
    verbose : bool, default=False
        If True, prints the progress of both phases.

    Returns
    -------
    PAMResult
        The medoid set, per-object classification, final cost and the
        number of swaps.

    Raises
    ------
    ValueError
        If k < 2, if the matrix has fewer than k rows, or if the metric is
        not supported. These checks run before any distance computation.
    """
    if metric not in ('euclidean', 'precomputed'):
        raise ValueError(f"Metric '{metric}' not supported.")

    if isinstance(matrix, pd.DataFrame):
        matrix = matrix.values
    matrix = np.asarray(matrix, dtype=float)

    if k < 2:
        raise ValueError("Less than two partitions were requested.")
    if matrix.shape[0] < k:
        raise ValueError(f"Not enough rows ({matrix.shape[0]}) to create {k} partitions.")

    if metric == 'precomputed':
        distances = check_distance_matrix(matrix)
    else:
        distances = calculate_distance_matrix(matrix)

    state = build(k, distances, verbose=verbose)
    n_swaps = refine(distances, state, verbose=verbose)

    return PAMResult(
        medoids=frozenset(int(m) for m in state.medoids),
        classification=tuple(int(c) for c in state.classification),
        total_dissimilarity=state.total_dissimilarity(distances),
        n_swaps=n_swaps,
    )
