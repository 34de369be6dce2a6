"""
Tests for the BUILD and SWAP phases of Partitioning Around Medoids.
"""

import numpy as np
import pandas as pd
import pytest

from medoids import pam
from medoids.pam import (
    PAMResult,
    PAMState,
    build,
    calculate_swap_cost,
    find_initial_medoid,
    find_next_medoid,
    partition,
    reclassify_objects,
    refine,
)
from utils.distance import calculate_distance_matrix


def line(*points):
    return np.array(points, dtype=float).reshape(-1, 1)


class TestPAMState:
    def test_initial_state(self):
        state = PAMState(5, 2)
        assert state.medoids == {2}
        assert state.nonselected == {0, 1, 3, 4}
        assert list(state.classification) == [2] * 5
        assert list(state.second_closest_medoid) == [2] * 5

    def test_add_medoid_classifies_itself(self):
        state = PAMState(4, 0)
        state.add_medoid(3)
        assert state.medoids == {0, 3}
        assert state.nonselected == {1, 2}
        assert state.classification[3] == 3

    def test_swap_medoid_repoints_objects(self):
        state = PAMState(5, 0)
        state.add_medoid(4)
        state.classification[:] = [0, 0, 4, 0, 4]
        state.second_closest_medoid[:] = [0, 4, 0, 4, 0]

        state.swap_medoid(0, 1)

        assert state.medoids == {1, 4}
        assert state.nonselected == {0, 2, 3}
        assert list(state.classification) == [1, 1, 4, 1, 4]
        assert list(state.second_closest_medoid) == [1, 4, 1, 4, 1]

    def test_copy_is_independent(self):
        state = PAMState(3, 0)
        snapshot = state.copy()
        state.add_medoid(1)
        assert snapshot.medoids == {0}
        assert snapshot.classification[1] == 0

        state.restore(snapshot)
        assert state.medoids == {0}
        assert state.nonselected == {1, 2}

    def test_total_dissimilarity(self, two_block_distances):
        state = PAMState(4, 0)
        assert state.total_dissimilarity(two_block_distances) == 19.0


class TestBuild:
    def test_initial_medoid_minimises_row_sum(self, two_block_distances):
        # Row sums are 19, 19, 19, 27: the first minimum wins
        assert find_initial_medoid(two_block_distances) == 0

    def test_next_medoid_maximises_gain(self, two_block_distances):
        state = PAMState(4, 0)
        assert find_next_medoid(two_block_distances, state) == 3

    def test_next_medoid_ties_go_to_lowest_index(self, equal_distances):
        state = PAMState(5, 0)
        assert find_next_medoid(equal_distances, state) == 1

    def test_reclassify_moves_objects_to_closer_medoid(self, two_block_distances):
        state = PAMState(4, 0)
        state.add_medoid(3)
        cost = reclassify_objects(two_block_distances, state)

        assert cost == 2.0
        assert list(state.classification) == [0, 0, 3, 3]
        assert state.second_closest_medoid[1] == 3
        assert state.second_closest_medoid[2] == 0

    def test_build_two_blocks(self, two_block_distances):
        state = build(2, two_block_distances)
        assert state.medoids == {0, 3}
        assert state.nonselected == {1, 2}
        assert list(state.classification) == [0, 0, 3, 3]

    def test_build_ties_select_first_block_point(self):
        # Candidates 3 and 4 have the same gain, 3 is scanned first
        D = calculate_distance_matrix(line(0, 1, 2, 6, 7, 8))
        state = build(2, D)
        assert state.medoids == {2, 3}
        assert state.total_dissimilarity(D) == 6.0

    def test_build_assigns_nearest_and_second_nearest(self, random_points):
        D = calculate_distance_matrix(random_points)
        state = build(4, D)
        medoids = state.sorted_medoids()

        for obj in state.sorted_nonselected():
            ranked = np.sort(D[obj, medoids])
            assert D[obj, state.classification[obj]] == ranked[0]
            assert D[obj, state.second_closest_medoid[obj]] == ranked[1]


class TestSwapCost:
    def test_two_block_swap_costs(self, two_block_distances):
        state = build(2, two_block_distances)
        assert calculate_swap_cost(two_block_distances, state, 0, 1) == 0.0
        assert calculate_swap_cost(two_block_distances, state, 0, 2) == 8.0
        assert calculate_swap_cost(two_block_distances, state, 3, 1) == 8.0
        assert calculate_swap_cost(two_block_distances, state, 3, 2) == 0.0

    def test_improving_swap_is_negative(self):
        D = calculate_distance_matrix(line(0, 1, 2, 6, 7, 8))
        state = build(2, D)
        assert calculate_swap_cost(D, state, 2, 1) == -1.0
        assert calculate_swap_cost(D, state, 3, 4) == -1.0

    def test_candidate_must_be_nonselected(self, two_block_distances):
        state = build(2, two_block_distances)
        with pytest.raises(ValueError):
            calculate_swap_cost(two_block_distances, state, 0, 3)


class TestRefine:
    def test_no_swap_when_build_is_optimal(self, two_block_distances):
        state = build(2, two_block_distances)
        assert refine(two_block_distances, state) == 0
        assert state.medoids == {0, 3}

    def test_swaps_until_no_improvement(self):
        D = calculate_distance_matrix(line(0, 1, 2, 6, 7, 8))
        state = build(2, D)

        assert refine(D, state) == 2
        assert state.medoids == {1, 4}
        assert list(state.classification) == [1, 1, 1, 4, 4, 4]
        assert state.total_dissimilarity(D) == 4.0

    def test_cost_never_increases(self, random_points):
        D = calculate_distance_matrix(random_points)
        state = build(3, D)
        build_cost = state.total_dissimilarity(D)

        refine(D, state)
        assert state.total_dissimilarity(D) <= build_cost

    def test_refine_is_a_fixed_point(self, random_points):
        D = calculate_distance_matrix(random_points)
        state = build(3, D)
        refine(D, state)
        medoids = set(state.medoids)
        classification = state.classification.copy()

        assert refine(D, state) == 0
        assert state.medoids == medoids
        assert np.array_equal(state.classification, classification)

    def test_all_equal_distances_stop_immediately(self, equal_distances):
        state = build(2, equal_distances)
        assert refine(equal_distances, state) == 0
        assert len(state.medoids) == 2

    def test_nothing_to_swap_when_every_object_is_a_medoid(self, two_block_distances):
        state = build(4, two_block_distances)
        assert refine(two_block_distances, state) == 0


class TestPartition:
    def test_two_block_scenario(self, two_block_distances):
        result = partition(2, two_block_distances, metric='precomputed')

        assert isinstance(result, PAMResult)
        assert len(result.medoids) == 2
        assert len(result.medoids & {0, 1}) == 1
        assert len(result.medoids & {2, 3}) == 1
        assert result.classification[0] == result.classification[1]
        assert result.classification[2] == result.classification[3]
        assert result.classification[0] != result.classification[2]

    def test_two_block_observations(self):
        X = np.array([[0.0, 0.0], [0.0, 1.0], [10.0, 0.0], [10.0, 1.0]])
        result = partition(2, X)
        assert result.classification[0] == result.classification[1]
        assert result.classification[2] == result.classification[3]
        assert result.classification[0] != result.classification[2]

    def test_all_equal_scenario(self, equal_distances):
        result = partition(2, equal_distances, metric='precomputed')
        assert result.medoids == frozenset({0, 1})
        assert result.n_swaps == 0
        assert len(result.classification) == 5
        assert set(result.classification) == {0, 1}

    def test_k_equals_n(self, two_block_distances):
        result = partition(4, two_block_distances, metric='precomputed')
        assert result.medoids == frozenset({0, 1, 2, 3})
        assert result.classification == (0, 1, 2, 3)
        assert result.total_dissimilarity == 0.0

    def test_terminates_on_uneven_groups(self):
        result = partition(2, line(0, 1, 2, 3, 100, 101))
        assert result.medoids == frozenset({2, 4})
        assert result.classification == (2, 2, 2, 2, 4, 4)
        assert result.total_dissimilarity == 5.0

    def test_swapping_scenario(self):
        result = partition(2, line(0, 1, 2, 6, 7, 8))
        assert result.medoids == frozenset({1, 4})
        assert result.n_swaps == 2
        assert result.total_dissimilarity == 4.0

    @pytest.mark.parametrize("k", [2, 3, 5, 8])
    def test_result_invariants(self, random_points, k):
        result = partition(k, random_points)
        n = random_points.shape[0]

        assert len(result.medoids) == k
        assert all(0 <= m < n for m in result.medoids)
        assert len(result.classification) == n
        for m in result.medoids:
            assert result.classification[m] == m
        for c in result.classification:
            assert c in result.medoids

    def test_result_is_immutable(self, two_block_distances):
        result = partition(2, two_block_distances, metric='precomputed')
        with pytest.raises(AttributeError):
            result.n_swaps = 3

    def test_accepts_dataframe(self):
        df = pd.DataFrame({"x": [0.0, 0.0, 10.0, 10.0], "y": [0.0, 1.0, 0.0, 1.0]})
        result = partition(2, df)
        assert len(result.medoids) == 2

    def test_repeated_calls_are_identical(self, random_points):
        assert partition(3, random_points) == partition(3, random_points)

    def test_verbose_prints_progress(self, capsys):
        partition(2, line(0, 1, 2, 6, 7, 8), verbose=True)
        out = capsys.readouterr().out
        assert "[PAM BUILD]" in out
        assert "[PAM SWAP]" in out


class TestPartitionErrors:
    @pytest.fixture
    def no_distances(self, monkeypatch):
        def fail(_):
            raise AssertionError("distance matrix must not be computed")
        monkeypatch.setattr(pam, "calculate_distance_matrix", fail)

    @pytest.mark.parametrize("k", [1, 0, -3])
    def test_rejects_less_than_two_partitions(self, no_distances, k):
        with pytest.raises(ValueError, match="two partitions"):
            partition(k, np.zeros((5, 2)))

    def test_rejects_fewer_rows_than_partitions(self, no_distances):
        with pytest.raises(ValueError, match="Not enough rows"):
            partition(4, np.zeros((3, 2)))

    def test_rejects_unknown_metric(self):
        with pytest.raises(ValueError, match="not supported"):
            partition(2, np.zeros((3, 2)), metric='cosine')

    def test_rejects_non_square_precomputed(self):
        with pytest.raises(ValueError, match="square"):
            partition(2, np.zeros((3, 2)), metric='precomputed')
