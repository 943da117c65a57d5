"""
Tests for the hierarchy builder and level cuts.
"""

import numpy as np
import pytest

from hierarchical_markov.core.exceptions import ArgumentError
from hierarchical_markov.hierarchy import Hierarchy, HierarchyBuilder


@pytest.fixture
def three_leaf_hierarchy():
    centroids = np.array([[0.0], [1.0], [5.0]])
    sizes = np.array([1, 1, 2])
    return HierarchyBuilder().build(centroids, sizes)


def _is_refinement(fine, coarse):
    """Every fine group lies inside exactly one coarse group."""
    coarse_sets = [set(group) for group in coarse]
    return all(
        sum(set(group) <= c for c in coarse_sets) == 1
        for group in fine
    )


class TestBuild:
    """Agglomerative construction."""

    def test_arena_layout(self, three_leaf_hierarchy):
        nodes = three_leaf_hierarchy.nodes

        assert len(nodes) == 5
        assert all(node.is_leaf and node.height == 0.0 for node in nodes[:3])
        assert nodes[3].children == (0, 1)
        assert nodes[4].children == (2, 3)
        assert three_leaf_hierarchy.root == 4
        assert nodes[4].parent is None

    def test_merge_heights_and_centroids(self, three_leaf_hierarchy):
        nodes = three_leaf_hierarchy.nodes

        assert nodes[3].height == pytest.approx(1.0)
        np.testing.assert_allclose(nodes[3].centroid, [0.5])
        assert nodes[3].size == 2
        assert nodes[4].height == pytest.approx(4.5)
        np.testing.assert_allclose(nodes[4].centroid, [2.75])
        assert nodes[4].size == 4

    def test_ties_merge_lowest_pair_first(self):
        hierarchy = HierarchyBuilder().build(np.array([[0.0], [1.0], [2.0]]), np.ones(3))
        assert hierarchy.nodes[3].children == (0, 1)

    def test_heights_strictly_increase_for_duplicates(self):
        hierarchy = HierarchyBuilder().build(np.zeros((3, 2)), np.ones(3))
        internal = [node.height for node in hierarchy.nodes[3:]]

        assert internal[0] > 0.0
        assert internal[1] > internal[0]
        assert hierarchy.heights == [0.0] + internal

    def test_single_cluster(self):
        hierarchy = HierarchyBuilder().build(np.array([[1.0, 2.0]]), np.array([3]))

        assert hierarchy.root == 0
        assert hierarchy.heights == [0.0]
        assert hierarchy.groups(10.0) == [[0]]

    def test_size_mismatch(self):
        with pytest.raises(ArgumentError):
            HierarchyBuilder().build(np.zeros((3, 2)), np.ones(2))


class TestLevels:
    """Cutting the hierarchy at a level."""

    def test_groups_per_level(self, three_leaf_hierarchy):
        assert three_leaf_hierarchy.groups(0.0) == [[0], [1], [2]]
        assert three_leaf_hierarchy.groups(0.99) == [[0], [1], [2]]
        assert three_leaf_hierarchy.groups(1.0) == [[0, 1], [2]]
        assert three_leaf_hierarchy.groups(4.5) == [[0, 1, 2]]
        assert three_leaf_hierarchy.groups(100.0) == [[0, 1, 2]]

    def test_heights(self, three_leaf_hierarchy):
        assert three_leaf_hierarchy.heights == pytest.approx([0.0, 1.0, 4.5])

    def test_membership(self, three_leaf_hierarchy):
        np.testing.assert_array_equal(three_leaf_hierarchy.membership(1.0), [0, 0, 1])

    def test_state_groups_carry_nodes(self, three_leaf_hierarchy):
        groups = three_leaf_hierarchy.state_groups(1.0)

        assert [g.node for g in groups] == [3, 2]
        assert groups[0].clusters == [0, 1]
        np.testing.assert_allclose(groups[0].centroid, [0.5])

    def test_partitions_coarsen_monotonically(self):
        rng = np.random.RandomState(3)
        centroids = rng.uniform(size=(12, 3))
        hierarchy = HierarchyBuilder().build(centroids, rng.randint(1, 20, size=12))
        heights = hierarchy.heights

        counts = [len(hierarchy.groups(h)) for h in heights]
        assert counts == sorted(counts, reverse=True)
        assert counts[0] == 12 and counts[-1] == 1
        for low, high in zip(heights, heights[1:]):
            assert _is_refinement(hierarchy.groups(low), hierarchy.groups(high))

    def test_groups_are_ordered_by_smallest_member(self):
        centroids = np.array([[10.0], [0.0], [10.5], [0.4]])
        hierarchy = HierarchyBuilder().build(centroids, np.ones(4))
        level = hierarchy.heights[2]

        assert hierarchy.groups(level) == [[0, 2], [1, 3]]

    def test_nan_level(self, three_leaf_hierarchy):
        with pytest.raises(ArgumentError):
            three_leaf_hierarchy.groups(float("nan"))


class TestSerialization:
    """Flat arena dump."""

    def test_round_trip(self, three_leaf_hierarchy):
        restored = Hierarchy.from_dict(three_leaf_hierarchy.to_dict())

        assert restored.heights == three_leaf_hierarchy.heights
        assert restored.groups(1.0) == three_leaf_hierarchy.groups(1.0)

    def test_malformed_dump(self):
        with pytest.raises(ArgumentError):
            Hierarchy.from_dict({"nodes": [{"id": 0}]})
