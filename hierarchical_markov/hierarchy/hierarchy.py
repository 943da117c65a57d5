"""
Multi-resolution merge hierarchy over the base clusters.

The hierarchy is stored as a flat arena of HierarchyNode records. Leaves
0..K-1 are the base clusters and internal nodes K..2K-2 are merges in the
order they were performed, so every child index is smaller than its
parent's. Cutting the tree at a level yields a partition of the base
clusters; higher levels give coarser partitions.
"""

import logging
from typing import Any, Dict, List

import numpy as np

from ..core.data_models import HierarchyNode, StateGroup
from ..core.exceptions import ArgumentError


logger = logging.getLogger(__name__)


class Hierarchy:
    """
    Arena of hierarchy nodes with level-cut queries.

    Args:
        nodes: Arena entries ordered by index, leaves first
        n_leaves: Number of base clusters
    """

    def __init__(self, nodes: List[HierarchyNode], n_leaves: int):
        if n_leaves < 1 or len(nodes) != 2 * n_leaves - 1:
            raise ArgumentError(
                "hierarchy arena must hold 2K-1 nodes for K base clusters",
                argument="nodes",
                expected=2 * n_leaves - 1,
                actual=len(nodes)
            )
        self._nodes = nodes
        self._n_leaves = n_leaves
        self._members = self._collect_members()

    def _collect_members(self) -> List[List[int]]:
        members: List[List[int]] = []
        for i, node in enumerate(self._nodes):
            if node.index != i:
                raise ArgumentError("hierarchy nodes must be ordered by index",
                                    argument="nodes", expected=i, actual=node.index)
            if node.is_leaf:
                if i >= self._n_leaves:
                    raise ArgumentError("internal node without children",
                                        argument="nodes", actual=i)
                members.append([i])
                continue
            left, right = node.children
            if not (0 <= left < i and 0 <= right < i):
                raise ArgumentError("node children must precede their parent",
                                    argument="nodes", actual=(i, left, right))
            members.append(sorted(members[left] + members[right]))
        return members

    @property
    def nodes(self) -> List[HierarchyNode]:
        return list(self._nodes)

    @property
    def n_leaves(self) -> int:
        return self._n_leaves

    @property
    def root(self) -> int:
        """Arena index of the root node."""
        return len(self._nodes) - 1

    @property
    def heights(self) -> List[float]:
        """Distinct cut points in ascending order, starting at 0."""
        distinct = {0.0}
        distinct.update(node.height for node in self._nodes if not node.is_leaf)
        return sorted(distinct)

    def members(self, node: int) -> List[int]:
        """Sorted base cluster ids below a node."""
        return list(self._members[node])

    def _group_nodes(self, level: float) -> List[int]:
        try:
            level = float(level)
        except (TypeError, ValueError) as e:
            raise ArgumentError("level must be a number", argument="level",
                                actual=level) from e
        if np.isnan(level):
            raise ArgumentError("level must not be NaN", argument="level")

        selected = []
        for node in self._nodes:
            if not (node.is_leaf or node.height <= level):
                continue
            if node.parent is not None and self._nodes[node.parent].height <= level:
                continue
            selected.append(node.index)
        return sorted(selected, key=lambda index: self._members[index][0])

    def groups(self, level: float) -> List[List[int]]:
        """
        Partition of the base clusters visible at a level.

        Returns:
            One sorted list of base cluster ids per group, ordered by the
            smallest member id

        Raises:
            ArgumentError: If level is not a number
        """
        return [self.members(index) for index in self._group_nodes(level)]

    def state_groups(self, level: float) -> List[StateGroup]:
        """Groups at a level together with their hierarchy node and centroid."""
        return [
            StateGroup(index=g, node=index, clusters=self.members(index),
                       centroid=self._nodes[index].centroid.copy())
            for g, index in enumerate(self._group_nodes(level))
        ]

    def membership(self, level: float) -> np.ndarray:
        """Group index of every base cluster at a level."""
        labels = np.empty(self._n_leaves, dtype=int)
        for g, members in enumerate(self.groups(level)):
            labels[members] = g
        return labels

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nLeaves': self._n_leaves,
            'nodes': [node.to_dict() for node in self._nodes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Hierarchy':
        """
        Rebuild a hierarchy from its flat arena dump.

        Raises:
            ArgumentError: If the dump is malformed
        """
        try:
            nodes = [HierarchyNode.from_dict(entry) for entry in data['nodes']]
            n_leaves = int(data['nLeaves'])
        except (KeyError, TypeError, ValueError) as e:
            raise ArgumentError(f"malformed hierarchy data: {e}", argument="hierarchy") from e
        return cls(nodes, n_leaves)
