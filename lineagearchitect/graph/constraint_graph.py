"""
Phylogenetic constraint graph.

Each internal node represents a sub-population; a directed edge between two
nodes encodes the 'happened-before' evolutionary relationship inferred from
the AAF data. Nodes are bucketed by level, the number of samples their
mutations occur in, and the germline root sits above every level.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

import numpy as np

from lineagearchitect.elements.mutation_group import MutationGroup
from lineagearchitect.exceptions import DisconnectedNodeError, MalformedInputError
from lineagearchitect.graph.node import Edge, PhyloNode
from lineagearchitect.logger import lineage_logger
from lineagearchitect.parameters import LineageConfig

logger = logging.getLogger(__name__)

# Results of the edge-orientation rule
FORWARD = 0
BACKWARD = 1
NO_RELATION = -1


class ConstraintGraph:
    """
    Directed constraint graph over the sub-populations of the mutation groups.

    Construction validates the input, adds the root and one node per
    (group, cluster) pair, then adds edges in three passes: between clusters
    of the same group, between adjacent occupied levels, and finally a
    connectivity repair that guarantees every node is reachable from the root.

    All collections preserve insertion order, so iteration over nodes and
    edges is deterministic for a fixed input.
    """

    def __init__(
        self,
        groups: Sequence[MutationGroup],
        total_samples: int,
        config: Optional[LineageConfig] = None,
    ):
        if total_samples < 1:
            raise MalformedInputError(
                f"Sample count must be positive, got {total_samples}"
            )
        self.config: LineageConfig = config or LineageConfig()
        self.total_samples = total_samples
        self.groups: List[MutationGroup] = list(groups)

        # Nodes divided by level, and indexed by id
        self.levels: Dict[int, List[PhyloNode]] = {}
        self.nodes_by_id: Dict[int, PhyloNode] = {}
        # Adjacency map; inner dicts act as ordered sets
        self._edges: Dict[PhyloNode, Dict[PhyloNode, None]] = {}
        self._num_edges = 0

        for group in self.groups:
            group.validate(total_samples)

        self._build()

    # ------------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------------
    def _build(self) -> None:
        lineage_logger.section("Constraint graph construction")

        root = PhyloNode.root(self._next_id(), self.total_samples, self.config.aaf_max)
        self.add_node(root)

        for group in self.groups:
            group_nodes: List[PhyloNode] = []
            for i in range(len(group.clusters)):
                node = PhyloNode.sub_population(
                    self._next_id(), group, i, self.total_samples
                )
                self.add_node(node)
                group_nodes.append(node)
            # edges between the sub-populations of one group
            for i in range(len(group_nodes)):
                for j in range(i + 1, len(group_nodes)):
                    self.check_and_add_edge(group_nodes[i], group_nodes[j])

        self._add_inter_level_edges()
        if self.config.add_hidden_edges:
            self.add_all_hidden_edges()
        self._connect_unreachable_nodes()
        self.verify_reachability()

        logger.debug(
            "Built constraint graph with %d nodes and %d edges",
            self.num_nodes,
            self.num_edges,
        )
        self._log_graph()

    def _next_id(self) -> int:
        return len(self.nodes_by_id)

    def _add_inter_level_edges(self) -> None:
        """Pair every node with every node of the nearest non-empty lower level."""
        for level in range(self.total_samples + 1, 0, -1):
            from_level_nodes = self.levels.get(level)
            if not from_level_nodes:
                continue
            to_level_nodes = self._next_lower_level(level)
            if to_level_nodes is None:
                continue
            for n1 in from_level_nodes:
                for n2 in to_level_nodes:
                    self.check_and_add_edge(n1, n2)

    def _next_lower_level(self, level: int) -> Optional[List[PhyloNode]]:
        for lower in range(level - 1, -1, -1):
            nodes = self.levels.get(lower)
            if nodes:
                return nodes
        return None

    def add_all_hidden_edges(self) -> None:
        """Pair every level with every lower non-empty level, not only the nearest one."""
        for level in range(self.total_samples + 1, 0, -1):
            from_level_nodes = self.levels.get(level)
            if not from_level_nodes:
                continue
            for lower in range(level - 1, 0, -1):
                to_level_nodes = self.levels.get(lower)
                if not to_level_nodes:
                    continue
                for n1 in from_level_nodes:
                    for n2 in to_level_nodes:
                        self.check_and_add_edge(n1, n2)

    def _connect_unreachable_nodes(self) -> None:
        """
        Give every node that no path from the root reaches a parent.

        Nodes are visited in id order. The parent is the first reachable
        node, scanning levels upwards from two above the orphan, that the
        orientation rule places before it. If there is none, the orphan is
        attached to the root. Clusters of one group can point at each other
        in a cycle, so in-degree alone does not mean the node is connected.
        """
        root = self.root
        reachable = self.reachable_nodes()
        for node in list(self.nodes_by_id.values()):
            if node in reachable:
                continue
            parent = self._find_parent_above(node, reachable)
            if parent is None:
                parent = root
                lineage_logger.debug(f"Node {node.node_id} attached to the root")
            else:
                lineage_logger.debug(
                    f"Node {node.node_id} attached to node {parent.node_id}"
                )
            self.add_edge(parent, node)
            reachable |= self.reachable_nodes(node)

    def _find_parent_above(
        self, node: PhyloNode, reachable: Set[PhyloNode]
    ) -> Optional[PhyloNode]:
        for level in range(node.level + 2, self.total_samples + 2):
            for candidate in self.levels.get(level, ()):
                if candidate in reachable and self.orient(candidate, node) == FORWARD:
                    return candidate
        return None

    def reachable_nodes(self, start: Optional[PhyloNode] = None) -> Set[PhyloNode]:
        """Nodes reachable from ``start`` (the root by default), ``start`` included."""
        first = self.root if start is None else start
        found = {first}
        queue = deque([first])
        while queue:
            node = queue.popleft()
            for target in self._edges.get(node, ()):
                if target not in found:
                    found.add(target)
                    queue.append(target)
        return found

    def unreachable_nodes(self) -> List[PhyloNode]:
        """Nodes no path from the root reaches, in id order."""
        reachable = self.reachable_nodes()
        return [n for n in self.nodes_by_id.values() if n not in reachable]

    def verify_reachability(self) -> None:
        """
        Raises:
            DisconnectedNodeError: If some node cannot be reached from the root.
        """
        for node in self.unreachable_nodes():
            DisconnectedNodeError.raise_unreachable(node, self.total_samples)

    # ------------------------------------------------------------------------
    # Edge orientation
    # ------------------------------------------------------------------------
    def _direction_fit(self, parent: PhyloNode, child: PhyloNode) -> Tuple[int, float]:
        """
        Compatibility count and error of the tentative edge parent -> child.

        The scan stops at the first sample where the parent is absent while
        the child is present, leaving the partial count.
        """
        p = parent.aaf_vector
        c = child.aaf_vector
        violations = np.flatnonzero((p == 0) & (c != 0))
        stop = int(violations[0]) if violations.size else self.total_samples
        p = p[:stop]
        c = c[:stop]
        compatible = int(np.count_nonzero(p >= c - self.config.aaf_error_margin))
        excess = c - p
        error = float(excess[excess > 0].sum())
        return compatible, error

    def orient(self, n1: PhyloNode, n2: PhyloNode) -> int:
        """
        Decide the direction of the edge between two nodes without adding it.

        Returns:
            0 for n1 -> n2, 1 for n2 -> n1, -1 when neither direction is
            compatible with the AAF data across all samples.
        """
        if n2.is_leaf:
            assert n2.leaf_sample_id is not None
            return FORWARD if n1.aaf(n2.leaf_sample_id) > 0 else NO_RELATION

        comp_12, err_12 = self._direction_fit(n1, n2)
        comp_21, err_21 = self._direction_fit(n2, n1)
        n = self.total_samples

        if comp_12 == n and comp_21 == n:
            return BACKWARD if err_21 < err_12 else FORWARD
        if comp_12 == n:
            return FORWARD
        if comp_21 == n:
            return BACKWARD
        return NO_RELATION

    def check_and_add_edge(self, n1: PhyloNode, n2: PhyloNode) -> int:
        """
        Add the edge between two nodes in the direction the AAF data supports.

        When both directions are compatible, the one with the smaller error
        is taken, ties going to n1 -> n2.

        Args:
            n1: Node at an equal or higher level than n2
            n2: Second node

        Returns:
            0 if n1 -> n2 was added, 1 if n2 -> n1 was added, -1 if no edge.
        """
        if n1.level < n2.level:
            raise ValueError(
                f"Node {n1.node_id} (level {n1.level}) is below node "
                f"{n2.node_id} (level {n2.level})"
            )
        direction = self.orient(n1, n2)
        if direction == FORWARD:
            self.add_edge(n1, n2)
        elif direction == BACKWARD:
            self.add_edge(n2, n1)
        return direction

    # ------------------------------------------------------------------------
    # Node / edge storage
    # ------------------------------------------------------------------------
    def add_node(self, node: PhyloNode) -> None:
        self.levels.setdefault(node.level, []).append(node)
        self.nodes_by_id[node.node_id] = node

    def add_edge(self, source: PhyloNode, target: PhyloNode) -> bool:
        """Add an edge; returns False if it was already present."""
        targets = self._edges.setdefault(source, {})
        if target in targets:
            return False
        targets[target] = None
        self._num_edges += 1
        return True

    def remove_edge(self, source: PhyloNode, target: PhyloNode) -> bool:
        targets = self._edges.get(source)
        if targets is None or target not in targets:
            return False
        del targets[target]
        self._num_edges -= 1
        return True

    def has_edge(self, source: PhyloNode, target: PhyloNode) -> bool:
        return target in self._edges.get(source, {})

    def children(self, node: PhyloNode) -> List[PhyloNode]:
        return list(self._edges.get(node, {}))

    def edges(self) -> Iterator[Edge]:
        for source, targets in self._edges.items():
            for target in targets:
                yield Edge(source, target)

    def adjacency(self) -> Dict[PhyloNode, Dict[PhyloNode, None]]:
        """Copy of the adjacency map in insertion order."""
        return {source: dict(targets) for source, targets in self._edges.items()}

    def in_degrees(self) -> Dict[PhyloNode, int]:
        degrees = {node: 0 for node in self.nodes_by_id.values()}
        for targets in self._edges.values():
            for target in targets:
                degrees[target] += 1
        return degrees

    @property
    def root(self) -> PhyloNode:
        return self.levels[self.total_samples + 1][0]

    @property
    def num_nodes(self) -> int:
        return len(self.nodes_by_id)

    @property
    def num_edges(self) -> int:
        return self._num_edges

    def nodes(self) -> List[PhyloNode]:
        return list(self.nodes_by_id.values())

    def sub_population_nodes(self) -> List[PhyloNode]:
        return [n for n in self.nodes_by_id.values() if not n.is_root]

    def make_sample_leaves(self) -> List[PhyloNode]:
        """
        Leaf nodes for the input samples.

        Sample leaves anchor samples in rendered lineages; they are not part
        of the node set searched for spanning trees.
        """
        first_id = self.num_nodes
        return [
            PhyloNode.sample_leaf(first_id + i, i, self.total_samples)
            for i in range(self.total_samples)
        ]

    # ------------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------------
    def fix_network(self) -> ConstraintGraph:
        """
        Reconstruct the network from the robust groups only.

        Used when no valid spanning tree exists for the current node set.
        """
        robust_groups = [g for g in self.groups if g.robust]
        logger.info(
            "Rebuilding constraint graph from %d of %d robust groups",
            len(robust_groups),
            len(self.groups),
        )
        return ConstraintGraph(robust_groups, self.total_samples, self.config)

    # ------------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------------
    def _log_graph(self) -> None:
        if lineage_logger.disabled:
            return
        rows = [
            [
                n.node_id,
                n.tag,
                n.level,
                " ".join(f"{v:.2f}" for v in n.aaf_vector),
            ]
            for n in self.nodes_by_id.values()
        ]
        lineage_logger.table(rows, headers=["id", "tag", "level", "AAF"], title="Nodes")
        edge_rows = [[e.source.node_id, e.target.node_id] for e in self.edges()]
        lineage_logger.table(edge_rows, headers=["from", "to"], title="Edges")
        lineage_logger.result("Nodes", self.num_nodes)
        lineage_logger.result("Edges", self.num_edges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_samples": self.total_samples,
            "nodes": [
                {
                    "id": n.node_id,
                    "kind": n.kind.value,
                    "tag": n.tag,
                    "level": n.level,
                    "aaf": n.aaf_vector.tolist(),
                    "std_dev": n.std_vector.tolist(),
                }
                for n in self.nodes_by_id.values()
            ],
            "edges": [[e.source.node_id, e.target.node_id] for e in self.edges()],
        }

    def __str__(self) -> str:
        lines = ["--- PHYLOGENETIC CONSTRAINT GRAPH --- "]
        lines.append(f"numNodes = {self.num_nodes}, numEdges = {self.num_edges}")
        lines.append("NODES: ")
        for level in range(self.total_samples + 1, -1, -1):
            lines.append(f"level = {level}: ")
            level_nodes = self.levels.get(level)
            if not level_nodes:
                lines.append("EMPTY ")
            else:
                lines.extend(str(n) for n in level_nodes)
        lines.append("EDGES: ")
        for edge in self.edges():
            lines.append(f"{edge.source.node_id} -> {edge.target.node_id}")
        return "\n".join(lines) + "\n"

    def __repr__(self) -> str:
        return f"ConstraintGraph(nodes={self.num_nodes}, edges={self.num_edges})"


def build_constraint_graph(
    groups: Sequence[MutationGroup],
    total_samples: int,
    config: Optional[LineageConfig] = None,
) -> ConstraintGraph:
    """Build the constraint graph for the sub-populations of the given groups."""
    return ConstraintGraph(groups, total_samples, config)
