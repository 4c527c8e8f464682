from __future__ import annotations

from collections import deque
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from lineagearchitect.evaluation.scoring import compute_error_score
from lineagearchitect.graph.node import Edge, PhyloNode


class LineageTree:
    """
    Spanning tree of the phylogenetic constraint network.

    The tree stores its own structure (node list, children lists and parent
    pointers) while the node objects are shared with the constraint graph and
    with every other tree. Trees are built one edge at a time during
    enumeration and are treated as frozen once recorded; only the error score
    is filled in lazily.
    """

    __slots__ = ("nodes", "children", "parents", "total_samples", "_node_set", "_error_score")

    nodes: List[PhyloNode]
    children: Dict[PhyloNode, List[PhyloNode]]
    parents: Dict[PhyloNode, PhyloNode]
    total_samples: int
    _node_set: Set[PhyloNode]
    _error_score: Optional[float]

    def __init__(self, total_samples: int):
        self.nodes = []
        self.children = {}
        self.parents = {}
        self.total_samples = total_samples
        self._node_set = set()
        self._error_score = None

    # ------------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------------
    def add_node(self, node: PhyloNode) -> None:
        if node not in self._node_set:
            self.nodes.append(node)
            self._node_set.add(node)

    def add_edge(self, source: PhyloNode, target: PhyloNode) -> None:
        nbrs = self.children.setdefault(source, [])
        if target not in nbrs:
            nbrs.append(target)
        self.parents[target] = source

    def remove_edge(self, source: PhyloNode, target: PhyloNode) -> None:
        """Remove an edge, and its target if no edge points to it anymore."""
        nbrs = self.children.get(source)
        if nbrs is not None and target in nbrs:
            nbrs.remove(target)
            if not nbrs:
                del self.children[source]
        if self.parents.get(target) is source:
            del self.parents[target]
        if target not in self.parents and target in self._node_set:
            self.nodes.remove(target)
            self._node_set.discard(target)

    def clone(self) -> LineageTree:
        """Return a copy of the tree structure; nodes are shared, not copied."""
        copy = LineageTree(self.total_samples)
        copy.nodes = list(self.nodes)
        copy._node_set = set(self._node_set)
        copy.children = {n: list(nbrs) for n, nbrs in self.children.items()}
        copy.parents = dict(self.parents)
        return copy

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------
    @property
    def root(self) -> PhyloNode:
        return self.nodes[0]

    def __len__(self) -> int:
        return len(self.nodes)

    def contains_node(self, node: PhyloNode) -> bool:
        return node in self._node_set

    def contains_edge(self, source: PhyloNode, target: PhyloNode) -> bool:
        return target in self.children.get(source, ())

    def get_children(self, node: PhyloNode) -> List[PhyloNode]:
        return self.children.get(node, [])

    def get_parent(self, node: PhyloNode) -> Optional[PhyloNode]:
        return self.parents.get(node)

    def edges(self) -> List[Edge]:
        return [Edge(s, t) for s, nbrs in self.children.items() for t in nbrs]

    def edge_set(self) -> FrozenSet[Tuple[int, int]]:
        return frozenset(
            (s.node_id, t.node_id) for s, nbrs in self.children.items() for t in nbrs
        )

    def descendants(self, v: PhyloNode) -> Set[PhyloNode]:
        """All proper descendants of v."""
        found: Set[PhyloNode] = set()
        queue = deque(self.children.get(v, ()))
        while queue:
            n = queue.popleft()
            if n in found:
                continue
            found.add(n)
            queue.extend(self.children.get(n, ()))
        return found

    def is_descendant(self, v: PhyloNode, w: PhyloNode) -> bool:
        """Returns True if w is a descendant of v in this tree."""
        return w in self.descendants(v)

    def is_arborescence(self) -> bool:
        """Every non-root node has exactly one parent and is reachable from the root."""
        if not self.nodes:
            return False
        root = self.root
        if root in self.parents:
            return False
        in_counts: Dict[PhyloNode, int] = {}
        for nbrs in self.children.values():
            for t in nbrs:
                in_counts[t] = in_counts.get(t, 0) + 1
        for node in self.nodes[1:]:
            if in_counts.get(node, 0) != 1:
                return False
        reachable = self.descendants(root)
        reachable.add(root)
        return reachable == self._node_set

    # ------------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------------
    @property
    def error_score(self) -> float:
        """
        Square root of the summed squared excess of children AAF over parent AAF.

        Computed on first access and cached; the tree must not be modified
        afterwards.
        """
        if self._error_score is None:
            self._error_score = compute_error_score(self)
        return self._error_score

    def __lt__(self, other: LineageTree) -> bool:
        return self.error_score < other.error_score

    # ------------------------------------------------------------------------
    # Lineage report
    # ------------------------------------------------------------------------
    def get_lineage(self, sample_id: int, sample_name: str) -> str:
        """
        Returns the sub-populations of a given sample.

        The tree is traversed depth-first from the root; every node whose
        mutation group occurs in the sample contributes one line with its AAF
        and standard deviation, indented by its depth.
        """
        lines = [f"{sample_name}:", "GERMLINE"]
        if self.nodes:
            for child in self.get_children(self.root):
                self._lineage_helper(lines, 1, child, sample_id)
        return "\n".join(lines) + "\n"

    def _lineage_helper(
        self, lines: List[str], depth: int, node: PhyloNode, sample_id: int
    ) -> None:
        if node.contains_sample(sample_id):
            indent = "\t" * depth
            lines.append(
                f"{indent}{node.tag}: {node.aaf(sample_id):.2f} "
                f"[{node.std_dev(sample_id):.2f}]"
            )
        for child in self.get_children(node):
            self._lineage_helper(lines, depth + 1, child, sample_id)

    def sample_leaf_parents(self, sample_id: int) -> List[PhyloNode]:
        """
        Nodes a sample leaf hangs from in a rendered lineage.

        Levels are scanned upwards; a node carrying the sample is chosen
        unless it is an ancestor of a node chosen before, and among the nodes
        chosen on one level only the deepest are kept. A sample with no such
        node hangs from the root.
        """
        by_level: Dict[int, List[PhyloNode]] = {}
        for node in self.nodes:
            if not node.is_root:
                by_level.setdefault(node.level, []).append(node)

        chosen: List[PhyloNode] = []
        anchors: List[PhyloNode] = []
        for level in range(1, self.total_samples + 1):
            same_level: List[PhyloNode] = []
            for n2 in by_level.get(level, ()):
                if n2.aaf(sample_id) <= 0:
                    continue
                if any(self.is_descendant(n2, p) for p in chosen):
                    continue
                same_level.append(n2)
                chosen.append(n2)
            # drop nodes on this level that are connected to a deeper one
            anchors.extend(
                n1
                for n1 in same_level
                if not any(self.is_descendant(n1, n2) for n2 in same_level)
            )
        return anchors if anchors else [self.root]

    def anchor_sample_leaves(self, leaves: Sequence[PhyloNode]) -> List[Edge]:
        """Edges attaching each sample leaf to its parents in this tree."""
        edges: List[Edge] = []
        for leaf in leaves:
            assert leaf.leaf_sample_id is not None
            for parent in self.sample_leaf_parents(leaf.leaf_sample_id):
                edges.append(Edge(parent, leaf))
        return edges

    # ------------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------------
    def to_newick(self) -> str:
        if not self.nodes:
            return ";"
        return self._newick(self.root) + ";"

    def _newick(self, node: PhyloNode) -> str:
        name = "root" if node.is_root else str(node.node_id)
        nbrs = self.get_children(node)
        if not nbrs:
            return name
        return "(" + ",".join(self._newick(c) for c in nbrs) + ")" + name

    def to_dict(self) -> Dict[str, Any]:
        if not self.nodes:
            return {"error_score": self.error_score, "root": None}
        return {"error_score": self.error_score, "root": self._node_dict(self.root)}

    def _node_dict(self, node: PhyloNode) -> Dict[str, Any]:
        return {
            "id": node.node_id,
            "tag": node.tag,
            "aaf": node.aaf_vector.tolist(),
            "std_dev": node.std_vector.tolist(),
            "children": [self._node_dict(c) for c in self.get_children(node)],
        }

    def __repr__(self) -> str:
        return f"LineageTree(nodes={len(self.nodes)}, edges={len(self.parents)})"

    def __str__(self) -> str:
        lines = ["--- SPANNING TREE --- "]
        for s, nbrs in self.children.items():
            for t in nbrs:
                lines.append(f"{s.node_id} -> {t.node_id}")
        return "\n".join(lines) + "\n"
