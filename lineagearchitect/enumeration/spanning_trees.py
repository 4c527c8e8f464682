"""
Enumeration of all directed spanning trees of a constraint graph.

Based on the algorithm of Gabow & Myers (1978), "Finding all spanning trees
of directed and undirected graphs". A partial tree grows from the root by
popping edges off a frontier stack of edges leaving the tree. After each
branch the edge is excluded from the graph for the rest of the level, which
makes the outputs pairwise distinct; the bridge test stops a level as soon
as the excluded edge was the last way to reach its target.
"""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from lineagearchitect.graph.constraint_graph import ConstraintGraph
from lineagearchitect.graph.node import Edge, PhyloNode
from lineagearchitect.logger import lineage_logger
from lineagearchitect.parameters import PROGRESS_INTERVAL
from lineagearchitect.tree import LineageTree

logger = logging.getLogger(__name__)


@dataclass
class EnumerationResult:
    """Spanning trees found by one enumeration run."""

    trees: List[LineageTree] = field(default_factory=list)
    complete: bool = True
    """False when a budget stopped the search; the trees are valid but not all of them."""

    elapsed: float = 0.0


class SpanningTreeEnumerator:
    """
    Finds all spanning trees of a constraint graph rooted at its root.

    The graph is only read. Excluded edges are tracked in an enumerator-owned
    mask over a snapshot of the adjacency, so edge iteration keeps the
    graph's insertion order and several enumerators may share one graph.

    Args:
        graph: Constraint graph whose nodes must all be reachable from the root
        max_trees: Stop after recording this many trees
        max_seconds: Stop once this much wall time has elapsed
    """

    def __init__(
        self,
        graph: ConstraintGraph,
        max_trees: Optional[int] = None,
        max_seconds: Optional[float] = None,
    ):
        self.graph = graph
        self.max_trees = max_trees
        self.max_seconds = max_seconds

        self._adjacency: Dict[PhyloNode, Dict[PhyloNode, None]] = graph.adjacency()
        self._sources: Dict[PhyloNode, Dict[PhyloNode, None]] = {}
        for source, targets in self._adjacency.items():
            for target in targets:
                self._sources.setdefault(target, {})[source] = None

        self._excluded: Set[Tuple[PhyloNode, PhyloNode]] = set()
        self._trees: List[LineageTree] = []
        # The last spanning tree output so far
        self._last: Optional[LineageTree] = None
        self._stopped = False
        self._deadline: Optional[float] = None

    def enumerate_trees(self) -> EnumerationResult:
        """Generate the spanning trees; each distinct tree is returned exactly once."""
        start = time.perf_counter()
        self._excluded.clear()
        self._trees = []
        self._last = None
        self._stopped = False
        self._deadline = start + self.max_seconds if self.max_seconds else None

        root = self.graph.root
        if self.graph.num_nodes > 1:
            # initialize the tree to contain the root, and F to contain all (root, v)
            t = LineageTree(self.graph.total_samples)
            t.add_node(root)
            f = [Edge(root, n) for n in self._active_targets(root)]

            # one frame per tree node on top of the caller's stack
            limit = sys.getrecursionlimit()
            sys.setrecursionlimit(limit + self.graph.num_nodes)
            try:
                self._grow(t, f)
            finally:
                sys.setrecursionlimit(limit)

        elapsed = time.perf_counter() - start
        result = EnumerationResult(
            trees=self._trees, complete=not self._stopped, elapsed=elapsed
        )
        logger.info(
            "Enumerated %d spanning trees in %.3fs%s",
            len(result.trees),
            elapsed,
            "" if result.complete else " (budget reached, partial result)",
        )
        lineage_logger.result("Spanning trees", len(result.trees))
        return result

    # ------------------------------------------------------------------------
    # GROW
    # ------------------------------------------------------------------------
    def _grow(self, t: LineageTree, f: List[Edge]) -> None:
        # if the tree t contains all the nodes, it is complete
        if len(t) == self.graph.num_nodes:
            self._record(t)
            return

        # edges excluded at this level, restored on return
        ff: List[Edge] = []
        b = False
        while not b and f and not self._budget_exhausted():
            # new tree edge
            e = f.pop()
            v = e.target
            t.add_node(v)
            t.add_edge(e.source, v)
            saved = list(f)

            # push (v, w) for w not in T, and remove (w, v) for w in T
            for w in self._active_targets(v):
                if not t.contains_node(w):
                    f.append(Edge(v, w))
            f[:] = [x for x in f if x.target is not v]

            self._grow(t, f)

            f[:] = saved
            # remove e from T and G
            t.remove_edge(e.source, v)
            self._excluded.add((e.source, v))
            ff.append(e)

            b = self._is_bridge(v)

        # pop from ff, push to f, add back to G
        for e in reversed(ff):
            f.append(e)
            self._excluded.discard((e.source, e.target))

    def _record(self, t: LineageTree) -> None:
        tree = t.clone()
        self._trees.append(tree)
        self._last = tree
        if len(self._trees) % PROGRESS_INTERVAL == 0:
            logger.info("Found %d trees so far", len(self._trees))
            lineage_logger.info(f"{len(self._trees)} trees recorded")
        if self.max_trees is not None and len(self._trees) >= self.max_trees:
            self._stopped = True

    def _is_bridge(self, v: PhyloNode) -> bool:
        """
        True when no remaining edge (w, v) has w outside the subtree of v in
        the last tree output, i.e. v cannot be reached any other way.
        """
        if self._last is None:
            return True
        below = self._last.descendants(v)
        for w in self._sources.get(v, ()):
            if (w, v) in self._excluded:
                continue
            if w not in below:
                return False
        return True

    def _active_targets(self, v: PhyloNode) -> List[PhyloNode]:
        return [
            w for w in self._adjacency.get(v, ()) if (v, w) not in self._excluded
        ]

    def _budget_exhausted(self) -> bool:
        if not self._stopped and self._deadline is not None:
            if time.perf_counter() > self._deadline:
                logger.warning(
                    "Enumeration time budget of %gs reached", self.max_seconds
                )
                lineage_logger.warning("Enumeration stopped by the time budget")
                self._stopped = True
        return self._stopped


def enumerate_spanning_trees(
    graph: ConstraintGraph,
    max_trees: Optional[int] = None,
    max_seconds: Optional[float] = None,
) -> List[LineageTree]:
    """Return all spanning trees of the graph rooted at its root (or the budgeted prefix)."""
    return SpanningTreeEnumerator(graph, max_trees, max_seconds).enumerate_trees().trees
