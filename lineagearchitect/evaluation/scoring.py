"""
Scoring and filtering of candidate lineage trees.

A sub-population's frequency bounds the combined frequency of its children
in every sample. Trees are filtered on that sum-constraint (with a per-child
noise margin) and ranked by how far their children sums exceed the parents.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from lineagearchitect.parameters import AAF_ERROR_MARGIN

if TYPE_CHECKING:
    from lineagearchitect.graph.node import PhyloNode
    from lineagearchitect.tree import LineageTree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstraintViolation:
    """A (node, sample) pair whose children AAF sum breaks the sum-constraint."""

    node: PhyloNode
    sample_id: int
    children_sum: float
    parent_aaf: float
    capacity_ancestor: Optional[PhyloNode]
    """Nearest ancestor of ``node`` with remaining AAF capacity in the sample."""


def _children_sum(children: Sequence[PhyloNode]) -> NDArray[np.float64]:
    total = np.zeros_like(children[0].aaf_vector)
    for child in children:
        total = total + child.aaf_vector
    return total


def check_aaf_constraints(
    tree: LineageTree, margin: float = AAF_ERROR_MARGIN
) -> bool:
    """
    Returns True if the tree passes the AAF constraints.

    For every node with children C and every sample, the children's AAF sum
    must stay strictly below the node's AAF plus ``margin`` per child.
    """
    for node, children in tree.children.items():
        if not children:
            continue
        bound = node.aaf_vector + margin * len(children)
        if np.any(_children_sum(children) >= bound):
            return False
    return True


def compute_error_score(tree: LineageTree) -> float:
    """
    Error score of a tree: sqrt of the summed squared deviation of the
    children AAF sums above the parent AAF, over all nodes and samples.
    """
    err = 0.0
    for node, children in tree.children.items():
        if not children:
            continue
        excess = _children_sum(children) - node.aaf_vector
        positive = excess[excess > 0]
        err += float(np.dot(positive, positive))
    return math.sqrt(err)


def rank_trees(trees: Sequence[LineageTree]) -> List[LineageTree]:
    """Sort trees by error score, lowest error first (stable for ties)."""
    return sorted(trees, key=lambda t: t.error_score)


def filter_trees(
    trees: Sequence[LineageTree], margin: float = AAF_ERROR_MARGIN
) -> List[LineageTree]:
    """Drop every tree that fails the AAF sum-constraint, keeping the input order."""
    kept = [t for t in trees if check_aaf_constraints(t, margin)]
    logger.debug("%d of %d trees pass the AAF constraints", len(kept), len(trees))
    return kept


def evaluate_trees(
    trees: Sequence[LineageTree], margin: float = AAF_ERROR_MARGIN
) -> List[LineageTree]:
    """Filter on the AAF constraints, then rank by error score."""
    return rank_trees(filter_trees(trees, margin))


def ancestors_with_capacity(
    tree: LineageTree,
) -> Dict[PhyloNode, List[Optional[PhyloNode]]]:
    """
    For every node and sample, the nearest ancestor with remaining AAF capacity.

    An ancestor has capacity in a sample when the AAF sum of its children is
    below its own AAF there. The map is built breadth-first from the root and
    kept outside the nodes, which are shared between trees.
    """
    capacity: Dict[PhyloNode, List[Optional[PhyloNode]]] = {}
    if not tree.nodes:
        return capacity
    root = tree.root
    capacity[root] = [None] * tree.total_samples

    queue = [root]
    while queue:
        node = queue.pop(0)
        children = tree.get_children(node)
        if not children:
            continue
        sums = _children_sum(children)
        for child in children:
            capacity[child] = [
                node if sums[i] < node.aaf_vector[i] else capacity[node][i]
                for i in range(tree.total_samples)
            ]
        queue.extend(children)
    return capacity


def find_constraint_violations(
    tree: LineageTree, margin: float = AAF_ERROR_MARGIN
) -> List[ConstraintViolation]:
    """
    List every (node, sample) pair that breaks the AAF sum-constraint.

    Each violation carries the nearest ancestor with remaining capacity, the
    candidate a hidden edge would have to come from for the tree to be
    repaired. No repair is attempted here.
    """
    capacity = ancestors_with_capacity(tree)
    violations: List[ConstraintViolation] = []
    for node, children in tree.children.items():
        if not children:
            continue
        sums = _children_sum(children)
        bound = node.aaf_vector + margin * len(children)
        for i in np.flatnonzero(sums >= bound):
            violations.append(
                ConstraintViolation(
                    node=node,
                    sample_id=int(i),
                    children_sum=float(sums[i]),
                    parent_aaf=node.aaf(int(i)),
                    capacity_ancestor=capacity.get(node, [None] * tree.total_samples)[int(i)],
                )
            )
    return violations


def trees_are_distinct(trees: Sequence[LineageTree]) -> bool:
    """Debugging only - tests that no two trees share the same edge set."""
    seen = set()
    for tree in trees:
        edges = tree.edge_set()
        if edges in seen:
            logger.warning("Found same tree:\n%s", tree)
            return False
        seen.add(edges)
    return True
