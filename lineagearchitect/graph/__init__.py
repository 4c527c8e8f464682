"""Constraint graph model and builder."""

from lineagearchitect.graph.node import Edge, NodeKind, PhyloNode
from lineagearchitect.graph.constraint_graph import (
    BACKWARD,
    FORWARD,
    NO_RELATION,
    ConstraintGraph,
    build_constraint_graph,
)

__all__ = [
    "Edge",
    "NodeKind",
    "PhyloNode",
    "ConstraintGraph",
    "build_constraint_graph",
    "FORWARD",
    "BACKWARD",
    "NO_RELATION",
]
