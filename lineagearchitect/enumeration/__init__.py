"""Spanning-tree enumeration over constraint graphs."""

from lineagearchitect.enumeration.spanning_trees import (
    EnumerationResult,
    SpanningTreeEnumerator,
    enumerate_spanning_trees,
)

__all__ = ["EnumerationResult", "SpanningTreeEnumerator", "enumerate_spanning_trees"]
