"""
Custom exceptions for lineage reconstruction.

"No relation" between two nodes and a violated sum-constraint are ordinary
return values of the builder and the evaluator; only the conditions below
are raised.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, NoReturn

if TYPE_CHECKING:
    from lineagearchitect.graph.node import PhyloNode


class LineageError(Exception):
    """Base exception for lineage reconstruction errors."""

    pass


class MalformedInputError(LineageError):
    """Raised when mutation group data is rejected before graph construction."""

    pass


class DisconnectedNodeError(LineageError):
    """Raised when a node is left unreachable from the root after connectivity repair."""

    @staticmethod
    def raise_unreachable(node: PhyloNode, total_samples: int) -> NoReturn:
        """
        Raises a DisconnectedNodeError for a node no path from the root reaches.

        Args:
            node: The unreachable node of the constraint graph
            total_samples: Sample count the graph was built for

        Raises:
            DisconnectedNodeError: Always raised with detailed error information
        """
        from lineagearchitect.logger import lineage_logger

        message = (
            f"Node {node.node_id} (level {node.level}) is not reachable from the root "
            f"after connectivity repair in a graph over {total_samples} samples. "
            f"This indicates malformed input, e.g. inconsistent sample counts."
        )
        if not lineage_logger.disabled:
            lineage_logger.error(message)
        raise DisconnectedNodeError(message)


class NoValidLineageError(LineageError):
    """Raised when no spanning tree passes the AAF constraints, even after rebuilding."""

    pass
