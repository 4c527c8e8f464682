"""Input records for lineage reconstruction."""

from lineagearchitect.elements.mutation_group import Cluster, MutationGroup

__all__ = ["Cluster", "MutationGroup"]
