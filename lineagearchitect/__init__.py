"""Core LineageArchitect package."""

__all__ = [
    "LineageConfig",
    "LineagePipeline",
    "LineageResult",
    "reconstruct_lineages",
    "Cluster",
    "MutationGroup",
    "ConstraintGraph",
    "LineageTree",
]


def __getattr__(name):
    if name in {"LineagePipeline", "LineageResult", "reconstruct_lineages"}:
        from .pipeline import LineagePipeline, LineageResult, reconstruct_lineages

        return locals()[name]
    if name == "LineageConfig":
        from .parameters import LineageConfig

        return LineageConfig
    if name in {"Cluster", "MutationGroup"}:
        from .elements.mutation_group import Cluster, MutationGroup

        return locals()[name]
    if name == "ConstraintGraph":
        from .graph.constraint_graph import ConstraintGraph

        return ConstraintGraph
    if name == "LineageTree":
        from .tree import LineageTree

        return LineageTree
    raise AttributeError(name)
