"""Lineage reconstruction pipeline."""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from lineagearchitect.elements.mutation_group import MutationGroup
from lineagearchitect.enumeration.spanning_trees import SpanningTreeEnumerator
from lineagearchitect.evaluation.scoring import filter_trees, rank_trees
from lineagearchitect.exceptions import NoValidLineageError
from lineagearchitect.graph.constraint_graph import ConstraintGraph
from lineagearchitect.logger import lineage_logger
from lineagearchitect.parameters import LineageConfig
from lineagearchitect.tree import LineageTree


@dataclass
class LineageResult:
    """Ranked lineage trees and the constraint graph they were drawn from."""

    trees: List[LineageTree]
    """Trees passing the AAF constraints, lowest error score first."""

    graph: ConstraintGraph
    """The graph the trees span (the robust-only graph after a rebuild)."""

    rebuilt: bool = False
    complete: bool = True
    num_enumerated: int = 0
    processing_time: float = 0.0
    sample_names: List[str] = field(default_factory=list)

    @property
    def best(self) -> LineageTree:
        return self.trees[0]

    def lineage_report(self, sample_names: Optional[Sequence[str]] = None) -> str:
        """Per-sample lineage text of the best tree."""
        names = list(sample_names or self.sample_names)
        total = self.graph.total_samples
        if len(names) < total:
            names.extend(f"sample_{i}" for i in range(len(names), total))
        return "\n".join(self.best.get_lineage(i, names[i]) for i in range(total))


class LineagePipeline:
    """
    Coordinates graph construction, spanning-tree enumeration and evaluation.

    When no tree survives the AAF constraints the graph is rebuilt once from
    the robust groups only; if that still yields nothing, the caller gets a
    NoValidLineageError.
    """

    def __init__(
        self,
        config: Optional[LineageConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the lineage pipeline.

        Args:
            config: Pipeline configuration settings.
            logger: Logger instance for pipeline events.
        """
        self.config: LineageConfig = config or LineageConfig()
        self.logger = logger or logging.getLogger(self.config.logger_name)

    def run(
        self,
        groups: Sequence[MutationGroup],
        total_samples: int,
        sample_names: Optional[Sequence[str]] = None,
    ) -> LineageResult:
        """
        Reconstructs and ranks the lineage trees for the given mutation groups.

        Args:
            groups: Mutation groups with their sub-population clusters.
            total_samples: Number of samples.
            sample_names: Optional sample names for the lineage report.

        Returns:
            A LineageResult with at least one tree.

        Raises:
            MalformedInputError: If the input is rejected by the builder.
            NoValidLineageError: If no tree passes the AAF constraints.
        """
        start_time = time.time()

        graph = self._build_graph(groups, total_samples)
        trees, complete, enumerated = self._lineage_trees(graph)
        rebuilt = False

        if not trees and self.config.rebuild_on_failure:
            self.logger.warning(
                "No valid spanning tree among %d candidates, rebuilding from robust groups",
                enumerated,
            )
            lineage_logger.subsection("Rebuild from robust groups")
            graph = graph.fix_network()
            rebuilt = True
            trees, complete, rebuilt_count = self._lineage_trees(graph)
            enumerated += rebuilt_count

        if not trees:
            raise NoValidLineageError(
                f"No lineage tree satisfies the AAF constraints "
                f"({enumerated} candidate trees over {total_samples} samples)"
            )

        processing_time = time.time() - start_time
        self.logger.info(
            "Found %d valid lineage trees (best error %.4f) in %.2f seconds",
            len(trees),
            trees[0].error_score,
            processing_time,
        )
        result = LineageResult(
            trees=trees,
            graph=graph,
            rebuilt=rebuilt,
            complete=complete,
            num_enumerated=enumerated,
            processing_time=processing_time,
            sample_names=list(sample_names or []),
        )
        if not lineage_logger.disabled:
            lineage_logger.preformatted(result.lineage_report())
        return result

    # --- Private helpers ---

    def _build_graph(
        self, groups: Sequence[MutationGroup], total_samples: int
    ) -> ConstraintGraph:
        t_start = time.perf_counter()
        graph = ConstraintGraph(groups, total_samples, self.config)
        self.logger.info(
            "Constraint graph: %d nodes, %d edges (built in %.3fs)",
            graph.num_nodes,
            graph.num_edges,
            time.perf_counter() - t_start,
        )
        return graph

    def _lineage_trees(
        self, graph: ConstraintGraph
    ) -> Tuple[List[LineageTree], bool, int]:
        """Enumerate, filter and rank; returns (trees, complete, enumerated count)."""
        lineage_logger.section("Spanning tree enumeration")
        result = SpanningTreeEnumerator(
            graph,
            max_trees=self.config.max_trees,
            max_seconds=self.config.max_seconds,
        ).enumerate_trees()

        valid = filter_trees(result.trees, self.config.aaf_error_margin)
        ranked = rank_trees(valid)
        self.logger.info(
            "%d of %d spanning trees pass the AAF constraints",
            len(ranked),
            len(result.trees),
        )
        if ranked:
            lineage_logger.table(
                [[i, t.error_score, t.to_newick()] for i, t in enumerate(ranked[:10])],
                headers=["rank", "error", "tree"],
                title="Best trees",
                floatfmt=".4f",
            )
        lineage_logger.end_section()
        return ranked, result.complete, len(result.trees)


def reconstruct_lineages(
    groups: Sequence[MutationGroup],
    total_samples: int,
    config: Optional[LineageConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> LineageResult:
    """
    Run the complete pipeline.

    Args:
        groups: Mutation groups with their sub-population clusters
        total_samples: Number of samples
        config: Optional configuration (error margin, budgets, rebuild)
        logger: Optional logger for tracking operations

    Returns:
        LineageResult with the ranked valid trees
    """
    return LineagePipeline(config=config, logger=logger).run(groups, total_samples)
