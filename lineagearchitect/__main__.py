#!/usr/bin/env python3
"""
Command-line interface for lineage reconstruction.

Reads mutation groups (sub-population clusters with per-sample AAF centroids)
from a JSON file, builds the constraint graph, enumerates its spanning trees
and prints the lineage of every sample in the best tree.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from lineagearchitect.exceptions import MalformedInputError, NoValidLineageError
from lineagearchitect.io import read_groups, write_graph_json, write_trees_json
from lineagearchitect.logger import lineage_logger
from lineagearchitect.parameters import AAF_ERROR_MARGIN, LineageConfig
from lineagearchitect.pipeline import LineagePipeline
from lineagearchitect.validators import NonNegativeFloatAction, PositiveIntegerAction


def setup_argument_parser() -> argparse.ArgumentParser:
    """
    Configure and return the argument parser.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="lineagearchitect",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "input",
        help="JSON file with samples and mutation groups",
        type=Path,
    )

    model_group = parser.add_argument_group("model options")
    model_group.add_argument(
        "-e",
        "--error-margin",
        help=f"AAF error margin (default: {AAF_ERROR_MARGIN})",
        default=AAF_ERROR_MARGIN,
        type=float,
        action=NonNegativeFloatAction,
    )
    model_group.add_argument(
        "--hidden-edges",
        help="Also compare every level with all lower levels",
        action="store_true",
    )
    model_group.add_argument(
        "--no-rebuild",
        help="Do not rebuild the graph from robust groups when no tree is valid",
        action="store_true",
    )

    budget_group = parser.add_argument_group("enumeration budget")
    budget_group.add_argument(
        "--max-trees",
        help="Stop after this many spanning trees",
        type=int,
        action=PositiveIntegerAction,
    )
    budget_group.add_argument(
        "--max-seconds",
        help="Stop enumerating after this many seconds",
        type=float,
    )

    output_group = parser.add_argument_group("output options")
    output_group.add_argument(
        "-o",
        "--output",
        help="Write the ranked trees as JSON",
        type=Path,
    )
    output_group.add_argument(
        "--graph-output",
        help="Write the constraint graph as JSON",
        type=Path,
    )
    output_group.add_argument(
        "-k",
        "--top",
        help="Number of trees to write and list (default: 1)",
        default=1,
        type=int,
        action=PositiveIntegerAction,
    )
    output_group.add_argument(
        "--debug-html",
        help="Write an HTML trace of graph construction and enumeration",
        type=Path,
    )
    output_group.add_argument(
        "-v",
        "--verbose",
        help="Verbose logging",
        action="store_true",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.verbose:
        lineage_logger.setup_console_logging(logging.DEBUG)
    elif args.debug_html:
        lineage_logger.disabled = False

    try:
        config = LineageConfig(
            aaf_error_margin=args.error_margin,
            add_hidden_edges=args.hidden_edges,
            max_trees=args.max_trees,
            max_seconds=args.max_seconds,
            rebuild_on_failure=not args.no_rebuild,
        )
    except ValueError as e:
        parser.error(str(e))

    print(f"Loading mutation groups from {args.input}...")
    try:
        groups, total_samples, sample_names = read_groups(args.input)
        print(f"Samples: {total_samples}, mutation groups: {len(groups)}")
        result = LineagePipeline(config=config).run(groups, total_samples, sample_names)
    except (MalformedInputError, NoValidLineageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if args.debug_html:
            lineage_logger.write_html(args.debug_html)

    print(
        f"Constraint graph: {result.graph.num_nodes} nodes, {result.graph.num_edges} edges"
    )
    if result.rebuilt:
        print("Graph was rebuilt from robust groups only")
    status = "" if result.complete else " (enumeration budget reached)"
    print(
        f"{len(result.trees)} of {result.num_enumerated} spanning trees are valid{status}"
    )

    top = result.trees[: args.top]
    for rank, tree in enumerate(top, start=1):
        print(f"#{rank} error = {tree.error_score:.4f}  {tree.to_newick()}")

    print()
    print(result.lineage_report())

    if args.output:
        write_trees_json(top, args.output)
        print(f"Wrote {len(top)} trees to {args.output}")
    if args.graph_output:
        write_graph_json(result.graph, args.graph_output)
        print(f"Wrote constraint graph to {args.graph_output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
