import json
from pathlib import Path
from typing import IO, Any, Dict, List, Sequence, Tuple, Union

import numpy as np

from lineagearchitect.elements.mutation_group import Cluster, MutationGroup
from lineagearchitect.exceptions import MalformedInputError
from lineagearchitect.graph.constraint_graph import ConstraintGraph
from lineagearchitect.graph.node import Edge, PhyloNode
from lineagearchitect.tree import LineageTree

PathLike = Union[str, Path]


class LineageEncoder(json.JSONEncoder):
    def default(self, o: Any):
        if isinstance(o, LineageTree):
            return o.to_dict()

        if isinstance(o, ConstraintGraph):
            return o.to_dict()

        if isinstance(o, (MutationGroup, Cluster)):
            return o.to_dict()

        if isinstance(o, PhyloNode):
            return o.node_id

        if isinstance(o, Edge):
            return [o.source.node_id, o.target.node_id]

        # numpy scalars and arrays
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.generic):
            return o.item()

        return super().default(o)


def parse_groups(data: Dict[str, Any]) -> Tuple[List[MutationGroup], int, List[str]]:
    """
    Read mutation groups from a decoded JSON document.

    Expected layout::

        {
            "samples": ["normal", "tumor_a", "tumor_b"],
            "groups": [
                {"tag": "011", "sample_ids": [1, 2], "robust": true,
                 "clusters": [{"centroid": [0.4, 0.3], "std_dev": [0.02, 0.03], "size": 12}]}
            ]
        }

    ``total_samples`` may be given instead of ``samples`` when no names exist.
    """
    if "samples" in data:
        sample_names = [str(s) for s in data["samples"]]
        total_samples = int(data.get("total_samples", len(sample_names)))
    elif "total_samples" in data:
        total_samples = int(data["total_samples"])
        sample_names = [f"sample_{i}" for i in range(total_samples)]
    else:
        raise MalformedInputError("Input needs either 'samples' or 'total_samples'")

    if len(sample_names) != total_samples:
        raise MalformedInputError(
            f"{len(sample_names)} sample names given for {total_samples} samples"
        )

    groups = [MutationGroup.from_dict(g) for g in data.get("groups", [])]
    return groups, total_samples, sample_names


def read_groups(path: PathLike) -> Tuple[List[MutationGroup], int, List[str]]:
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedInputError(f"{path} is not valid JSON: {e}") from e
    return parse_groups(data)


def write_groups(
    groups: Sequence[MutationGroup], sample_names: Sequence[str], path: PathLike
) -> None:
    document = {"samples": list(sample_names), "groups": list(groups)}
    with open(path, mode="w") as f:
        json.dump(document, f, cls=LineageEncoder, indent=2)


def dump_trees(trees: Sequence[LineageTree], f: IO[str]) -> None:
    json.dump(list(trees), f, cls=LineageEncoder, indent=2)


def write_trees_json(trees: Sequence[LineageTree], path: PathLike) -> None:
    with open(path, mode="w") as f:
        dump_trees(trees, f)


def write_graph_json(graph: ConstraintGraph, path: PathLike) -> None:
    with open(path, mode="w") as f:
        json.dump(graph, f, cls=LineageEncoder, indent=2)
