from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from lineagearchitect.elements.mutation_group import Cluster, MutationGroup


class NodeKind(Enum):
    ROOT = "root"
    SUBPOPULATION = "subpopulation"
    SAMPLE_LEAF = "sample_leaf"


class PhyloNode:
    """
    Node of the constraint graph.

    A node is the germline root, a sub-population (one cluster of one mutation
    group) or a sample leaf. Nodes are immutable once built and are shared by
    reference between the graph and every tree that includes them, so
    equality and hashing are by identity.

    The per-sample AAF and standard deviation are expanded once into dense
    vectors over all samples; samples absent from the node's group read as 0.
    """

    __slots__ = (
        "node_id",
        "kind",
        "level",
        "group",
        "cluster_index",
        "leaf_sample_id",
        "aaf_vector",
        "std_vector",
    )

    node_id: int
    kind: NodeKind
    level: int
    group: Optional[MutationGroup]
    cluster_index: Optional[int]
    leaf_sample_id: Optional[int]
    aaf_vector: NDArray[np.float64]
    std_vector: NDArray[np.float64]

    def __init__(
        self,
        node_id: int,
        kind: NodeKind,
        level: int,
        aaf_vector: NDArray[np.float64],
        std_vector: NDArray[np.float64],
        group: Optional[MutationGroup] = None,
        cluster_index: Optional[int] = None,
        leaf_sample_id: Optional[int] = None,
    ):
        self.node_id = node_id
        self.kind = kind
        self.level = level
        self.group = group
        self.cluster_index = cluster_index
        self.leaf_sample_id = leaf_sample_id
        self.aaf_vector = aaf_vector
        self.std_vector = std_vector
        self.aaf_vector.setflags(write=False)
        self.std_vector.setflags(write=False)

    # ------------------------------------------------------------------------
    # Constructors per node kind
    # ------------------------------------------------------------------------
    @classmethod
    def root(cls, node_id: int, total_samples: int, aaf_max: float) -> PhyloNode:
        """Germline root: maximal AAF everywhere, level above every other node."""
        return cls(
            node_id,
            NodeKind.ROOT,
            total_samples + 1,
            np.full(total_samples, aaf_max, dtype=np.float64),
            np.zeros(total_samples, dtype=np.float64),
        )

    @classmethod
    def sub_population(
        cls,
        node_id: int,
        group: MutationGroup,
        cluster_index: int,
        total_samples: int,
    ) -> PhyloNode:
        cluster = group.clusters[cluster_index]
        aaf = np.zeros(total_samples, dtype=np.float64)
        std = np.zeros(total_samples, dtype=np.float64)
        for local_index, sample_id in enumerate(group.sample_ids):
            aaf[sample_id] = cluster.centroid[local_index]
            std[sample_id] = cluster.std_dev[local_index]
        return cls(
            node_id,
            NodeKind.SUBPOPULATION,
            group.num_samples,
            aaf,
            std,
            group=group,
            cluster_index=cluster_index,
        )

    @classmethod
    def sample_leaf(cls, node_id: int, sample_id: int, total_samples: int) -> PhyloNode:
        """Leaf anchoring one input sample in a rendered lineage."""
        return cls(
            node_id,
            NodeKind.SAMPLE_LEAF,
            0,
            np.zeros(total_samples, dtype=np.float64),
            np.zeros(total_samples, dtype=np.float64),
            leaf_sample_id=sample_id,
        )

    # ------------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------------
    @property
    def is_root(self) -> bool:
        return self.kind is NodeKind.ROOT

    @property
    def is_leaf(self) -> bool:
        return self.kind is NodeKind.SAMPLE_LEAF

    @property
    def cluster(self) -> Optional[Cluster]:
        if self.group is None or self.cluster_index is None:
            return None
        return self.group.clusters[self.cluster_index]

    def aaf(self, sample_id: int) -> float:
        """Cluster centroid AAF for the sample, 0 if the sample is not represented."""
        return float(self.aaf_vector[sample_id])

    def std_dev(self, sample_id: int) -> float:
        """Cluster standard deviation for the sample, 0 if the sample is not represented."""
        return float(self.std_vector[sample_id])

    def contains_sample(self, sample_id: int) -> bool:
        return self.group is not None and self.group.contains_sample(sample_id)

    @property
    def tag(self) -> str:
        if self.is_root:
            return "GERMLINE"
        if self.is_leaf:
            return f"sample {self.leaf_sample_id}"
        assert self.group is not None
        return self.group.tag

    @property
    def label(self) -> str:
        """Short multi-line label used by renderers."""
        if self.kind is NodeKind.SUBPOPULATION:
            cluster = self.cluster
            size = cluster.size if cluster is not None else 0
            return f"{self.node_id}:\n{self.tag}\n({size})"
        if self.is_leaf:
            return self.tag
        return "root"

    def __repr__(self) -> str:
        return f"PhyloNode({self.node_id}, {self.kind.value}, level={self.level})"

    def __str__(self) -> str:
        if self.kind is NodeKind.SUBPOPULATION:
            return f"Node {self.node_id}: group tag = {self.tag}, {self.cluster}"
        if self.is_leaf:
            return f"Node {self.node_id}: leaf sample id = {self.leaf_sample_id}"
        return f"Node {self.node_id}: root"


@dataclass(frozen=True)
class Edge:
    """Directed relation: ``source`` happened before ``target``."""

    source: PhyloNode
    target: PhyloNode

    def __repr__(self) -> str:
        return f"Edge({self.source.node_id} -> {self.target.node_id})"
