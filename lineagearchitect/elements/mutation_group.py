"""Mutation group and sub-population cluster records consumed by the graph builder."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from lineagearchitect.exceptions import MalformedInputError


class Cluster:
    """
    Sub-population cluster of a mutation group.

    Attributes:
        centroid: AAF centroid, one entry per sample present in the group.
        std_dev: Standard deviation of the member AAFs, parallel to ``centroid``.
        size: Number of member mutations.
    """

    __slots__ = ("centroid", "std_dev", "size")

    centroid: NDArray[np.float64]
    std_dev: NDArray[np.float64]
    size: int

    def __init__(
        self,
        centroid: Sequence[float],
        std_dev: Optional[Sequence[float]] = None,
        size: int = 0,
    ):
        self.centroid = np.asarray(centroid, dtype=np.float64)
        if std_dev is None:
            self.std_dev = np.zeros_like(self.centroid)
        else:
            self.std_dev = np.asarray(std_dev, dtype=np.float64)
        self.size = size

    def __repr__(self) -> str:
        centroid = ", ".join(f"{v:.2f}" for v in self.centroid)
        return f"Cluster([{centroid}], size={self.size})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "centroid": self.centroid.tolist(),
            "std_dev": self.std_dev.tolist(),
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Cluster:
        return cls(
            centroid=data["centroid"],
            std_dev=data.get("std_dev"),
            size=int(data.get("size", 0)),
        )


class MutationGroup:
    """
    Group of somatic mutations that occur in the same set of samples.

    The group's sub-populations are given as clusters whose vectors are indexed
    by the group-local sample index. Samples outside ``sample_ids`` are absent
    from the group and read as AAF 0.
    """

    def __init__(
        self,
        tag: str,
        sample_ids: Sequence[int],
        clusters: Sequence[Cluster],
        robust: bool = True,
    ):
        self.tag = tag
        self.sample_ids: List[int] = [int(s) for s in sample_ids]
        self.clusters: List[Cluster] = list(clusters)
        self.robust = robust
        self._index: Dict[int, int] = {s: i for i, s in enumerate(self.sample_ids)}

    @property
    def num_samples(self) -> int:
        """Number of samples the group's mutations occur in."""
        return len(self.sample_ids)

    def sample_index(self, sample_id: int) -> int:
        """Return the group-local index of a sample, or -1 if absent."""
        return self._index.get(sample_id, -1)

    def contains_sample(self, sample_id: int) -> bool:
        return sample_id in self._index

    def validate(self, total_samples: int) -> None:
        """
        Reject malformed numeric input.

        Args:
            total_samples: Global number of samples.

        Raises:
            MalformedInputError: On negative values, vector length mismatch,
                unknown or duplicate sample ids, or a group without clusters.
        """
        if not self.clusters:
            raise MalformedInputError(f"Group {self.tag!r} has no clusters")
        if not self.sample_ids:
            raise MalformedInputError(f"Group {self.tag!r} occurs in no sample")
        if len(self._index) != len(self.sample_ids):
            raise MalformedInputError(
                f"Group {self.tag!r} lists a sample more than once: {self.sample_ids}"
            )
        for sample_id in self.sample_ids:
            if not 0 <= sample_id < total_samples:
                raise MalformedInputError(
                    f"Group {self.tag!r} refers to sample {sample_id}, "
                    f"expected an id in [0, {total_samples})"
                )
        for i, cluster in enumerate(self.clusters):
            if cluster.centroid.ndim != 1 or len(cluster.centroid) != self.num_samples:
                raise MalformedInputError(
                    f"Cluster {i} of group {self.tag!r} has {cluster.centroid.size} "
                    f"AAF values for {self.num_samples} samples"
                )
            if cluster.std_dev.shape != cluster.centroid.shape:
                raise MalformedInputError(
                    f"Cluster {i} of group {self.tag!r}: std-dev vector length "
                    f"{cluster.std_dev.size} does not match centroid length "
                    f"{cluster.centroid.size}"
                )
            if not np.all(np.isfinite(cluster.centroid)) or np.any(cluster.centroid < 0):
                raise MalformedInputError(
                    f"Cluster {i} of group {self.tag!r} has an invalid AAF: "
                    f"{cluster.centroid.tolist()}"
                )
            if not np.all(np.isfinite(cluster.std_dev)) or np.any(cluster.std_dev < 0):
                raise MalformedInputError(
                    f"Cluster {i} of group {self.tag!r} has an invalid std-dev: "
                    f"{cluster.std_dev.tolist()}"
                )

    def __repr__(self) -> str:
        return (
            f"MutationGroup({self.tag!r}, samples={self.sample_ids}, "
            f"clusters={len(self.clusters)}, robust={self.robust})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "sample_ids": list(self.sample_ids),
            "robust": self.robust,
            "clusters": [c.to_dict() for c in self.clusters],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MutationGroup:
        try:
            return cls(
                tag=str(data["tag"]),
                sample_ids=data["sample_ids"],
                clusters=[Cluster.from_dict(c) for c in data["clusters"]],
                robust=bool(data.get("robust", True)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedInputError(f"Invalid mutation group record: {e}") from e
