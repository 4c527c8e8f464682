"""Numeric parameters and run configuration for lineage reconstruction."""

from dataclasses import dataclass
from typing import Optional

# Tolerance absorbing measurement noise when comparing AAF values. The same
# value must be used for edge orientation and for the sum-constraint check.
AAF_ERROR_MARGIN: float = 0.08

# AAF of the germline root at every sample (normalized frequency).
AAF_MAX: float = 1.0

# Number of recorded trees between two progress messages of the enumerator.
PROGRESS_INTERVAL: int = 10000


@dataclass
class LineageConfig:
    """Configuration for constraint graph construction, enumeration and filtering."""

    aaf_error_margin: float = AAF_ERROR_MARGIN
    aaf_max: float = AAF_MAX
    add_hidden_edges: bool = False
    max_trees: Optional[int] = None
    max_seconds: Optional[float] = None
    rebuild_on_failure: bool = True
    logger_name: str = "lineagearchitect.pipeline"

    def __post_init__(self) -> None:
        if self.aaf_error_margin < 0:
            raise ValueError("aaf_error_margin must be non-negative")
        if self.aaf_max <= 0:
            raise ValueError("aaf_max must be positive")
        if self.max_trees is not None and self.max_trees < 1:
            raise ValueError("max_trees must be at least 1")
        if self.max_seconds is not None and self.max_seconds <= 0:
            raise ValueError("max_seconds must be positive")
