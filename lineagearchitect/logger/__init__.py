"""Logging package for lineagearchitect."""

from lineagearchitect.logger.base_logger import AlgorithmLogger
from lineagearchitect.logger.table_logger import TableLogger
from lineagearchitect.logger.combined_logger import Logger

# Unified singleton for algorithm tracing
lineage_logger = Logger("Lineage")
lineage_logger.disabled = True

__all__ = [
    "AlgorithmLogger",
    "TableLogger",
    "Logger",
    "lineage_logger",
]
