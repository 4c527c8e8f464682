"""Tree scoring, constraint checking and ranking."""

from lineagearchitect.evaluation.scoring import (
    ConstraintViolation,
    ancestors_with_capacity,
    check_aaf_constraints,
    compute_error_score,
    evaluate_trees,
    filter_trees,
    find_constraint_violations,
    rank_trees,
    trees_are_distinct,
)

__all__ = [
    "ConstraintViolation",
    "ancestors_with_capacity",
    "check_aaf_constraints",
    "compute_error_score",
    "evaluate_trees",
    "filter_trees",
    "find_constraint_violations",
    "rank_trees",
    "trees_are_distinct",
]
