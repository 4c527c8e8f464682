import logging

import pytest

from lineagearchitect.elements import Cluster, MutationGroup
from lineagearchitect.exceptions import MalformedInputError, NoValidLineageError
from lineagearchitect.parameters import LineageConfig
from lineagearchitect.pipeline import LineagePipeline, LineageResult, reconstruct_lineages


def make_group(tag, sample_ids, *centroids, robust=True):
    return MutationGroup(tag, sample_ids, [Cluster(c) for c in centroids], robust=robust)


def test_single_chain():
    # B occurs in the first sample only, one level below A
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("10", [0], [0.1]),
    ]
    result = reconstruct_lineages(groups, 2)
    assert isinstance(result, LineageResult)
    assert len(result.trees) == 1
    assert result.num_enumerated == 1
    assert result.complete
    assert not result.rebuilt
    assert result.best.to_newick() == "((2)1)root;"
    assert result.best.error_score == 0.0


def test_incomparable_sub_populations():
    groups = [make_group("11", [0, 1], [0.4, 0.3], [0.3, 0.35])]
    result = reconstruct_lineages(groups, 2, LineageConfig(aaf_error_margin=0.01))
    assert len(result.trees) == 1
    assert result.best.to_newick() == "(1,2)root;"


def test_trees_are_ranked():
    groups = [
        make_group("111", [0, 1, 2], [0.5, 0.5, 0.5]),
        make_group("011", [1, 2], [0.4, 0.4]),
        make_group("100", [0], [0.3]),
    ]
    result = reconstruct_lineages(groups, 3, LineageConfig(add_hidden_edges=True))
    assert result.num_enumerated == 4
    scores = [t.error_score for t in result.trees]
    assert scores == sorted(scores)


def test_rebuild_from_robust_groups():
    groups = [
        make_group("1", [0], [0.6]),
        make_group("1b", [0], [0.6], robust=False),
    ]
    result = LineagePipeline(LineageConfig()).run(groups, 1)
    assert result.rebuilt
    assert result.graph.num_nodes == 2
    assert len(result.trees) == 1
    # one failing tree before the rebuild, one valid tree after
    assert result.num_enumerated == 2


def test_no_rebuild_raises():
    groups = [
        make_group("1", [0], [0.6]),
        make_group("1b", [0], [0.6], robust=False),
    ]
    pipeline = LineagePipeline(LineageConfig(rebuild_on_failure=False))
    with pytest.raises(NoValidLineageError):
        pipeline.run(groups, 1)


def test_no_valid_lineage_after_rebuild():
    groups = [make_group("1", [0], [0.6]), make_group("1b", [0], [0.6])]
    with pytest.raises(NoValidLineageError):
        reconstruct_lineages(groups, 1)


def test_malformed_input_propagates():
    with pytest.raises(MalformedInputError):
        reconstruct_lineages([make_group("11", [0, 5], [0.4, 0.3])], 2)


def test_max_trees_marks_result_incomplete():
    groups = [
        make_group("111", [0, 1, 2], [0.5, 0.5, 0.5]),
        make_group("011", [1, 2], [0.4, 0.4]),
        make_group("100", [0], [0.3]),
    ]
    config = LineageConfig(add_hidden_edges=True, max_trees=2)
    result = reconstruct_lineages(groups, 3, config)
    assert not result.complete
    assert result.num_enumerated == 2


def test_lineage_report_pads_sample_names():
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("10", [0], [0.1]),
    ]
    result = LineagePipeline().run(groups, 2, sample_names=["tumor_a"])
    report = result.lineage_report()
    assert report.startswith("tumor_a:\nGERMLINE\n\t11: 0.40 [0.00]\n")
    assert "sample_1:\nGERMLINE\n\t11: 0.30 [0.00]\n" in report


def test_uses_configured_logger(caplog):
    groups = [make_group("1", [0], [0.5])]
    config = LineageConfig(logger_name="lineage.test")
    with caplog.at_level(logging.INFO, logger="lineage.test"):
        LineagePipeline(config).run(groups, 1)
    assert any(r.name == "lineage.test" for r in caplog.records)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"aaf_error_margin": -0.1},
        {"aaf_max": 0.0},
        {"max_trees": 0},
        {"max_seconds": 0.0},
    ],
)
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        LineageConfig(**kwargs)
