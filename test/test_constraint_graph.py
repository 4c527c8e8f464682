import pytest

from lineagearchitect.elements import Cluster, MutationGroup
from lineagearchitect.enumeration import enumerate_spanning_trees
from lineagearchitect.exceptions import DisconnectedNodeError, MalformedInputError
from lineagearchitect.graph import (
    BACKWARD,
    FORWARD,
    NO_RELATION,
    ConstraintGraph,
    NodeKind,
    build_constraint_graph,
)
from lineagearchitect.parameters import LineageConfig


def make_group(tag, sample_ids, *centroids, robust=True):
    return MutationGroup(tag, sample_ids, [Cluster(c) for c in centroids], robust=robust)


def edge_ids(graph):
    return [(e.source.node_id, e.target.node_id) for e in graph.edges()]


def node_by_tag(graph, tag):
    return next(n for n in graph.nodes() if n.tag == tag)


def assert_all_reachable(graph):
    assert graph.unreachable_nodes() == []
    assert graph.reachable_nodes() == set(graph.nodes())


def test_root_and_levels():
    graph = ConstraintGraph([make_group("11", [0, 1], [0.4, 0.3])], 2)
    root = graph.root
    assert root.is_root
    assert root.node_id == 0
    assert root.level == 3
    assert root.aaf_vector.tolist() == [1.0, 1.0]
    assert root.tag == "GERMLINE"
    node = node_by_tag(graph, "11")
    assert node.kind is NodeKind.SUBPOPULATION
    assert node.level == 2


def test_dominated_node_hangs_below_its_dominator():
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("10", [0], [0.1]),
    ]
    graph = build_constraint_graph(groups, 2)
    # B is placed on its own single-sample level below A, so the level pass
    # compares A with B and the root only with A: root -> A, A -> B
    assert edge_ids(graph) == [(0, 1), (1, 2)]
    assert_all_reachable(graph)


def test_incomparable_clusters_of_one_group():
    groups = [make_group("11", [0, 1], [0.4, 0.3], [0.3, 0.35])]
    graph = ConstraintGraph(groups, 2, LineageConfig(aaf_error_margin=0.01))
    assert edge_ids(graph) == [(0, 1), (0, 2)]

    a = graph.nodes_by_id[1]
    c = graph.nodes_by_id[2]
    assert graph.orient(a, c) == NO_RELATION
    assert graph.orient(c, a) == NO_RELATION


def test_incomparable_groups_on_one_level():
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("11b", [0, 1], [0.3, 0.35]),
    ]
    graph = ConstraintGraph(groups, 2)
    # nodes of distinct groups on the same level are never compared
    assert edge_ids(graph) == [(0, 1), (0, 2)]


def test_error_margin_admits_near_dominance():
    groups = [make_group("11", [0, 1], [0.4, 0.3], [0.3, 0.35])]
    graph = ConstraintGraph(groups, 2)
    # 0.3 >= 0.35 - 0.08 makes the first cluster a parent of the second
    assert (1, 2) in edge_ids(graph)


def test_root_precedes_every_node():
    groups = [
        make_group("111", [0, 1, 2], [0.5, 0.5, 0.5]),
        make_group("011", [1, 2], [0.9, 0.2]),
        make_group("100", [0], [0.95]),
    ]
    graph = ConstraintGraph(groups, 3)
    for node in graph.sub_population_nodes():
        assert graph.orient(graph.root, node) == FORWARD
        assert graph.orient(node, graph.root) == BACKWARD


def test_equal_nodes_tie_to_first_argument():
    groups = [make_group("11", [0, 1], [0.2, 0.2], [0.2, 0.2])]
    graph = ConstraintGraph(groups, 2)
    first = graph.nodes_by_id[1]
    second = graph.nodes_by_id[2]
    assert graph.orient(first, second) == FORWARD
    assert graph.orient(second, first) == FORWARD
    assert graph.has_edge(first, second)
    assert not graph.has_edge(second, first)


def test_smaller_error_wins_when_both_directions_fit():
    groups = [make_group("11", [0, 1], [0.30, 0.30], [0.35, 0.32])]
    graph = ConstraintGraph(groups, 2)
    smaller = graph.nodes_by_id[1]
    larger = graph.nodes_by_id[2]
    # both directions are within the margin, larger -> smaller has no excess
    assert graph.orient(smaller, larger) == BACKWARD
    assert graph.has_edge(larger, smaller)


def test_parent_absent_where_child_present_breaks_relation():
    groups = [
        make_group("11", [0, 1], [0.1, 0.1]),
        make_group("10", [0], [0.4]),
    ]
    graph = ConstraintGraph(groups, 2)
    wide = node_by_tag(graph, "11")
    narrow = node_by_tag(graph, "10")
    # narrow is 0 at sample 1 where wide is present
    assert graph.orient(wide, narrow) == NO_RELATION
    # repair falls back to the root
    assert graph.has_edge(graph.root, narrow)
    assert_all_reachable(graph)


def test_repair_attaches_orphan_to_root():
    groups = [
        make_group("111", [0, 1, 2], [0.5, 0.5, 0.5]),
        make_group("100", [0], [0.9]),
    ]
    graph = ConstraintGraph(groups, 3)
    orphan = node_by_tag(graph, "100")
    assert edge_ids(graph) == [(0, 1), (0, 2)]
    assert graph.children(graph.root) == [node_by_tag(graph, "111"), orphan]


def test_repair_attaches_orphan_to_higher_level_parent():
    groups = [
        make_group("111", [0, 1, 2], [0.5, 0.5, 0.5]),
        make_group("011", [1, 2], [0.4, 0.4]),
        make_group("100", [0], [0.3]),
    ]
    graph = ConstraintGraph(groups, 3)
    # level 2 cannot precede the level-1 node, level 3 can
    assert edge_ids(graph) == [(0, 1), (1, 2), (1, 3)]
    assert_all_reachable(graph)


def test_hidden_edges_compare_all_lower_levels():
    groups = [
        make_group("111", [0, 1, 2], [0.5, 0.5, 0.5]),
        make_group("011", [1, 2], [0.4, 0.4]),
        make_group("100", [0], [0.3]),
    ]
    graph = ConstraintGraph(groups, 3, LineageConfig(add_hidden_edges=True))
    assert edge_ids(graph) == [(0, 1), (1, 2), (0, 2), (0, 3), (1, 3)]
    assert graph.num_edges == 5


def test_check_and_add_edge_requires_level_order():
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("10", [0], [0.1]),
    ]
    graph = ConstraintGraph(groups, 2)
    high = node_by_tag(graph, "11")
    low = node_by_tag(graph, "10")
    with pytest.raises(ValueError):
        graph.check_and_add_edge(low, high)
    # re-adding an existing edge does not duplicate it
    assert graph.check_and_add_edge(high, low) == FORWARD
    assert graph.num_edges == 2


def test_sample_leaf_orientation():
    groups = [make_group("10", [0], [0.2])]
    graph = ConstraintGraph(groups, 2)
    leaves = graph.make_sample_leaves()
    assert [leaf.leaf_sample_id for leaf in leaves] == [0, 1]
    assert [leaf.node_id for leaf in leaves] == [2, 3]
    node = node_by_tag(graph, "10")
    assert graph.orient(node, leaves[0]) == FORWARD
    assert graph.orient(node, leaves[1]) == NO_RELATION
    # leaves are not part of the graph
    assert graph.num_nodes == 2


def test_fix_network_keeps_robust_groups():
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("10", [0], [0.1], robust=False),
    ]
    graph = ConstraintGraph(groups, 2)
    rebuilt = graph.fix_network()
    assert rebuilt is not graph
    assert rebuilt.num_nodes == 2
    assert [n.tag for n in rebuilt.sub_population_nodes()] == ["11"]
    assert rebuilt.config is graph.config


def test_root_only_graph():
    graph = ConstraintGraph([], 2)
    assert graph.num_nodes == 1
    assert graph.num_edges == 0


@pytest.mark.parametrize("total_samples", [0, -1])
def test_rejects_non_positive_sample_count(total_samples):
    with pytest.raises(MalformedInputError):
        ConstraintGraph([], total_samples)


def test_rejects_malformed_group():
    with pytest.raises(MalformedInputError):
        ConstraintGraph([make_group("11", [0, 1], [0.4])], 2)


def test_str_lists_levels_and_edges():
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("10", [0], [0.1]),
    ]
    text = str(ConstraintGraph(groups, 2))
    assert text.startswith("--- PHYLOGENETIC CONSTRAINT GRAPH --- \n")
    assert "numNodes = 3, numEdges = 2" in text
    assert "level = 0: \nEMPTY " in text
    assert "0 -> 1\n1 -> 2\n" in text


def test_to_dict():
    groups = [make_group("11", [0, 1], [0.4, 0.3])]
    data = ConstraintGraph(groups, 2).to_dict()
    assert data["total_samples"] == 2
    assert [n["kind"] for n in data["nodes"]] == ["root", "subpopulation"]
    assert data["nodes"][1]["aaf"] == [0.4, 0.3]
    assert data["edges"] == [[0, 1]]


def test_node_labels_and_text():
    groups = [MutationGroup("10", [0], [Cluster([0.2], size=4)])]
    graph = ConstraintGraph(groups, 2)
    node = node_by_tag(graph, "10")
    leaf = graph.make_sample_leaves()[0]
    assert node.label == "1:\n10\n(4)"
    assert graph.root.label == "root"
    assert leaf.label == "sample 0"
    assert str(graph.root) == "Node 0: root"
    assert str(leaf) == "Node 2: leaf sample id = 0"
    assert node.cluster is groups[0].clusters[0]
    assert node.aaf(1) == 0.0
    assert not node.contains_sample(1)


def test_dominated_node_on_the_same_level_in_another_group():
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("11b", [0, 1], [0.1, 0.05]),
    ]
    graph = ConstraintGraph(groups, 2)
    # groups on one level are not compared, both hang from the root
    assert edge_ids(graph) == [(0, 1), (0, 2)]
    assert len(enumerate_spanning_trees(graph)) == 1


def test_dominated_cluster_of_the_same_group():
    groups = [make_group("11", [0, 1], [0.4, 0.3], [0.1, 0.05])]
    graph = ConstraintGraph(groups, 2)
    assert edge_ids(graph) == [(1, 2), (0, 1), (0, 2)]
    trees = enumerate_spanning_trees(graph)
    assert {t.edge_set() for t in trees} == {
        frozenset({(0, 1), (0, 2)}),
        frozenset({(0, 1), (1, 2)}),
    }


def test_repair_connects_cycle_of_same_group_clusters():
    groups = [
        make_group(
            "1110",
            [0, 1, 2],
            [0.29, 0.36, 0.3],
            [0.37, 0.39, 0.18],
            [0.44, 0.28, 0.26],
            [0.31, 0.23, 0.39],
        ),
        make_group("1111", [0, 1, 2, 3], [0.02, 0.02, 0.02, 0.02]),
    ]
    graph = ConstraintGraph(groups, 4)
    # clusters 1 -> 2 -> 3 -> 1 each have a parent but no path from the root
    assert sorted(edge_ids(graph)) == [(0, 1), (0, 4), (0, 5), (1, 2), (2, 3), (3, 1)]
    assert_all_reachable(graph)

    trees = enumerate_spanning_trees(graph)
    assert len(trees) == 1
    assert trees[0].is_arborescence()


def test_verify_reachability_raises_on_disconnected_node():
    groups = [
        make_group("11", [0, 1], [0.4, 0.3]),
        make_group("10", [0], [0.1]),
    ]
    graph = ConstraintGraph(groups, 2)
    graph.remove_edge(graph.root, node_by_tag(graph, "11"))
    assert [n.tag for n in graph.unreachable_nodes()] == ["11", "10"]
    with pytest.raises(DisconnectedNodeError):
        graph.verify_reachability()
