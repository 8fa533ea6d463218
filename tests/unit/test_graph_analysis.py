"""
Unit tests for knowledge graph analysis.
"""

from src.core.models import ConceptLink, ConceptNode
from src.graph.analysis import analyze_graph


def _nodes(*ids):
    return [ConceptNode(i, i.title()) for i in ids]


class TestRootsAndLeaves:
    def test_sample_graph(self, sample_graph):
        analysis = analyze_graph(*sample_graph)

        assert analysis.roots == ["variables"]
        assert analysis.leaves == ["closures", "loops"]

    def test_isolated_node_is_neither(self, sample_graph):
        analysis = analyze_graph(*sample_graph)

        assert "recursion" not in analysis.roots
        assert "recursion" not in analysis.leaves

    def test_dangling_links_ignored(self):
        analysis = analyze_graph(_nodes("a"), [ConceptLink("a", "ghost")])

        assert analysis.roots == []
        assert analysis.out_degree("a") == 0


class TestDepth:
    def test_depth_from_root(self, sample_graph):
        analysis = analyze_graph(*sample_graph)

        assert analysis.depth("variables") == 0
        assert analysis.depth("functions") == 1
        assert analysis.depth("closures") == 2
        assert analysis.depth("loops") == 1

    def test_unreached_nodes_default_to_zero(self, sample_graph):
        analysis = analyze_graph(*sample_graph)

        assert "recursion" not in analysis.depth_map
        assert analysis.depth("recursion") == 0

    def test_shortest_depth_across_roots(self):
        links = [
            ConceptLink("r1", "a"),
            ConceptLink("a", "b"),
            ConceptLink("b", "c"),
            ConceptLink("r2", "c"),
        ]
        analysis = analyze_graph(_nodes("r1", "r2", "a", "b", "c"), links)

        assert analysis.depth("c") == 1


class TestChains:
    def test_root_to_leaf_paths(self, sample_graph):
        analysis = analyze_graph(*sample_graph)

        assert analysis.chains == [
            ["variables", "functions", "closures"],
            ["variables", "loops"],
        ]
        assert analysis.chains_truncated is False

    def test_enumeration_is_bounded(self):
        links = [ConceptLink("root", f"n{i}") for i in range(5)]
        analysis = analyze_graph(_nodes("root", *[f"n{i}" for i in range(5)]), links, max_chains=2)

        assert len(analysis.chains) == 2
        assert analysis.chains_truncated is True

    def test_cycle_behind_root_terminates(self):
        links = [ConceptLink("r", "a"), ConceptLink("a", "b"), ConceptLink("b", "a")]
        analysis = analyze_graph(_nodes("r", "a", "b"), links)

        assert analysis.chains == [["r", "a", "b"]]


class TestClusters:
    def test_weakly_connected_components(self, sample_graph):
        analysis = analyze_graph(*sample_graph)

        assert analysis.clusters == [
            ["variables", "functions", "loops", "closures"],
            ["recursion"],
        ]

    def test_direction_ignored(self):
        links = [ConceptLink("a", "c"), ConceptLink("b", "c")]
        analysis = analyze_graph(_nodes("a", "b", "c"), links)

        assert len(analysis.clusters) == 1
        assert sorted(analysis.clusters[0]) == ["a", "b", "c"]


class TestNeighbors:
    def test_neighbors_include_both_directions(self, sample_graph):
        analysis = analyze_graph(*sample_graph)

        assert analysis.neighbors("functions") == ["closures", "variables"]
        assert analysis.in_degree("functions") == 1
        assert analysis.out_degree("variables") == 2
