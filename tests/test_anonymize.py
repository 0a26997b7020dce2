"""
Tests for anonymize.py — selection, filtering, bijective relabeling.
"""

import random
from collections import Counter

import pytest

from commgraph.anonymize import anonymize, build_id_map, select_by_hub, select_by_size
from commgraph.communities import compute_degrees, detect_communities
from commgraph.errors import CommunityNotFound, SnapshotFormatError
from commgraph.types import NodeData


@pytest.fixture
def graph(nodes_from_edges):
    # big: a-b-c-d cycle (4), small: x-y (2), single: s (1)
    return nodes_from_edges(
        [("a", "b"), ("b", "c"), ("c", "d"), ("d", "a"), ("x", "y")],
        isolated=["s"],
    )


def _name_edges(nodes):
    by_id = {n.id: n.name for n in nodes}
    return {(n.name, by_id[t]) for n in nodes for t in n.links_to}


class TestSelection:

    def test_by_size_strictly_greater(self, graph):
        communities = detect_communities(graph)
        ids = {n.name: n.id for n in graph}
        assert select_by_size(communities, 2) == {ids[k] for k in "abcd"}
        assert select_by_size(communities, 1) == {ids[k] for k in "abcdxy"}
        assert select_by_size(communities, 10) == set()

    def test_by_hub(self, graph):
        communities = detect_communities(graph)
        ids = {n.name: n.id for n in graph}
        assert select_by_hub(communities, "x") == {ids["x"], ids["y"]}

    def test_by_hub_missing_raises(self, graph):
        with pytest.raises(CommunityNotFound):
            select_by_hub(detect_communities(graph), "nothere")


class TestIdMap:

    def test_dense_bijection(self):
        id_map = build_id_map([10, 3, 7, 99], random.Random(1))
        assert sorted(id_map) == [3, 7, 10, 99]
        assert sorted(id_map.values()) == [0, 1, 2, 3]

    def test_seeded_is_reproducible(self):
        assert build_id_map(range(50), random.Random(5)) == build_id_map(range(50), random.Random(5))

    def test_input_order_does_not_matter(self):
        assert build_id_map([1, 2, 3], random.Random(9)) == build_id_map([3, 1, 2], random.Random(9))

    def test_shuffle_reaches_every_permutation(self):
        counts = Counter(
            tuple(sorted(build_id_map([1, 2, 3], random.Random(seed)).items()))
            for seed in range(600)
        )
        assert len(counts) == 6


class TestAnonymize:

    def test_ids_form_dense_range(self, graph):
        retained = select_by_size(detect_communities(graph), 1)
        result = anonymize(graph, retained, random.Random(3))
        assert [n.id for n in result.nodes] == list(range(len(retained)))

    def test_edges_fully_remapped_or_absent(self, nodes_from_edges):
        nodes = nodes_from_edges([("a", "b"), ("b", "c"), ("c", "out")])
        ids = {n.name: n.id for n in nodes}
        result = anonymize(nodes, {ids["a"], ids["b"], ids["c"]}, random.Random(0))

        new_ids = {n.id for n in result.nodes}
        for node in result.nodes:
            assert set(node.links_to) <= new_ids
        c = next(n for n in result.nodes if n.name == "c")
        assert c.links_to == []

    def test_structure_preserved(self, graph):
        retained = select_by_size(detect_communities(graph), 2)
        result = anonymize(graph, retained, random.Random(11))
        kept = [n for n in graph if n.id in retained]

        assert _name_edges(result.nodes) == _name_edges(kept)
        before = sorted(d.total for d in compute_degrees(kept).values())
        after = sorted(d.total for d in compute_degrees(result.nodes).values())
        assert before == after
        assert [c.size for c in detect_communities(result.nodes)] == [4]

    def test_id_map_consistent(self, graph):
        retained = select_by_size(detect_communities(graph), 2)
        result = anonymize(graph, retained, random.Random(2))
        assert set(result.id_map) == retained
        for original in graph:
            if original.id in retained:
                new = result.nodes[result.id_map[original.id]]
                assert new.name == original.name
                assert new.subscribers == original.subscribers

    def test_redact_names(self, graph):
        retained = select_by_size(detect_communities(graph), 2)
        result = anonymize(graph, retained, random.Random(2), redact_names=True)
        assert [n.name for n in result.nodes] == [f"node-{i}" for i in range(4)]

    def test_empty_selection(self, graph):
        result = anonymize(graph, set())
        assert result.nodes == []
        assert result.to_list() == []

    def test_unknown_retained_id(self, graph):
        with pytest.raises(ValueError):
            anonymize(graph, {12345})

    def test_input_not_mutated(self, graph):
        before = [n.model_copy(deep=True) for n in graph]
        anonymize(graph, {n.id for n in graph}, random.Random(4))
        assert graph == before

    def test_serialized_output_has_no_mapping(self, graph):
        result = anonymize(graph, {n.id for n in graph}, random.Random(4))
        assert set(result.to_list()[0]) == {"id", "name", "sensitive", "subscribers", "linksTo"}

    def test_duplicate_ids_rejected(self):
        nodes = [
            NodeData(id=1, name="a", links_to=[2]),
            NodeData(id=1, name="b"),
            NodeData(id=2, name="c"),
        ]
        with pytest.raises(SnapshotFormatError):
            anonymize(nodes, {1, 2}, random.Random(0))
