import pytest
from typing import Dict, Any
from hypothesis import given, settings as hypothesis_settings, strategies as st

from kg_engine.graph.normalizer import GraphNormalizer, normalize_graph, denormalize
from kg_engine.types import NodeType, RelationType


# =============================================================================
# STRATEGIES
# =============================================================================

scalars = st.one_of(st.none(), st.booleans(), st.integers(), st.floats(allow_nan=False), st.text(max_size=8))
ids = st.one_of(st.none(), st.sampled_from(["a", "b", "c", "node-1", "x_y", " ", ""]), st.integers(0, 3))

raw_nodes = st.one_of(
    scalars,
    st.fixed_dictionaries({}, optional={
        "id": ids,
        "label": scalars,
        "name": scalars,
        "title": scalars,
        "type": st.one_of(scalars, st.sampled_from(["concept", "ARTICLES", "note"])),
        "importance": scalars,
        "size": scalars,
        "properties": st.one_of(scalars, st.dictionaries(st.text(max_size=5), scalars, max_size=3)),
    }),
)

endpoints = st.one_of(ids, st.fixed_dictionaries({"id": ids}), scalars)

raw_edges = st.one_of(
    scalars,
    st.fixed_dictionaries({}, optional={
        "source": endpoints,
        "target": endpoints,
        "type": scalars,
        "label": scalars,
        "weight": scalars,
        "properties": st.one_of(scalars, st.dictionaries(st.text(max_size=5), scalars, max_size=3)),
    }),
)

raw_payloads = st.one_of(
    scalars,
    st.lists(scalars, max_size=3),
    st.fixed_dictionaries({}, optional={
        "nodes": st.one_of(scalars, st.lists(raw_nodes, max_size=8)),
        "edges": st.one_of(scalars, st.lists(raw_edges, max_size=8)),
        "links": st.one_of(scalars, st.lists(raw_edges, max_size=8)),
    }),
)


@hypothesis_settings(max_examples=200, deadline=None)
@given(raw_payloads)
def test_normalize_never_breaks_graph_invariants(raw):
    """Any payload normalizes without raising into a referentially sound graph."""
    result = GraphNormalizer().normalize(raw)
    graph = result.graph

    node_ids = [node.id for node in graph.nodes]
    assert len(node_ids) == len(set(node_ids))
    for link in graph.links:
        assert link.source in graph.node_ids()
        assert link.target in graph.node_ids()
    for node in graph.nodes:
        assert node.name
        assert isinstance(node.type, NodeType)


class TestGraphNormalizer:
    """Test conversion of backend payloads into the canonical graph."""

    def setup_method(self):
        self.normalizer = GraphNormalizer()

    def test_mixed_payload(self, raw_graph_payload: Dict[str, Any]):
        result = self.normalizer.normalize(raw_graph_payload)
        graph = result.graph

        assert [node.id for node in graph.nodes] == ["c1", "c2", "a1", "n1"]
        assert [node.name for node in graph.nodes] == ["Vue", "React", "Getting started with Vue", "My notes"]
        assert [node.type for node in graph.nodes] == [
            NodeType.CONCEPT, NodeType.CONCEPT, NodeType.ARTICLE, NodeType.NOTE
        ]
        assert len(graph.links) == 3
        assert result.report.is_clean

    def test_empty_and_malformed_payloads(self):
        for raw in (None, {}, [], "graph", 42, {"nodes": "oops", "edges": 5}):
            result = self.normalizer.normalize(raw)
            assert result.graph.nodes == []
            assert result.graph.links == []

    def test_synthesized_id(self):
        graph = normalize_graph({"nodes": [{"label": "A"}, {"id": "  ", "label": "B"}]})

        assert [node.id for node in graph.nodes] == ["node-0", "node-1"]

    def test_name_from_title_only(self):
        graph = normalize_graph({"nodes": [{"id": "x_1", "title": "X"}]})

        assert graph.nodes[0].name == "X"

    def test_name_priority(self):
        graph = normalize_graph({"nodes": [
            {"id": "1", "label": "L", "name": "N", "title": "T"},
            {"id": "2", "label": "  ", "name": "N", "title": "T"},
            {"id": "3", "name": "", "title": " T "},
        ]})

        assert [node.name for node in graph.nodes] == ["L", "N", "T"]

    def test_name_from_meaningful_id(self):
        graph = normalize_graph({"nodes": [{"id": "Kubernetes"}]})

        assert graph.nodes[0].name == "Kubernetes"

    def test_name_placeholder_for_synthetic_looking_ids(self):
        graph = normalize_graph({"nodes": [
            {"id": "node-7", "type": "note"},
            {"id": "article_12", "type": "ARTICLE"},
            {"type": "ARTICLE"},
        ]})

        assert graph.nodes[0].name == "未命名笔记-0"
        assert graph.nodes[1].name == "未命名文章-1"
        assert "文章" in graph.nodes[2].name
        assert graph.nodes[2].name.endswith("-2")

    def test_importance(self):
        graph = normalize_graph({"nodes": [
            {"id": "a", "importance": 0.9},
            {"id": "b", "size": 0.3},
            {"id": "c"},
            {"id": "d", "importance": "high"},
        ]})

        assert [node.importance for node in graph.nodes] == [0.9, 0.3, 0.5, 0.5]

    def test_description(self):
        graph = normalize_graph({"nodes": [
            {"id": "a", "properties": {"description": "from props"}, "description": "top"},
            {"id": "b", "description": "top"},
            {"id": "c", "label": "Gamma"},
        ]})

        assert graph.nodes[0].description == "from props"
        assert graph.nodes[1].description == "top"
        assert graph.nodes[2].description == "Gamma的详细信息"

    def test_properties_provenance(self):
        graph = normalize_graph({"nodes": [{
            "id": "a", "label": "A", "name": "Alpha", "category": "tech", "color": "#fff",
            "properties": {"createdAt": "2024-01-01T00:00:00Z", "source": "rss"},
        }]})
        properties = graph.nodes[0].properties

        assert properties["source"] == "rss"
        assert properties["category"] == "tech"
        assert properties["color"] == "#fff"
        assert properties["createdAt"] == "2024-01-01T00:00:00Z"
        assert properties["originalLabel"] == "A"
        assert properties["originalName"] == "Alpha"
        assert properties["originalTitle"] is None

    def test_created_at_defaults_to_now(self):
        graph = normalize_graph({"nodes": [{"id": "a"}]})

        assert graph.nodes[0].properties["createdAt"]

    def test_link_conversion(self, raw_graph_payload: Dict[str, Any]):
        graph = normalize_graph(raw_graph_payload)
        discusses, related, contains = graph.links

        assert (discusses.source, discusses.target) == ("a1", "c1")
        assert discusses.type is RelationType.DISCUSSES
        assert discusses.strength == 0.8
        assert related.type is RelationType.RELATED_TO
        assert related.strength == 1.0
        assert related.properties["label"] == "related"
        assert (contains.source, contains.target) == ("n1", "c2")
        assert contains.type is RelationType.CONTAINS

    def test_links_key_accepted(self):
        graph = normalize_graph({
            "nodes": [{"id": "a"}, {"id": "b"}],
            "links": [{"source": "a", "target": "b", "strength": 2}],
        })

        assert len(graph.links) == 1
        assert graph.links[0].strength == 2

    def test_orphan_edge_is_dropped_and_recorded(self, raw_graph_payload: Dict[str, Any]):
        baseline = self.normalizer.normalize(raw_graph_payload)
        raw_graph_payload["edges"].append({"source": "c1", "target": "missing"})

        result = self.normalizer.normalize(raw_graph_payload)

        assert len(result.graph.links) == len(baseline.graph.links)
        assert result.report.violation_count == baseline.report.violation_count + 1
        assert result.report.dropped_links == 1
        assert result.report.dropped_link_samples[0]["target"] == "missing"

    def test_dropped_link_samples_are_bounded(self):
        normalizer = GraphNormalizer(sample_size=2)
        result = normalizer.normalize({
            "nodes": [{"id": "a"}],
            "edges": [{"source": "a", "target": f"z{i}"} for i in range(5)],
        })

        assert result.report.dropped_links == 5
        assert len(result.report.dropped_link_samples) == 2

    def test_duplicate_ids_keep_first(self):
        result = self.normalizer.normalize({"nodes": [
            {"id": "a", "label": "first"},
            {"id": "a", "label": "second"},
            "not a node",
        ]})

        assert [node.name for node in result.graph.nodes] == ["first"]
        assert result.report.duplicate_node_ids == ["a"]
        assert result.report.invalid_nodes == 1

    def test_denormalize_round_trip(self, raw_graph_payload: Dict[str, Any]):
        graph = normalize_graph(raw_graph_payload)

        again = normalize_graph(denormalize(graph))

        assert [node.id for node in again.nodes] == [node.id for node in graph.nodes]
        assert [node.name for node in again.nodes] == [node.name for node in graph.nodes]
        assert [(link.source, link.target, link.type) for link in again.links] == [
            (link.source, link.target, link.type) for link in graph.links
        ]
