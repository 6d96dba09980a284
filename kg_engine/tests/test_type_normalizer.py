import pytest

from kg_engine.graph.type_normalizer import (
    normalize_node_type,
    normalize_relation_type,
    node_type_label,
)
from kg_engine.types import NodeType, RelationType


class TestNormalizeNodeType:
    """Test node type normalization."""

    @pytest.mark.parametrize("raw, expected", [
        ("concept", NodeType.CONCEPT),
        ("CONCEPTS", NodeType.CONCEPT),
        ("Article", NodeType.ARTICLE),
        ("articles", NodeType.ARTICLE),
        ("NOTE", NodeType.NOTE),
        (" notes ", NodeType.NOTE),
    ])
    def test_known_spellings(self, raw, expected):
        assert normalize_node_type(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "video", 42, {"type": "ARTICLE"}])
    def test_unknown_defaults_to_concept(self, raw):
        assert normalize_node_type(raw) is NodeType.CONCEPT

    def test_type_labels(self):
        assert node_type_label(NodeType.CONCEPT) == "概念"
        assert node_type_label(NodeType.ARTICLE) == "文章"
        assert node_type_label(NodeType.NOTE) == "笔记"


class TestNormalizeRelationType:
    """Test relation type normalization."""

    @pytest.mark.parametrize("raw, expected", [
        ("contains", RelationType.CONTAINS),
        ("CONTAIN", RelationType.CONTAINS),
        ("related_to", RelationType.RELATED_TO),
        ("related", RelationType.RELATED_TO),
        ("Relates-To", RelationType.RELATED_TO),
        ("discusses", RelationType.DISCUSSES),
        ("DISCUSS", RelationType.DISCUSSES),
    ])
    def test_known_spellings(self, raw, expected):
        assert normalize_relation_type(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "mentions", 3.5])
    def test_unknown_defaults_to_related_to(self, raw):
        assert normalize_relation_type(raw) is RelationType.RELATED_TO
