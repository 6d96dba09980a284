"""
Mapping of loosely spelled upstream type strings onto the closed node and
relation enumerations.
"""
from typing import Any, Dict

from ..types import NodeType, RelationType


NODE_TYPE_ALIASES: Dict[str, NodeType] = {
    "CONCEPT": NodeType.CONCEPT,
    "CONCEPTS": NodeType.CONCEPT,
    "ARTICLE": NodeType.ARTICLE,
    "ARTICLES": NodeType.ARTICLE,
    "NOTE": NodeType.NOTE,
    "NOTES": NodeType.NOTE,
}

RELATION_TYPE_ALIASES: Dict[str, RelationType] = {
    "CONTAINS": RelationType.CONTAINS,
    "CONTAIN": RelationType.CONTAINS,
    "RELATED_TO": RelationType.RELATED_TO,
    "RELATED": RelationType.RELATED_TO,
    "RELATES_TO": RelationType.RELATED_TO,
    "DISCUSSES": RelationType.DISCUSSES,
    "DISCUSS": RelationType.DISCUSSES,
}

NODE_TYPE_LABELS: Dict[NodeType, str] = {
    NodeType.CONCEPT: "概念",
    NodeType.ARTICLE: "文章",
    NodeType.NOTE: "笔记",
}


def _canonical_spelling(raw: Any) -> str:
    if not isinstance(raw, str):
        return ""
    return raw.strip().upper().replace("-", "_").replace(" ", "_")


def normalize_node_type(raw: Any) -> NodeType:
    """Map an upstream node type onto NodeType, defaulting to CONCEPT."""
    return NODE_TYPE_ALIASES.get(_canonical_spelling(raw), NodeType.CONCEPT)


def normalize_relation_type(raw: Any) -> RelationType:
    """Map an upstream relation type onto RelationType, defaulting to RELATED_TO."""
    return RELATION_TYPE_ALIASES.get(_canonical_spelling(raw), RelationType.RELATED_TO)


def node_type_label(node_type: NodeType) -> str:
    """Get the display noun used in generated node names."""
    return NODE_TYPE_LABELS[node_type]
