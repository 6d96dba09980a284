"""
Graph payload normalization into the canonical node-link model.
"""

from .normalizer import GraphNormalizer, normalize_graph, denormalize
from .type_normalizer import normalize_node_type, normalize_relation_type, node_type_label

__all__ = [
    'GraphNormalizer',
    'normalize_graph',
    'denormalize',
    'normalize_node_type',
    'normalize_relation_type',
    'node_type_label',
]
