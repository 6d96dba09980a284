"""
Knowledge graph state engine: normalizes backend graph payloads, caches
remote reads behind a TTL policy and tracks interactive selection state.
"""

from .cache.ttl_cache import TTLCache, CacheSweeper, CacheStats
from .exceptions import GraphEngineError, RemoteCallError, MalformedResponseError
from .graph.normalizer import GraphNormalizer, normalize_graph, denormalize
from .graph.type_normalizer import normalize_node_type, normalize_relation_type
from .query.orchestrator import QueryOrchestrator, QueryMetrics
from .query.remote import GraphDataProvider, HttpGraphDataProvider
from .state.engine import GraphStateEngine
from .state.interaction import InteractionState
from .types import (
    NodeType,
    RelationType,
    LayoutMode,
    GraphNode,
    GraphLink,
    CanonicalGraph,
    GraphQueryParams,
    IntegrityReport,
    NormalizationResult,
    NodePosition,
)

__version__ = "1.0.0"

__all__ = [
    'TTLCache',
    'CacheSweeper',
    'CacheStats',
    'GraphEngineError',
    'RemoteCallError',
    'MalformedResponseError',
    'GraphNormalizer',
    'normalize_graph',
    'denormalize',
    'normalize_node_type',
    'normalize_relation_type',
    'QueryOrchestrator',
    'QueryMetrics',
    'GraphDataProvider',
    'HttpGraphDataProvider',
    'GraphStateEngine',
    'InteractionState',
    'NodeType',
    'RelationType',
    'LayoutMode',
    'GraphNode',
    'GraphLink',
    'CanonicalGraph',
    'GraphQueryParams',
    'IntegrityReport',
    'NormalizationResult',
    'NodePosition',
]
