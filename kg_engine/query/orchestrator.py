from typing import List, Dict, Any, Optional, Callable, Awaitable
from dataclasses import dataclass, field
import json
import time

from ..cache.ttl_cache import TTLCache
from ..config import settings
from ..exceptions import RemoteCallError
from ..graph.normalizer import GraphNormalizer
from ..types import (
    ConceptDetail,
    ConceptStatistics,
    ConceptSearchResult,
    GraphQueryParams,
    NormalizationResult,
    RelatedArticle,
)
from ..utils.logger import app_logger
from .remote import GraphDataProvider


_MISSING = object()


@dataclass
class QueryMetrics:
    """Remote call counters. Only network round-trips are measured."""
    api_calls: int = 0
    failures: int = 0
    average_response_time: float = 0.0  # milliseconds
    last_update_time: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "api_calls": self.api_calls,
            "failures": self.failures,
            "average_response_time": self.average_response_time,
            "last_update_time": self.last_update_time,
        }


class QueryOrchestrator:
    """Fronts every remote read with the TTL cache and latency metrics.

    This is the only component that writes to the cache.
    """

    def __init__(self, provider: GraphDataProvider, cache: Optional[TTLCache] = None,
                 normalizer: Optional[GraphNormalizer] = None,
                 ttls: Optional[Dict[str, float]] = None):
        self.logger = app_logger.bind(component="query_orchestrator")
        self.provider = provider
        self.cache = cache if cache is not None else TTLCache()
        self.normalizer = normalizer or GraphNormalizer()
        self.ttls = dict(settings.cache_ttls)
        if ttls:
            self.ttls.update(ttls)
        self.metrics = QueryMetrics()

    @staticmethod
    def derive_key(op_name: str, params: Any) -> str:
        """Build a cache key that does not depend on parameter insertion order."""
        serialized = json.dumps(params, sort_keys=True, ensure_ascii=False, default=str)
        return f"{op_name}_{serialized}"

    def ttl_for(self, op_name: str) -> float:
        try:
            return self.ttls[op_name]
        except KeyError:
            raise ValueError(f"No cache TTL configured for operation: {op_name}")

    async def call(self, op_name: str, params: Any, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached result for (op_name, params) or fetch and cache it."""
        key = self.derive_key(op_name, params)
        cached = self.cache.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        start_time = time.perf_counter()
        try:
            result = await fetch()
        except Exception as e:
            self.metrics.failures += 1
            self.logger.error(f"Remote call {op_name} failed: {e}")
            if isinstance(e, RemoteCallError):
                raise
            raise RemoteCallError(op_name, e) from e

        elapsed = (time.perf_counter() - start_time) * 1000
        self.cache.set(key, result, self.ttl_for(op_name))
        self.metrics.api_calls += 1
        self.metrics.average_response_time = (self.metrics.average_response_time + elapsed) / 2
        self.metrics.last_update_time = time.time()
        self.logger.debug(f"{op_name} fetched in {elapsed:.1f}ms")
        return result

    async def get_graph_data(self, params: Optional[GraphQueryParams] = None) -> NormalizationResult:
        """Fetch and normalize graph data. The cached value is the normalized result."""
        query = (params or GraphQueryParams()).to_params()

        async def fetch():
            raw = await self.provider.fetch_graph_data(query)
            return self.normalizer.normalize(raw)

        return await self.call("graph_data", query, fetch)

    async def get_concept_detail(self, concept_name: str) -> ConceptDetail:
        return await self.call(
            "concept_detail", concept_name,
            lambda: self.provider.fetch_concept_detail(concept_name),
        )

    async def get_related_articles(self, concept_name: str, limit: Optional[int] = None) -> List[RelatedArticle]:
        limit = limit or settings.related_articles_limit
        return await self.call(
            "related_articles", {"concept": concept_name, "limit": limit},
            lambda: self.provider.fetch_related_articles(concept_name, limit),
        )

    async def get_concept_statistics(self, concept_name: str) -> ConceptStatistics:
        return await self.call(
            "concept_stats", concept_name,
            lambda: self.provider.fetch_concept_statistics(concept_name),
        )

    async def search_concepts(self, query: str, limit: Optional[int] = None) -> List[ConceptSearchResult]:
        limit = limit or settings.search_limit
        return await self.call(
            "search", {"query": query, "limit": limit},
            lambda: self.provider.search_concepts(query, limit),
        )

    def invalidate(self, pattern: Optional[str] = None) -> int:
        return self.cache.invalidate(pattern)

    def sweep_cache(self) -> int:
        return self.cache.sweep()

    @property
    def cache_hit_rate(self) -> float:
        return self.cache.hit_rate

    def reset_metrics(self):
        self.metrics = QueryMetrics()
        self.cache.reset_stats()
