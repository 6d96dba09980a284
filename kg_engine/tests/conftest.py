import pytest
import asyncio
import copy
import sys
from pathlib import Path
from typing import Dict, Any, List, Optional, Callable, Union

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from kg_engine.cache.ttl_cache import TTLCache
from kg_engine.graph.normalizer import GraphNormalizer
from kg_engine.query.orchestrator import QueryOrchestrator
from kg_engine.query.remote import GraphDataProvider
from kg_engine.state.engine import GraphStateEngine
from kg_engine.types import (
    ConceptDetail,
    ConceptStatistics,
    ConceptSearchResult,
    RelatedArticle,
)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeProvider(GraphDataProvider):
    """In-memory knowledge backend.

    `gates` maps a concept name (or "graph_data"/"search") to an asyncio.Event
    that calls for that key wait on, so tests can hold responses in flight.
    """

    def __init__(self, graph_payload: Union[Dict[str, Any], Callable[[Dict[str, Any]], Dict[str, Any]]],
                 search_results: Optional[Dict[str, List[ConceptSearchResult]]] = None):
        self.graph_payload = graph_payload
        self.search_results = search_results or {}
        self.calls: List[tuple] = []
        self.failing: set = set()
        self.gates: Dict[str, asyncio.Event] = {}

    async def _wait(self, key: str):
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()

    def _check(self, op_name: str):
        if op_name in self.failing:
            raise ConnectionError(f"{op_name} unavailable")

    def calls_for(self, op_name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == op_name]

    async def fetch_graph_data(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("graph_data", dict(params)))
        await self._wait("graph_data")
        self._check("graph_data")
        payload = self.graph_payload(params) if callable(self.graph_payload) else self.graph_payload
        return copy.deepcopy(payload)

    async def fetch_concept_detail(self, concept_name: str) -> ConceptDetail:
        self.calls.append(("concept_detail", concept_name))
        await self._wait(concept_name)
        self._check("concept_detail")
        return ConceptDetail(id=f"detail-{concept_name}", name=concept_name,
                             description=f"About {concept_name}")

    async def fetch_related_articles(self, concept_name: str, limit: int) -> List[RelatedArticle]:
        self.calls.append(("related_articles", concept_name, limit))
        await self._wait(concept_name)
        self._check("related_articles")
        return [RelatedArticle(id=f"{concept_name}-article-1", title=f"Intro to {concept_name}")]

    async def fetch_concept_statistics(self, concept_name: str) -> ConceptStatistics:
        self.calls.append(("concept_stats", concept_name))
        await self._wait(concept_name)
        self._check("concept_stats")
        return ConceptStatistics(conceptName=concept_name, articleCount=3, noteCount=1)

    async def search_concepts(self, query: str, limit: int) -> List[ConceptSearchResult]:
        self.calls.append(("search", query, limit))
        await self._wait("search")
        self._check("search")
        return list(self.search_results.get(query, []))


@pytest.fixture
def raw_graph_payload() -> Dict[str, Any]:
    """Backend payload mixing the field spellings seen upstream."""
    return {
        "nodes": [
            {"id": "c1", "label": "Vue", "type": "concept", "importance": 0.9,
             "properties": {"description": "Progressive framework"}},
            {"id": "c2", "name": "React", "type": "CONCEPTS", "size": 0.7},
            {"id": "a1", "title": "Getting started with Vue", "type": "ARTICLE"},
            {"id": "n1", "label": "My notes", "type": "notes", "category": "personal", "color": "#f00"},
        ],
        "edges": [
            {"source": "a1", "target": "c1", "type": "discusses", "weight": 0.8},
            {"source": "c1", "target": "c2", "label": "related"},
            {"source": {"id": "n1"}, "target": {"id": "c2"}, "type": "CONTAIN"},
        ],
    }


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(fake_clock: FakeClock) -> TTLCache:
    return TTLCache(clock=fake_clock)


@pytest.fixture
def provider(raw_graph_payload: Dict[str, Any]) -> FakeProvider:
    return FakeProvider(raw_graph_payload)


@pytest.fixture
def orchestrator(provider: FakeProvider, cache: TTLCache) -> QueryOrchestrator:
    return QueryOrchestrator(provider, cache=cache, normalizer=GraphNormalizer())


@pytest.fixture
def engine(orchestrator: QueryOrchestrator) -> GraphStateEngine:
    return GraphStateEngine(orchestrator, sweep_interval=0.01)
