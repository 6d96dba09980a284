from typing import List, Dict, Any, Optional
from abc import ABC, abstractmethod
from urllib.parse import quote
import aiohttp

from ..config import settings
from ..exceptions import RemoteCallError, MalformedResponseError
from ..types import (
    ConceptDetail,
    ConceptStatistics,
    ConceptSearchResult,
    RelatedArticle,
)
from ..utils.logger import app_logger


class GraphDataProvider(ABC):
    """Remote source of graph payloads and concept lookups."""

    @abstractmethod
    async def fetch_graph_data(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Fetch the raw graph payload (nodes plus edges or links)."""

    @abstractmethod
    async def fetch_concept_detail(self, concept_name: str) -> ConceptDetail:
        """Fetch details of a concept."""

    @abstractmethod
    async def fetch_related_articles(self, concept_name: str, limit: int) -> List[RelatedArticle]:
        """Fetch articles related to a concept."""

    @abstractmethod
    async def fetch_concept_statistics(self, concept_name: str) -> ConceptStatistics:
        """Fetch usage statistics of a concept."""

    @abstractmethod
    async def search_concepts(self, query: str, limit: int) -> List[ConceptSearchResult]:
        """Search concepts by text."""


class HttpGraphDataProvider(GraphDataProvider):
    """Knowledge backend REST client."""

    API_PREFIX = "/api/v1/knowledge"

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[aiohttp.ClientSession] = None):
        self.logger = app_logger.bind(component="http_provider")
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token if token is not None else settings.api_token
        self.timeout = timeout or settings.request_timeout
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=headers,
            )
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def _get(self, operation: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a backend endpoint and unwrap its `data` envelope."""
        if self.session is None:
            await self.__aenter__()

        url = f"{self.base_url}{self.API_PREFIX}{path}"
        try:
            async with self.session.get(url, params=params) as response:
                response.raise_for_status()
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, ValueError) as e:
            self.logger.error(f"Request {operation} to {url} failed: {e}")
            raise RemoteCallError(operation, e) from e

        if not isinstance(body, dict) or body.get("data") is None:
            self.logger.error(f"Unexpected response for {operation}: {body!r}")
            raise MalformedResponseError(operation, message=f"{operation}: response has no data field")
        return body["data"]

    async def fetch_graph_data(self, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {
            "nodeType": params.get("nodeType") or "ALL",
            "search": params.get("search") or "",
            "limit": params.get("limit") or settings.default_graph_limit,
        }
        data = await self._get("graph_data", "/graph-data", query)
        if not isinstance(data, dict):
            raise MalformedResponseError("graph_data", message="graph_data: data is not an object")
        self.logger.debug(
            f"Graph payload: {len(data.get('nodes') or [])} nodes, "
            f"{len(data.get('edges') or data.get('links') or [])} edges"
        )
        return data

    async def fetch_concept_detail(self, concept_name: str) -> ConceptDetail:
        data = await self._get("concept_detail", f"/concepts/{quote(concept_name, safe='')}")
        return ConceptDetail.model_validate(data)

    async def fetch_related_articles(self, concept_name: str, limit: int) -> List[RelatedArticle]:
        data = await self._get(
            "related_articles",
            f"/concepts/{quote(concept_name, safe='')}/articles",
            {"limit": limit},
        )
        return [RelatedArticle.model_validate(item) for item in data]

    async def fetch_concept_statistics(self, concept_name: str) -> ConceptStatistics:
        data = await self._get("concept_stats", f"/concepts/{quote(concept_name, safe='')}/statistics")
        return ConceptStatistics.model_validate(data)

    async def search_concepts(self, query: str, limit: int) -> List[ConceptSearchResult]:
        data = await self._get("search", "/concepts/search", {"query": query, "limit": limit})
        return [ConceptSearchResult.model_validate(item) for item in data]
