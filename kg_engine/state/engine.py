"""
Interactive state machine over the canonical graph.

All mutations happen synchronously between awaits on the event loop. Each
asynchronous operation (graph load, node selection, search) takes a request
token before its first await and commits its results only if no newer
request of the same kind was issued meanwhile.
"""
from typing import List, Dict, Any, Optional, Iterable, Union
import asyncio
import json

from ..cache.ttl_cache import CacheSweeper
from ..config import settings
from ..exceptions import RemoteCallError
from ..types import (
    CanonicalGraph,
    ConceptDetail,
    ConceptStatistics,
    GraphLink,
    GraphNode,
    GraphQueryParams,
    IntegrityReport,
    LayoutMode,
    NodePosition,
    NodeType,
    RelatedArticle,
)
from ..utils.logger import app_logger
from ..query.orchestrator import QueryOrchestrator
from .interaction import InteractionState


class GraphStateEngine:
    """Owns the canonical graph and the interaction state built on top of it."""

    def __init__(self, orchestrator: QueryOrchestrator,
                 sweep_interval: Optional[float] = None):
        self.logger = app_logger.bind(component="graph_state_engine")
        self.orchestrator = orchestrator
        self._state = InteractionState()
        self._graph: Optional[CanonicalGraph] = None
        self.integrity_report: Optional[IntegrityReport] = None

        self.loading = False
        self.error: Optional[str] = None

        self.selected_node_details: Optional[ConceptDetail] = None
        self.related_articles: List[RelatedArticle] = []
        self.concept_statistics: Optional[ConceptStatistics] = None
        self.details_loading = False
        self.details_error: Optional[str] = None

        self.search_loading = False
        self.search_error: Optional[str] = None

        self._load_token = 0
        self._selection_token = 0
        self._search_token = 0

        self._sweeper = CacheSweeper(
            self.optimize_performance,
            sweep_interval if sweep_interval is not None else settings.cache_sweep_interval,
        )

    async def __aenter__(self):
        self.start_maintenance()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop_maintenance()

    # Read-only state. Views hand out copies; mutation goes through the methods below.

    @property
    def state(self) -> InteractionState:
        return self._state.copy()

    @property
    def graph(self) -> Optional[CanonicalGraph]:
        return self._graph.copy() if self._graph is not None else None

    @property
    def selected_node_id(self) -> Optional[str]:
        return self._state.selected_node_id

    @property
    def focused_node_id(self) -> Optional[str]:
        return self._state.focused_node_id

    @property
    def search_mode(self) -> bool:
        return self._state.search_mode

    @property
    def search_result_ids(self) -> List[str]:
        return list(self._state.search_result_ids)

    @property
    def multi_select_mode(self) -> bool:
        return self._state.multi_select_mode

    # Derived views

    @property
    def filtered_nodes(self) -> List[GraphNode]:
        """Nodes matching the active type filter and search text."""
        if self._graph is None:
            return []

        nodes = self._graph.nodes
        if self._state.filter_types:
            wanted = {node_type.upper() for node_type in self._state.filter_types}
            nodes = [node for node in nodes if node.type.value in wanted]

        query = self._state.search_query.strip().lower()
        if query:
            nodes = [
                node for node in nodes
                if query in node.name.lower() or query in (node.description or "").lower()
            ]

        return [node.copy() for node in nodes]

    @property
    def visible_links(self) -> List[GraphLink]:
        """Links whose endpoints are both among the filtered nodes."""
        if self._graph is None:
            return []
        visible_ids = {node.id for node in self.filtered_nodes}
        return [
            link.copy() for link in self._graph.links
            if link.source in visible_ids and link.target in visible_ids
        ]

    @property
    def search_result_nodes(self) -> List[GraphNode]:
        """Loaded nodes matching the last search, in result order."""
        if self._graph is None or not self._state.search_result_ids:
            return []
        by_id = {node.id: node for node in self._graph.nodes}
        return [by_id[node_id].copy() for node_id in self._state.search_result_ids if node_id in by_id]

    @property
    def has_search_results(self) -> bool:
        return len(self._state.search_result_ids) > 0

    @property
    def selected_node(self) -> Optional[GraphNode]:
        if self._state.selected_node_id is None or self._graph is None:
            return None
        return self._copy_of(self._state.selected_node_id)

    @property
    def focused_node(self) -> Optional[GraphNode]:
        if self._state.focused_node_id is None or self._graph is None:
            return None
        return self._copy_of(self._state.focused_node_id)

    def _copy_of(self, node_id: str) -> Optional[GraphNode]:
        node = self._graph.get_node(node_id)
        return node.copy() if node is not None else None

    @property
    def selected_nodes_list(self) -> List[GraphNode]:
        if self._graph is None or not self._state.selected_nodes:
            return []
        return [node.copy() for node in self._graph.nodes if node.id in self._state.selected_nodes]

    @property
    def cache_hit_rate(self) -> float:
        return self.orchestrator.cache_hit_rate

    # Graph loading

    async def load_graph(self, params: Optional[GraphQueryParams] = None) -> bool:
        """Load the canonical graph and reapply saved node positions."""
        self._load_token += 1
        token = self._load_token
        self.loading = True
        self.error = None

        try:
            result = await self.orchestrator.get_graph_data(params)
        except RemoteCallError as e:
            if token == self._load_token:
                self.error = str(e) or "Failed to load graph data"
                self.logger.error(f"Failed to load graph data: {e}")
            return False
        finally:
            if token == self._load_token:
                self.loading = False

        if token != self._load_token:
            self.logger.debug("Discarding superseded graph load")
            return False

        graph = result.graph.copy()
        self._apply_positions(graph)
        self._graph = graph
        self.integrity_report = result.report
        self.logger.info(
            f"Loaded graph with {len(graph.nodes)} nodes and {len(graph.links)} links"
        )
        return True

    def _apply_positions(self, graph: CanonicalGraph):
        for node in graph.nodes:
            position = self._state.node_positions.get(node.id)
            if position is not None:
                node.x = position.x
                node.y = position.y

    async def update_filter(self, types: Iterable[str]) -> bool:
        self._state.filter_types = list(types)
        return await self.load_graph(GraphQueryParams(
            node_type=self._single_filter_type(),
            search=self._state.search_query or None,
        ))

    def _single_filter_type(self) -> str:
        if len(self._state.filter_types) == 1:
            return self._state.filter_types[0]
        return "ALL"

    # Selection

    async def select_node(self, node_id: Optional[str]):
        """Select a node; concept nodes get their detail panels loaded."""
        self._selection_token += 1
        self.details_loading = False
        self._state.selected_node_id = node_id
        self._clear_details()
        self.details_error = None

        if node_id is not None:
            await self.load_node_details(node_id)

    async def load_node_details(self, node_id: str):
        """Fetch detail, related articles and statistics of a concept node together.

        Only the selected node's details are loaded; any other id is ignored.
        """
        token = self._selection_token
        if node_id != self._state.selected_node_id:
            self.logger.debug(f"Ignoring details of {node_id}: not the selected node")
            return
        node = self._graph.get_node(node_id) if self._graph is not None else None
        if node is None or node.type is not NodeType.CONCEPT:
            return

        self.details_loading = True
        try:
            results = await asyncio.gather(
                self.orchestrator.get_concept_detail(node.name),
                self.orchestrator.get_related_articles(node.name),
                self.orchestrator.get_concept_statistics(node.name),
                return_exceptions=True,
            )
        finally:
            if token == self._selection_token:
                self.details_loading = False

        if token != self._selection_token:
            self.logger.debug(f"Discarding details of {node_id}: selection changed")
            return

        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            self.logger.error(f"Failed to load details of {node_id}: {errors[0]}")
            self._clear_details()
            self.details_error = str(errors[0])
            return

        detail, articles, statistics = results
        self.selected_node_details = detail
        self.related_articles = list(articles)
        self.concept_statistics = statistics

    def _clear_details(self):
        self.selected_node_details = None
        self.related_articles = []
        self.concept_statistics = None

    async def focus_on_node(self, node_id: str):
        self._state.focused_node_id = node_id
        await self.select_node(node_id)

    def clear_focus(self):
        self._state.focused_node_id = None

    # Multi-select

    def toggle_multi_select_mode(self):
        self._state.multi_select_mode = not self._state.multi_select_mode
        if not self._state.multi_select_mode:
            self._state.selected_nodes.clear()

    def add_to_selection(self, node_id: str):
        if self._state.multi_select_mode:
            self._state.selected_nodes.add(node_id)

    def remove_from_selection(self, node_id: str):
        if self._state.multi_select_mode:
            self._state.selected_nodes.discard(node_id)

    def select_multiple_nodes(self, node_ids: Iterable[str]):
        if self._state.multi_select_mode:
            self._state.selected_nodes.update(node_ids)

    def clear_selection(self):
        self._state.selected_nodes.clear()

    # Search

    async def update_search_query(self, query: str):
        self._state.search_query = query
        await self.perform_search(query)

    async def perform_search(self, query: str):
        """Search concepts, scope the graph to the query and focus a lone match."""
        self._search_token += 1
        token = self._search_token
        self.search_loading = False
        self.search_error = None

        if not query.strip():
            self._state.search_result_ids = []
            self._state.search_mode = False
            await self.load_graph()
            return

        self.search_loading = True
        try:
            results = await self.orchestrator.search_concepts(query.strip())
        except RemoteCallError as e:
            if token == self._search_token:
                self.logger.error(f"Search for {query!r} failed: {e}")
                self._state.search_result_ids = []
                self._state.search_mode = False
                self.search_error = str(e)
            return
        finally:
            if token == self._search_token:
                self.search_loading = False

        if token != self._search_token:
            self.logger.debug(f"Discarding superseded search for {query!r}")
            return

        self._state.search_result_ids = [result.id for result in results]
        self._state.search_mode = True
        self.logger.info(f"Search {query!r} matched {len(results)} concepts")

        await self.load_graph(GraphQueryParams(search=query, node_type=self._single_filter_type()))
        if token != self._search_token:
            return

        if len(self._state.search_result_ids) == 1:
            await self.focus_on_node(self._state.search_result_ids[0])

    # Expansion

    def expand_node(self, node_id: str):
        self._state.expanded_nodes.add(node_id)

    def collapse_node(self, node_id: str):
        self._state.expanded_nodes.discard(node_id)

    def toggle_node_expansion(self, node_id: str):
        if node_id in self._state.expanded_nodes:
            self.collapse_node(node_id)
        else:
            self.expand_node(node_id)

    def expand_multiple_nodes(self, node_ids: Iterable[str]):
        self._state.expanded_nodes.update(node_ids)

    def collapse_all_nodes(self):
        self._state.expanded_nodes.clear()

    def is_expanded(self, node_id: str) -> bool:
        return node_id in self._state.expanded_nodes

    # Positions

    def save_position(self, node_id: str, x: float, y: float):
        """Remember a node's coordinates, whether or not the node is loaded."""
        self._state.node_positions[node_id] = NodePosition(x=x, y=y)
        node = self._graph.get_node(node_id) if self._graph is not None else None
        if node is not None:
            node.x = x
            node.y = y

    def get_position(self, node_id: str) -> Optional[NodePosition]:
        return self._state.node_positions.get(node_id)

    # Presentation flags

    def highlight_nodes(self, node_ids: Iterable[str]):
        self._state.highlighted_nodes = list(node_ids)

    def clear_highlight(self):
        """Clear highlighted nodes and leave search mode. The query text is kept."""
        self._state.highlighted_nodes = []
        self._state.search_mode = False
        self._state.search_result_ids = []

    def set_layout(self, layout: Union[LayoutMode, str]):
        self._state.layout = LayoutMode(layout)

    def set_animating(self, animating: bool):
        self._state.animating = animating

    # Maintenance

    def optimize_performance(self):
        """Sweep expired cache entries and cap the position map."""
        self.orchestrator.sweep_cache()

        positions = self._state.node_positions
        if len(positions) > settings.position_cache_limit:
            keep = list(positions.items())[-settings.position_cache_trim_to:]
            self._state.node_positions = dict(keep)
            self.logger.debug(f"Trimmed node positions from {len(positions)} to {len(keep)}")

    def start_maintenance(self):
        self._sweeper.start()

    async def stop_maintenance(self):
        await self._sweeper.stop()

    # Snapshots

    def export_state(self) -> str:
        """Serialize the graph, positions, selection and expansion to JSON."""
        return json.dumps({
            "graphData": self._graph.to_dict() if self._graph is not None else None,
            "nodePositions": [
                [node_id, position.to_dict()] for node_id, position in self._state.node_positions.items()
            ],
            "selectedNodes": sorted(self._state.selected_nodes),
            "expandedNodes": sorted(self._state.expanded_nodes),
        }, indent=2, ensure_ascii=False)

    def import_state(self, json_data: str) -> bool:
        """Restore a snapshot produced by export_state. Invalid input changes nothing."""
        try:
            data = json.loads(json_data)
            positions = {
                str(node_id): NodePosition(x=float(pos["x"]), y=float(pos["y"]))
                for node_id, pos in data.get("nodePositions") or []
            }
            selected = {str(node_id) for node_id in data.get("selectedNodes") or []}
            expanded = {str(node_id) for node_id in data.get("expandedNodes") or []}
            graph_data = data.get("graphData")
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            self.logger.error(f"Failed to import graph state: {e}")
            return False

        graph = None
        if graph_data is not None:
            graph = self.orchestrator.normalizer.normalize(graph_data).graph

        self._state.node_positions = positions
        self._state.selected_nodes = selected
        self._state.expanded_nodes = expanded
        if graph is not None:
            self._apply_positions(graph)
        self._graph = graph
        return True

    def reset(self):
        """Return the engine, its cache and its metrics to their initial state."""
        self._load_token += 1
        self._selection_token += 1
        self._search_token += 1

        self._state = InteractionState()
        self._graph = None
        self.integrity_report = None
        self.loading = False
        self.error = None
        self._clear_details()
        self.details_loading = False
        self.details_error = None
        self.search_loading = False
        self.search_error = None

        self.orchestrator.invalidate()
        self.orchestrator.reset_metrics()
