from typing import List, Dict, Any, Optional, Mapping
from datetime import datetime, timezone
import numbers

from ..config import settings
from ..types import (
    GraphNode,
    GraphLink,
    CanonicalGraph,
    IntegrityReport,
    NormalizationResult,
)
from ..utils.logger import app_logger
from .type_normalizer import normalize_node_type, normalize_relation_type, node_type_label


SYNTHETIC_ID_PREFIX = "node-"


def _non_blank(value: Any) -> Optional[str]:
    """Get a stripped string, or None when the value is missing or blank."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def _first_number(*values: Any) -> Optional[float]:
    for value in values:
        if isinstance(value, numbers.Real) and not isinstance(value, bool):
            return float(value)
    return None


def _endpoint_id(endpoint: Any) -> Optional[str]:
    """Resolve a link endpoint given either as an id or as an embedded node."""
    if isinstance(endpoint, Mapping):
        endpoint = endpoint.get("id")
    return _non_blank(endpoint)


class GraphNormalizer:
    """Converts raw backend node/edge payloads into a canonical graph."""

    def __init__(self, sample_size: Optional[int] = None):
        self.logger = app_logger.bind(component="graph_normalizer")
        self.sample_size = settings.integrity_sample_size if sample_size is None else sample_size

    def normalize(self, raw: Any) -> NormalizationResult:
        """Normalize a raw payload. Never raises."""
        try:
            return self._normalize(raw)
        except Exception as e:
            self.logger.error(f"Error normalizing graph payload: {e}")
            return NormalizationResult(graph=CanonicalGraph(), report=IntegrityReport(invalid_nodes=1))

    def _normalize(self, raw: Any) -> NormalizationResult:
        report = IntegrityReport()

        if not isinstance(raw, Mapping):
            if raw is not None:
                self.logger.warning(f"Unexpected graph payload type: {type(raw).__name__}")
            return NormalizationResult(graph=CanonicalGraph(), report=report)

        nodes = self._convert_nodes(self._sequence(raw.get("nodes")), report)

        raw_edges = raw.get("edges")
        if raw_edges is None:
            raw_edges = raw.get("links")
        links = self._convert_links(self._sequence(raw_edges), report)

        links = self._validate(nodes, links, report)

        self.logger.debug(
            f"Normalized graph: {len(nodes)} nodes, {len(links)} links, "
            f"{report.violation_count} integrity violations"
        )
        return NormalizationResult(graph=CanonicalGraph(nodes=nodes, links=links), report=report)

    def _sequence(self, value: Any) -> List[Any]:
        if isinstance(value, (list, tuple)):
            return list(value)
        if value is not None:
            self.logger.warning(f"Expected a sequence, got {type(value).__name__}")
        return []

    def _convert_nodes(self, raw_nodes: List[Any], report: IntegrityReport) -> List[GraphNode]:
        nodes = []
        seen_ids = set()

        for index, raw_node in enumerate(raw_nodes):
            if not isinstance(raw_node, Mapping):
                report.invalid_nodes += 1
                continue

            node = self.convert_node(raw_node, index)
            if node.id in seen_ids:
                report.duplicate_node_ids.append(node.id)
                continue

            seen_ids.add(node.id)
            nodes.append(node)
            self.logger.debug(
                f"Node {index}: label={raw_node.get('label')!r} name={raw_node.get('name')!r} "
                f"title={raw_node.get('title')!r} -> {node.name!r} ({node.type.value})"
            )

        return nodes

    def convert_node(self, raw_node: Mapping, index: int) -> GraphNode:
        """Convert a single raw node found at position `index`."""
        raw_id = _non_blank(raw_node.get("id"))
        node_type = normalize_node_type(raw_node.get("type"))
        name = self.resolve_name(raw_node, index)

        raw_properties = raw_node.get("properties")
        if not isinstance(raw_properties, Mapping):
            raw_properties = {}

        importance = _first_number(raw_node.get("importance"), raw_node.get("size"))
        description = (
            _non_blank(raw_properties.get("description"))
            or _non_blank(raw_node.get("description"))
            or f"{name}的详细信息"
        )

        properties = dict(raw_properties)
        properties.update({
            "category": raw_node.get("category"),
            "color": raw_node.get("color"),
            "createdAt": raw_properties.get("createdAt") or datetime.now(timezone.utc).isoformat(),
            "originalLabel": raw_node.get("label"),
            "originalName": raw_node.get("name"),
            "originalTitle": raw_node.get("title"),
        })

        return GraphNode(
            id=raw_id or f"{SYNTHETIC_ID_PREFIX}{index}",
            name=name,
            type=node_type,
            importance=0.5 if importance is None else importance,
            description=description,
            properties=properties,
        )

    def resolve_name(self, raw_node: Mapping, index: int) -> str:
        """Pick the display name: label, name, title, a meaningful id, then a placeholder."""
        for field_name in ("label", "name", "title"):
            value = _non_blank(raw_node.get(field_name))
            if value:
                return value

        raw_id = _non_blank(raw_node.get("id"))
        if raw_id and not raw_id.startswith(SYNTHETIC_ID_PREFIX) and "_" not in raw_id:
            return raw_id

        node_type = normalize_node_type(raw_node.get("type"))
        return f"未命名{node_type_label(node_type)}-{index}"

    def _convert_links(self, raw_edges: List[Any], report: IntegrityReport) -> List[GraphLink]:
        links = []

        for raw_edge in raw_edges:
            if not isinstance(raw_edge, Mapping):
                self._record_dropped_link(report, {"edge": repr(raw_edge)})
                continue

            source = _endpoint_id(raw_edge.get("source"))
            target = _endpoint_id(raw_edge.get("target"))
            if source is None or target is None:
                self._record_dropped_link(report, {"source": source, "target": target})
                continue

            raw_properties = raw_edge.get("properties")
            properties = dict(raw_properties) if isinstance(raw_properties, Mapping) else {}
            properties.update({"label": raw_edge.get("label"), "color": raw_edge.get("color")})

            strength = _first_number(raw_edge.get("weight"), raw_edge.get("strength"))
            links.append(GraphLink(
                source=source,
                target=target,
                type=normalize_relation_type(raw_edge.get("type") or raw_edge.get("label")),
                strength=1.0 if strength is None else strength,
                properties=properties,
            ))

        return links

    def _validate(self, nodes: List[GraphNode], links: List[GraphLink],
                  report: IntegrityReport) -> List[GraphLink]:
        """Drop links whose endpoints are not present among the nodes."""
        node_ids = {node.id for node in nodes}
        valid_links = []

        for link in links:
            if link.source in node_ids and link.target in node_ids:
                valid_links.append(link)
            else:
                self._record_dropped_link(report, {
                    "source": link.source,
                    "target": link.target,
                    "type": link.type.value,
                })

        if report.dropped_links:
            self.logger.warning(
                f"Dropped {report.dropped_links} links with unresolved endpoints: "
                f"{report.dropped_link_samples}"
            )
        if report.invalid_nodes or report.duplicate_node_ids:
            self.logger.warning(
                f"Skipped {report.invalid_nodes} malformed nodes and "
                f"{len(report.duplicate_node_ids)} duplicate node ids"
            )

        return valid_links

    def _record_dropped_link(self, report: IntegrityReport, sample: Dict[str, Any]):
        report.dropped_links += 1
        if len(report.dropped_link_samples) < self.sample_size:
            report.dropped_link_samples.append(sample)


def denormalize(graph: CanonicalGraph) -> Dict[str, Any]:
    """Render a canonical graph back into the backend's raw payload shape."""
    return {
        "nodes": [
            {
                "id": node.id,
                "label": node.name,
                "type": node.type.value,
                "importance": node.importance,
                "description": node.description,
                "properties": dict(node.properties),
            }
            for node in graph.nodes
        ],
        "edges": [
            {
                "source": link.source,
                "target": link.target,
                "type": link.type.value,
                "weight": link.strength,
                "properties": dict(link.properties),
            }
            for link in graph.links
        ],
    }


_default_normalizer: Optional[GraphNormalizer] = None


def normalize_graph(raw: Any) -> CanonicalGraph:
    """Normalize a raw payload with a shared normalizer and return only the graph."""
    global _default_normalizer
    if _default_normalizer is None:
        _default_normalizer = GraphNormalizer()
    return _default_normalizer.normalize(raw).graph
