from typing import List, Dict, Any, Optional, Set
from dataclasses import dataclass, field, replace
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class NodeType(Enum):
    """Node type enumeration."""
    CONCEPT = "CONCEPT"
    ARTICLE = "ARTICLE"
    NOTE = "NOTE"


class RelationType(Enum):
    """Relation type enumeration."""
    CONTAINS = "CONTAINS"
    RELATED_TO = "RELATED_TO"
    DISCUSSES = "DISCUSSES"


class LayoutMode(Enum):
    """Layout requested from the renderer."""
    FORCE = "force"
    CIRCULAR = "circular"
    HIERARCHICAL = "hierarchical"


@dataclass
class NodePosition:
    """Persisted layout coordinates of a node."""
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class GraphNode:
    """Represents a node in the canonical graph."""
    id: str
    name: str
    type: NodeType
    importance: float = 0.5
    description: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)
    x: Optional[float] = None
    y: Optional[float] = None

    def copy(self) -> "GraphNode":
        return replace(self, properties=dict(self.properties))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "importance": self.importance,
            "description": self.description,
            "properties": self.properties,
        }
        if self.x is not None and self.y is not None:
            data["x"] = self.x
            data["y"] = self.y
        return data


@dataclass
class GraphLink:
    """Represents a link between two nodes of the canonical graph."""
    source: str
    target: str
    type: RelationType
    strength: float = 1.0
    properties: Dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "GraphLink":
        return replace(self, properties=dict(self.properties))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source": self.source,
            "target": self.target,
            "type": self.type.value,
            "strength": self.strength,
            "properties": self.properties,
        }


@dataclass
class CanonicalGraph:
    """Normalized node-link graph."""
    nodes: List[GraphNode] = field(default_factory=list)
    links: List[GraphLink] = field(default_factory=list)

    def node_ids(self) -> Set[str]:
        return {node.id for node in self.nodes}

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def copy(self) -> "CanonicalGraph":
        """Copy nodes and links so the copy can be mutated independently."""
        return CanonicalGraph(
            nodes=[node.copy() for node in self.nodes],
            links=[link.copy() for link in self.links],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "links": [link.to_dict() for link in self.links],
        }


@dataclass
class IntegrityReport:
    """Integrity violations found while normalizing a payload."""
    dropped_links: int = 0
    dropped_link_samples: List[Dict[str, Any]] = field(default_factory=list)
    invalid_nodes: int = 0
    duplicate_node_ids: List[str] = field(default_factory=list)

    @property
    def violation_count(self) -> int:
        return self.dropped_links + self.invalid_nodes + len(self.duplicate_node_ids)

    @property
    def is_clean(self) -> bool:
        return self.violation_count == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "dropped_links": self.dropped_links,
            "dropped_link_samples": self.dropped_link_samples,
            "invalid_nodes": self.invalid_nodes,
            "duplicate_node_ids": self.duplicate_node_ids,
        }


@dataclass
class NormalizationResult:
    """A canonical graph together with its integrity report."""
    graph: CanonicalGraph
    report: IntegrityReport


@dataclass
class GraphQueryParams:
    """Parameters of a graph data query."""
    node_type: Optional[str] = None
    search: Optional[str] = None
    limit: Optional[int] = None

    def to_params(self) -> Dict[str, Any]:
        """Get the set parameters only, using the backend's field names."""
        params = {}
        if self.node_type:
            params["nodeType"] = self.node_type
        if self.search:
            params["search"] = self.search
        if self.limit:
            params["limit"] = self.limit
        return params


@dataclass
class CacheEntry:
    """A cached value with the time it was stored and its time-to-live."""
    value: Any
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl


class BackendModel(BaseModel):
    """Base for DTOs returned by the knowledge backend."""
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)


class ConceptStatistics(BackendModel):
    """Usage statistics of a concept."""
    concept_name: str = Field(default="", alias="conceptName")
    concept_type: str = Field(default="", alias="conceptType")
    article_count: int = Field(default=0, alias="articleCount")
    note_count: int = Field(default=0, alias="noteCount")
    total_frequency: int = Field(default=0, alias="totalFrequency")
    related_concept_count: int = Field(default=0, alias="relatedConceptCount")
    average_confidence: float = Field(default=0.0, alias="averageConfidence")
    first_mentioned: Optional[str] = Field(default=None, alias="firstMentioned")
    last_mentioned: Optional[str] = Field(default=None, alias="lastMentioned")


class RelatedArticle(BackendModel):
    """Article related to a concept."""
    id: str
    title: str = ""
    summary: str = ""
    publish_date: Optional[str] = Field(default=None, alias="publishDate")
    confidence: Optional[float] = None
    context: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    relevance_score: float = Field(default=0.0, alias="relevanceScore")


class RelatedConcept(BackendModel):
    """Concept linked to another concept."""
    id: str
    name: str = ""
    strength: float = 0.0


class ConceptDetail(BackendModel):
    """Detailed information about a concept."""
    id: str
    name: str = ""
    type: str = ""
    description: str = ""
    synonyms: List[str] = Field(default_factory=list)
    statistics: Optional[ConceptStatistics] = None
    related_concepts: List[RelatedConcept] = Field(default_factory=list, alias="relatedConcepts")


class ConceptSearchResult(BackendModel):
    """Concept matched by a text search."""
    id: str
    name: str = ""
    type: str = ""
    description: str = ""
    article_count: int = Field(default=0, alias="articleCount")
    note_count: int = Field(default=0, alias="noteCount")
