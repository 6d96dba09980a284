from typing import List, Dict, Any, Optional, Set
from dataclasses import dataclass, field
import copy

from ..types import LayoutMode, NodePosition


@dataclass
class InteractionState:
    """Selection, focus, search and layout state over the canonical graph.

    Only `node_positions` survives a graph reload; it is keyed by node id.
    """
    selected_node_id: Optional[str] = None
    selected_nodes: Set[str] = field(default_factory=set)
    multi_select_mode: bool = False
    expanded_nodes: Set[str] = field(default_factory=set)
    focused_node_id: Optional[str] = None
    search_query: str = ""
    search_result_ids: List[str] = field(default_factory=list)
    search_mode: bool = False
    node_positions: Dict[str, NodePosition] = field(default_factory=dict)
    filter_types: List[str] = field(default_factory=list)
    highlighted_nodes: List[str] = field(default_factory=list)
    layout: LayoutMode = LayoutMode.FORCE
    animating: bool = False

    def copy(self) -> "InteractionState":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "selected_node_id": self.selected_node_id,
            "selected_nodes": sorted(self.selected_nodes),
            "multi_select_mode": self.multi_select_mode,
            "expanded_nodes": sorted(self.expanded_nodes),
            "focused_node_id": self.focused_node_id,
            "search_query": self.search_query,
            "search_result_ids": list(self.search_result_ids),
            "search_mode": self.search_mode,
            "node_positions": {node_id: pos.to_dict() for node_id, pos in self.node_positions.items()},
            "filter_types": list(self.filter_types),
            "highlighted_nodes": list(self.highlighted_nodes),
            "layout": self.layout.value,
            "animating": self.animating,
        }
