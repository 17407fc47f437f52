"""
Graph visualizer that produces an ECharts-compatible configuration for the
path canvas.

This implementation reads the engine's GraphStore and CostModel directly and
returns a plain dict representing an ECharts option/config which can be used
with NiceGUI's ui.echart.

Node colors follow the node kind:
- Start nodes are green, Waypoints blue, Finish orange
- Nodes on the current shortest path are red

Links carry their cost as a label; links along the current path are drawn
thick and gold with a glow. The highlight set is computed from the search
outcome every time, nothing is toggled by hand.
"""

from typing import Any, Dict, List, Optional, Set, Tuple

from pathcanvas.cost_model import CostModel
from pathcanvas.geometry import NODE_HEIGHT, NODE_WIDTH
from pathcanvas.graph_store import GraphStore, Node, NodeKind
from pathcanvas.path_engine import SearchOutcome

KIND_COLORS = {
    NodeKind.START: "#32b432",
    NodeKind.WAYPOINT: "#3278c8",
    NodeKind.FINISH: "#dc7832",
}
HIGHLIGHT_COLOR = "#ff0000"
PATH_LINK_COLOR = "#ffd700"
LINK_COLOR = "#bdbdbd"


def highlighted_nodes(outcome: Optional[SearchOutcome]) -> Set[int]:
    """Node ids on the path of a successful outcome; empty otherwise."""
    if outcome is None or not outcome.ok:
        return set()
    return set(outcome.result.path)


def path_links(outcome: Optional[SearchOutcome]) -> Set[Tuple[int, int]]:
    """(source, dest) pairs traversed by the path of a successful outcome."""
    if outcome is None or not outcome.ok:
        return set()
    path = outcome.result.path
    return set(zip(path, path[1:]))


def node_title(node: Node) -> str:
    if node.kind == NodeKind.WAYPOINT:
        return f"Waypoint #{node.id}"
    return node.kind.value


class GraphVisualizer:
    """
    Build an ECharts configuration (dict) for the canvas. Nodes keep the
    positions the layout surface gave them (layout "none"), so what is drawn
    is exactly what costs were computed from.

    The returned dict follows an ECharts option pattern with a single 'graph' series:
      {
        "series": [
          {
            "type": "graph",
            "layout": "none",
            "data": [...],
            "links": [...],
            ...
          }
        ]
      }
    """

    def __init__(self, store: GraphStore, cost_model: CostModel):
        self.store = store
        self.cost_model = cost_model

    @staticmethod
    def color_for(node: Node, highlighted: Set[int]) -> str:
        if node.id in highlighted:
            return HIGHLIGHT_COLOR
        return KIND_COLORS[node.kind]

    def _node_data(self, highlighted: Set[int]) -> List[Dict[str, Any]]:
        data = []
        for node in self.store.iter_nodes_sorted():
            x, y = node.position
            data.append({
                # ECharts identifies series items by name; the id doubles as it
                "id": str(node.id),
                "name": str(node.id),
                "x": x + NODE_WIDTH / 2.0,
                "y": y + NODE_HEIGHT / 2.0,
                "symbol": "roundRect",
                "symbolSize": [NODE_WIDTH, NODE_HEIGHT],
                "itemStyle": {"color": self.color_for(node, highlighted)},
                "label": {"show": True, "formatter": node_title(node)},
                "kind": node.kind.value,
            })
        return data

    def _link_data(self, on_path: Set[Tuple[int, int]]) -> List[Dict[str, Any]]:
        links = []
        for edge in sorted(self.store.edges()):
            cost = self.cost_model.edge_cost(edge.source, edge.dest)
            if (edge.source, edge.dest) in on_path:
                line_style = {
                    "color": PATH_LINK_COLOR,
                    "width": 6,
                    "opacity": 1.0,
                    # Use shadow to emulate a glow
                    "shadowColor": PATH_LINK_COLOR,
                    "shadowBlur": 12,
                }
            else:
                line_style = {
                    "color": LINK_COLOR,
                    "width": 2,
                    "opacity": 0.9,
                }
            links.append({
                "source": str(edge.source),
                "target": str(edge.dest),
                "value": cost,
                "label": {"show": True, "formatter": str(cost)},
                "lineStyle": line_style,
            })
        return links

    def generate_echarts(self, outcome: Optional[SearchOutcome] = None) -> Dict[str, Any]:
        """
        Construct the ECharts option dict for the current graph, highlighting
        the path of `outcome` when it is a success.
        """
        highlighted = highlighted_nodes(outcome) & set(self.store.node_ids())
        on_path = path_links(outcome)

        return {
            "series": [
                {
                    "type": "graph",
                    "layout": "none",
                    "roam": True,
                    "edgeSymbol": ["none", "arrow"],
                    "edgeSymbolSize": 10,
                    "data": self._node_data(highlighted),
                    "links": self._link_data(on_path),
                    "emphasis": {"focus": "adjacency"},
                }
            ]
        }
