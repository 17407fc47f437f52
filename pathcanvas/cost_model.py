"""
Cost Model - how much it costs to travel along an edge.

Costs live on the destination node of an edge. Two storage policies exist:

- "scalar": every Waypoint/Finish holds one int, charged on every inbound edge.
- "per_predecessor": every Waypoint/Finish holds {predecessor_id: cost}, so the
  same node can charge different inbound edges differently. A predecessor that
  is missing from the map costs `default_cost`, for Waypoints and Finish alike.

Costs are recomputed from geometry once a full layout pass is available:

    cost = round(distance(dest.left_center, source.right_center)) // divisor

clamped to `min_cost` (0 disables the clamp, making zero-cost edges valid).
Manual edits through increment/decrement never go below 1.
"""

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pathcanvas.geometry import Rect, distance, round_half_up
from pathcanvas.graph_store import GraphStore, Node, NodeKind

logger = logging.getLogger(__name__)

MANUAL_MIN_COST = 1
DEFAULT_MIN_COST = 1
DEFAULT_DISTANCE_DIVISOR = 10
DEFAULT_EDGE_COST = 1


class CostPolicy(str, Enum):
    SCALAR = "scalar"
    PER_PREDECESSOR = "per_predecessor"


class CostModel:
    """
    Shared behaviour of both policies. Subclasses decide how a node payload
    is shaped, read and written.
    """

    policy: CostPolicy

    def __init__(self, store: GraphStore, min_cost: int = DEFAULT_MIN_COST,
                 distance_divisor: int = DEFAULT_DISTANCE_DIVISOR,
                 default_cost: int = DEFAULT_EDGE_COST):
        if min_cost < 0:
            raise ValueError("min_cost must be >= 0")
        if distance_divisor < 1:
            raise ValueError("distance_divisor must be >= 1")
        if default_cost < 0:
            raise ValueError("default_cost must be >= 0")
        self.store = store
        self.min_cost = min_cost
        self.distance_divisor = distance_divisor
        self.default_cost = default_cost

    # --- Policy hooks ---

    def initial_payload(self, kind: NodeKind) -> Any:
        raise NotImplementedError

    def _read(self, node: Node, predecessor: Optional[int]) -> int:
        raise NotImplementedError

    def _write(self, node: Node, cost: int, predecessor: Optional[int]) -> None:
        raise NotImplementedError

    def _apply_geometry(self, node: Node, costs: Dict[int, int]) -> None:
        raise NotImplementedError

    def validate_payload(self, kind: NodeKind, payload: Any) -> bool:
        raise NotImplementedError

    def forget_predecessor(self, node_id: int) -> None:
        """Drop any cost recorded for edges leaving node_id."""

    # --- Queries ---

    def edge_cost(self, source: int, dest: int) -> int:
        """Cost of travelling source -> dest, looked up on the destination."""
        return self._read(self._costed_node(dest), source)

    def cost_of(self, node_id: int, predecessor: Optional[int] = None) -> int:
        return self._read(self._costed_node(node_id), predecessor)

    def _costed_node(self, node_id: int) -> Node:
        node = self.store.node(node_id)
        if node.kind == NodeKind.START:
            raise ValueError("Start nodes carry no cost")
        return node

    # --- Manual editing ---

    def set_cost(self, node_id: int, cost: int, predecessor: Optional[int] = None) -> int:
        if cost < 0:
            raise ValueError(f"Cost must be >= 0, got {cost}")
        node = self._costed_node(node_id)
        self._write(node, int(cost), predecessor)
        return int(cost)

    def increment_cost(self, node_id: int, predecessor: Optional[int] = None) -> int:
        return self.set_cost(node_id, self.cost_of(node_id, predecessor) + 1, predecessor)

    def decrement_cost(self, node_id: int, predecessor: Optional[int] = None) -> int:
        current = self.cost_of(node_id, predecessor)
        return self.set_cost(node_id, max(MANUAL_MIN_COST, current - 1), predecessor)

    # --- Geometric recomputation ---

    def geometric_cost(self, dest_rect: Rect, source_rect: Rect) -> int:
        dist = distance(dest_rect.left_center(), source_rect.right_center())
        cost = round_half_up(dist) // self.distance_divisor
        return max(cost, self.min_cost)

    def recompute(self, rects: Mapping[int, Rect]) -> int:
        """
        Overwrite cost payloads from layout rectangles.

        Every non-Start node with at least one inbound edge whose both ends
        have a rectangle is updated. Returns the number of nodes written.
        Nodes and edges are never created or removed.
        """
        updated = 0
        for node in self.store.nodes():
            if node.kind == NodeKind.START or node.id not in rects:
                continue
            costs: Dict[int, int] = {}
            for pred in sorted(self.store.predecessors(node.id)):
                if pred in rects:
                    costs[pred] = self.geometric_cost(rects[node.id], rects[pred])
            if costs:
                self._apply_geometry(node, costs)
                updated += 1
        logger.debug(f"Recomputed costs for {updated} nodes ({self.policy.value})")
        return updated


class ScalarCostModel(CostModel):
    """One cost per node, shared by all inbound edges."""

    policy = CostPolicy.SCALAR

    def initial_payload(self, kind: NodeKind) -> Any:
        return None if NodeKind(kind) == NodeKind.START else DEFAULT_EDGE_COST

    def _read(self, node: Node, predecessor: Optional[int]) -> int:
        if node.payload is None:
            return self.default_cost
        return int(node.payload)

    def _write(self, node: Node, cost: int, predecessor: Optional[int]) -> None:
        node.payload = cost

    def _apply_geometry(self, node: Node, costs: Dict[int, int]) -> None:
        # a single number can only describe one inbound edge: the highest-id predecessor wins
        node.payload = costs[max(costs)]

    def validate_payload(self, kind: NodeKind, payload: Any) -> bool:
        if NodeKind(kind) == NodeKind.START:
            return payload is None
        return isinstance(payload, int) and not isinstance(payload, bool) and payload >= 0


class PerPredecessorCostModel(CostModel):
    """A {predecessor_id: cost} map per node."""

    policy = CostPolicy.PER_PREDECESSOR

    def initial_payload(self, kind: NodeKind) -> Any:
        return None if NodeKind(kind) == NodeKind.START else {}

    def _read(self, node: Node, predecessor: Optional[int]) -> int:
        if predecessor is None:
            raise ValueError("Per-predecessor costs need a predecessor id")
        return int((node.payload or {}).get(predecessor, self.default_cost))

    def _write(self, node: Node, cost: int, predecessor: Optional[int]) -> None:
        if predecessor is None:
            raise ValueError("Per-predecessor costs need a predecessor id")
        if node.payload is None:
            node.payload = {}
        node.payload[predecessor] = cost

    def _apply_geometry(self, node: Node, costs: Dict[int, int]) -> None:
        # entries for predecessors that are no longer connected go away here
        node.payload = dict(costs)

    def forget_predecessor(self, node_id: int) -> None:
        for node in self.store.nodes():
            if isinstance(node.payload, dict):
                node.payload.pop(node_id, None)

    def validate_payload(self, kind: NodeKind, payload: Any) -> bool:
        if NodeKind(kind) == NodeKind.START:
            return payload is None
        if not isinstance(payload, dict):
            return False
        for pred, cost in payload.items():
            if not isinstance(pred, int) or isinstance(pred, bool):
                return False
            if not isinstance(cost, int) or isinstance(cost, bool) or cost < 0:
                return False
        return True


_POLICIES = {
    CostPolicy.SCALAR: ScalarCostModel,
    CostPolicy.PER_PREDECESSOR: PerPredecessorCostModel,
}


def create_cost_model(policy: CostPolicy, store: GraphStore, **kwargs) -> CostModel:
    """Instantiate the cost model for a policy name or enum value."""
    return _POLICIES[CostPolicy(policy)](store, **kwargs)
