"""
PathCanvasEngine - the single entry point the UI talks to.

Wires the Graph Store, Cost Model, Path Engine and Recalculation Trigger
together and publishes results on an EventBus. Everything runs on the
caller's thread; one update cycle is:

    edits -> report_node_rect() for every node -> costs recomputed -> (auto) search

Usage:
    engine = PathCanvasEngine()
    start = engine.insert_node(NodeKind.START, (0, 0))
    wp = engine.insert_node(NodeKind.WAYPOINT, (200, 0))
    finish = engine.insert_node(NodeKind.FINISH, (400, 0))
    engine.connect(start, wp)
    engine.connect(wp, finish)
    engine.recompute_costs()
    outcome = engine.run_path_search()
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Set, Union

from pathcanvas.config import EngineSettings
from pathcanvas.cost_model import CostModel, CostPolicy, create_cost_model
from pathcanvas.events import EventBus, Listener, event_for
from pathcanvas.geometry import Point, Rect
from pathcanvas.graph_store import GraphStore, NodeKind
from pathcanvas.graph_viz import highlighted_nodes
from pathcanvas.path_engine import SearchOutcome, Solver, run_path_search
from pathcanvas.recalc import RecalculationTrigger
from pathcanvas.snapshot import (
    LoadError,
    dump_snapshot,
    load_snapshot_file,
    restore_snapshot,
    save_snapshot_file,
)

logger = logging.getLogger(__name__)


class PathCanvasEngine:
    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = (settings or EngineSettings()).validate()
        self.bus = EventBus()
        self.solver = Solver(self.settings.solver)
        self._outcome: Optional[SearchOutcome] = None
        self._install(GraphStore(), auto=self.settings.auto_recalculate)

    def _new_cost_model(self, store: GraphStore, policy: Optional[CostPolicy] = None) -> CostModel:
        policy = policy or CostPolicy(self.settings.cost_policy)
        return create_cost_model(policy, store, **self.settings.cost_options())

    def _install(self, store: GraphStore, cost_model: Optional[CostModel] = None,
                 auto: Optional[bool] = None) -> None:
        cost_model = cost_model or self._new_cost_model(store)
        if auto is None:
            auto = self.trigger.auto_recalculate
        self.store = store
        self.cost_model = cost_model
        self.trigger = RecalculationTrigger(store, cost_model, self._search, self.bus, auto_recalculate=auto)
        self._outcome = None
        self._layout_changed = True

    # --- Mutation entry points ---

    def insert_node(self, kind: NodeKind, position: Point) -> Optional[int]:
        """Insert a node. Returns None when a second Start/Finish is refused."""
        kind = NodeKind(kind)
        node_id = self.store.insert(kind, position, payload=self.cost_model.initial_payload(kind))
        if node_id is not None:
            self._layout_changed = True
        return node_id

    def can_insert(self, kind: NodeKind) -> bool:
        return self.store.can_insert(kind)

    def remove_node(self, node_id: int) -> None:
        self.store.remove(node_id)
        self.cost_model.forget_predecessor(node_id)
        self._layout_changed = True

    def move_node(self, node_id: int, position: Point) -> None:
        self.store.move(node_id, position)
        self._layout_changed = True

    def connect(self, source: int, dest: int, source_port: int = 0, dest_port: int = 0) -> bool:
        added = self.store.connect(source, dest, source_port, dest_port)
        self._layout_changed |= added
        return added

    def disconnect(self, source: int, dest: int, source_port: int = 0, dest_port: int = 0) -> bool:
        removed = self.store.disconnect(source, dest, source_port, dest_port)
        self._layout_changed |= removed
        return removed

    def clear(self) -> None:
        """Remove all nodes and edges and drop the current result."""
        self.store.clear()
        self._outcome = None
        self.trigger.last_success = None
        self.trigger.begin_cycle()
        self._layout_changed = True

    # --- Layout tracking ---

    @property
    def layout_changed(self) -> bool:
        """True when nodes moved or the structure changed since the last layout pass."""
        return self._layout_changed

    def invalidate_layout(self) -> None:
        self._layout_changed = True

    def mark_layout_current(self) -> None:
        self._layout_changed = False

    # --- Costs ---

    def report_node_rect(self, node_id: int, rect: Rect) -> Optional[SearchOutcome]:
        """Feed one node's layout rectangle for the current cycle."""
        outcome = self.trigger.report_node_rect(node_id, rect)
        self._remember_auto(outcome)
        return outcome

    def recompute_costs(self, rects: Optional[Mapping[int, Rect]] = None) -> Optional[SearchOutcome]:
        """
        Recompute every cost from a finished layout. Without `rects`, each node
        is assumed to be a default-sized box at its position. In auto mode the
        path search runs right after; its outcome is returned.
        """
        if rects is None:
            rects = {node.id: Rect.at(node.position) for node in self.store.nodes()}
        outcome = self.trigger.recompute(rects)
        self._remember_auto(outcome)
        return outcome

    def set_cost(self, node_id: int, cost: int, predecessor: Optional[int] = None) -> int:
        return self.cost_model.set_cost(node_id, cost, predecessor)

    def increment_cost(self, node_id: int, predecessor: Optional[int] = None) -> int:
        return self.cost_model.increment_cost(node_id, predecessor)

    def decrement_cost(self, node_id: int, predecessor: Optional[int] = None) -> int:
        return self.cost_model.decrement_cost(node_id, predecessor)

    def edge_cost(self, source: int, dest: int) -> int:
        return self.cost_model.edge_cost(source, dest)

    # --- Path search ---

    def _search(self) -> SearchOutcome:
        return run_path_search(self.store, self.cost_model, self.solver)

    def run_path_search(self) -> SearchOutcome:
        """Run the search on demand. Success and failure are both published."""
        outcome = self._search()
        self._outcome = outcome
        self.bus.emit(event_for(outcome))
        return outcome

    def _remember_auto(self, outcome: Optional[SearchOutcome]) -> None:
        if outcome is not None and outcome.ok:
            self._outcome = outcome

    @property
    def last_outcome(self) -> Optional[SearchOutcome]:
        return self._outcome

    def clear_result(self) -> None:
        """Forget the displayed result, e.g. after a structural edit in manual mode."""
        self._outcome = None

    def highlighted_nodes(self) -> Set[int]:
        """Nodes on the current path, derived from the last result."""
        return highlighted_nodes(self._outcome) & set(self.store.node_ids())

    # --- Recalculation trigger ---

    @property
    def auto_recalculate(self) -> bool:
        return self.trigger.auto_recalculate

    def set_auto_recalculate(self, enabled: bool) -> None:
        self.trigger.set_auto_recalculate(enabled)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.bus.subscribe(listener)

    # --- Snapshots ---

    def to_snapshot(self) -> Dict[str, Any]:
        return dump_snapshot(self.store, self.cost_model)

    def load_snapshot(self, snapshot: Dict[str, Any]) -> None:
        """Replace the graph with a snapshot. On LoadError the graph is unchanged."""
        store, cost_model = restore_snapshot(snapshot, **self.settings.cost_options())
        self._install(store, cost_model)
        logger.info(f"Loaded snapshot with {len(store)} nodes ({cost_model.policy.value})")

    def save_file(self, path: Union[str, Path]) -> Path:
        return save_snapshot_file(path, self.to_snapshot())

    def load_file(self, path: Union[str, Path]) -> None:
        """
        Load a snapshot file. A file that cannot be loaded leaves an empty
        graph behind and the LoadError is re-raised for the caller to report.
        """
        try:
            self.load_snapshot(load_snapshot_file(path))
        except LoadError as e:
            logger.warning(f"Failed to load {path}: {e}")
            self._install(GraphStore())
            raise
