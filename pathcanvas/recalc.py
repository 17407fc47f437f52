"""
Recalculation Trigger - when costs and paths get recomputed.

Each update cycle the layout surface reports one rectangle per node. Costs
are only recomputed once every node currently in the graph has reported for
the cycle, so a pass never mixes fresh positions with stale ones. After a
recomputation, auto mode re-runs the path search. In auto mode a failed
search is swallowed: no event is emitted and the last shown path stays.
"""

import logging
from typing import Callable, Dict, Mapping, Optional

from pathcanvas.cost_model import CostModel
from pathcanvas.events import EventBus, PathFound
from pathcanvas.geometry import Rect
from pathcanvas.graph_store import GraphStore
from pathcanvas.path_engine import SearchOutcome

logger = logging.getLogger(__name__)


class LayoutPass:
    """Rectangles reported so far in the current cycle."""

    def __init__(self):
        self._rects: Dict[int, Rect] = {}

    @property
    def rects(self) -> Dict[int, Rect]:
        return dict(self._rects)

    def report(self, node_id: int, rect: Rect) -> None:
        self._rects[node_id] = rect

    def is_complete(self, store: GraphStore) -> bool:
        ids = store.node_ids()
        return bool(ids) and all(node_id in self._rects for node_id in ids)

    def reset(self) -> None:
        self._rects.clear()


class RecalculationTrigger:
    def __init__(self, store: GraphStore, cost_model: CostModel,
                 search: Callable[[], SearchOutcome], bus: EventBus,
                 auto_recalculate: bool = False):
        self.store = store
        self.cost_model = cost_model
        self.search = search
        self.bus = bus
        self.auto_recalculate = auto_recalculate
        self.layout = LayoutPass()
        self.last_success: Optional[SearchOutcome] = None

    def set_auto_recalculate(self, enabled: bool) -> None:
        self.auto_recalculate = bool(enabled)
        logger.info(f"Auto-recalculate {'on' if self.auto_recalculate else 'off'}")

    def begin_cycle(self) -> None:
        self.layout.reset()

    def report_node_rect(self, node_id: int, rect: Rect) -> Optional[SearchOutcome]:
        """
        Record one node's rectangle for this cycle. When it completes the
        pass, recompute costs (and search, in auto mode) and start a new pass.
        """
        if node_id not in self.store:
            return None
        self.layout.report(node_id, rect)
        if not self.layout.is_complete(self.store):
            return None
        rects = self.layout.rects
        self.layout.reset()
        return self.recompute(rects)

    def recompute(self, rects: Mapping[int, Rect]) -> Optional[SearchOutcome]:
        self.cost_model.recompute(rects)
        if not self.auto_recalculate:
            return None
        outcome = self.search()
        if outcome.ok:
            self.last_success = outcome
            self.bus.emit(PathFound(cost=outcome.result.cost, path=outcome.result.path))
        else:
            logger.debug(f"Auto search failed quietly: {outcome.error.value}")
        return outcome
