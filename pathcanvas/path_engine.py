"""
Path Engine - cheapest path from the Start node to the Finish node.

Two interchangeable solvers:

- `dijkstra`: binary-heap Dijkstra written out by hand. Frontier entries are
  `(distance, node_id)` tuples, so equal distances are expanded in node-id
  order and outgoing edges are relaxed in (dest, ports) order. Repeated runs on
  an unchanged graph therefore return the same path.
- `networkx_dijkstra`: the same search through `networkx.single_source_dijkstra`.
  Both agree on total cost; when several cheapest paths exist they may pick
  different ones.

Failures are returned as values, never raised:
MissingStart, MissingFinish, Unreachable.
"""

import heapq
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import networkx as nx

from pathcanvas.cost_model import CostModel
from pathcanvas.graph_store import GraphStore, Node

logger = logging.getLogger(__name__)


class PathError(str, Enum):
    MISSING_START = "MissingStart"
    MISSING_FINISH = "MissingFinish"
    UNREACHABLE = "Unreachable"


class Solver(str, Enum):
    HEAP = "heap"
    NETWORKX = "networkx"


@dataclass(frozen=True)
class PathResult:
    path: Tuple[int, ...]
    cost: int


@dataclass(frozen=True)
class SearchOutcome:
    """Either a `result` or an `error`, never both."""
    result: Optional[PathResult] = None
    error: Optional[PathError] = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def found(cls, path: List[int], cost: int) -> "SearchOutcome":
        return cls(result=PathResult(path=tuple(path), cost=int(cost)))

    @classmethod
    def failed(cls, error: PathError) -> "SearchOutcome":
        return cls(error=error)


def _terminals(store: GraphStore) -> Tuple[Optional[Node], Optional[Node], Optional[PathError]]:
    start = store.start
    if start is None:
        return None, None, PathError.MISSING_START
    finish = store.finish
    if finish is None:
        return start, None, PathError.MISSING_FINISH
    return start, finish, None


def _reconstruct(previous: Dict[int, int], start: int, finish: int) -> List[int]:
    path = [finish]
    cursor = finish
    while cursor != start:
        cursor = previous[cursor]
        path.append(cursor)
    path.reverse()
    return path


def dijkstra(store: GraphStore, cost_model: CostModel) -> SearchOutcome:
    start, finish, error = _terminals(store)
    if error is not None:
        return SearchOutcome.failed(error)
    if start.id == finish.id:
        return SearchOutcome.found([start.id], 0)

    best: Dict[int, int] = {start.id: 0}
    previous: Dict[int, int] = {}
    frontier: List[Tuple[int, int]] = [(0, start.id)]

    while frontier:
        dist, current = heapq.heappop(frontier)
        if current == finish.id:
            return SearchOutcome.found(_reconstruct(previous, start.id, finish.id), dist)
        if dist > best.get(current, dist):
            # stale entry, a cheaper one was already expanded
            continue

        for edge in sorted(store.outbound(current)):
            candidate = dist + cost_model.edge_cost(current, edge.dest)
            known = best.get(edge.dest)
            if known is None or candidate < known:
                best[edge.dest] = candidate
                previous[edge.dest] = current
                heapq.heappush(frontier, (candidate, edge.dest))

    return SearchOutcome.failed(PathError.UNREACHABLE)


def networkx_dijkstra(store: GraphStore, cost_model: CostModel) -> SearchOutcome:
    start, finish, error = _terminals(store)
    if error is not None:
        return SearchOutcome.failed(error)

    def weight(u, v, _edges):
        # parallel edges share one cost, it is stored on the destination
        return cost_model.edge_cost(u, v)

    try:
        cost, path = nx.single_source_dijkstra(store.G, start.id, finish.id, weight=weight)
    except nx.NetworkXNoPath:
        return SearchOutcome.failed(PathError.UNREACHABLE)
    return SearchOutcome.found(path, cost)


_SOLVERS = {
    Solver.HEAP: dijkstra,
    Solver.NETWORKX: networkx_dijkstra,
}


def run_path_search(store: GraphStore, cost_model: CostModel,
                    solver: Solver = Solver.HEAP) -> SearchOutcome:
    """Search the current graph and cost snapshot with the selected solver."""
    outcome = _SOLVERS[Solver(solver)](store, cost_model)
    if outcome.ok:
        logger.info(f"Path found: {list(outcome.result.path)} (cost {outcome.result.cost})")
    else:
        logger.info(f"Path search failed: {outcome.error.value}")
    return outcome
