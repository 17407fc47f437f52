"""
Graph Store for the path canvas.

Holds typed nodes and directed connections with stable identities. The store
uses a NetworkX MultiDiGraph underneath: every node carries its `Node` record
as the `node` attribute, and parallel edges are told apart by their
`(source_port, dest_port)` key.

Structural rules enforced here:
- at most one Start node and at most one Finish node
- connections only Start->Waypoint, Waypoint->Waypoint, Waypoint->Finish
- ports must exist on the node (Start has no input, Finish has no output)
- removing a node removes every edge touching it
- node ids are integers handed out in increasing order and never reused
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

import networkx as nx

from pathcanvas.geometry import Point

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    START = "Start"
    WAYPOINT = "Waypoint"
    FINISH = "Finish"


# kind -> (input port count, output port count)
PORT_ARITY: Dict[NodeKind, Tuple[int, int]] = {
    NodeKind.START: (0, 1),
    NodeKind.WAYPOINT: (1, 1),
    NodeKind.FINISH: (1, 0),
}

LEGAL_PAIRS = {
    (NodeKind.START, NodeKind.WAYPOINT),
    (NodeKind.WAYPOINT, NodeKind.WAYPOINT),
    (NodeKind.WAYPOINT, NodeKind.FINISH),
}

# Kinds of which a graph may hold at most one
UNIQUE_KINDS = (NodeKind.START, NodeKind.FINISH)


@dataclass
class Node:
    """
    A graph vertex.

    `payload` is whatever the active cost policy stores on the node: None for
    Start, an int for the scalar policy, or a dict of predecessor id -> cost
    for the per-predecessor policy.
    """
    id: int
    kind: NodeKind
    position: Point
    payload: Any = None

    @property
    def inputs(self) -> int:
        return PORT_ARITY[self.kind][0]

    @property
    def outputs(self) -> int:
        return PORT_ARITY[self.kind][1]


@dataclass(frozen=True, order=True)
class Edge:
    """A directed connection from an output port to an input port."""
    source: int
    source_port: int
    dest: int
    dest_port: int


class GraphStore:
    """Owns all nodes and connections and every mutation on them."""

    def __init__(self):
        self.G = nx.MultiDiGraph()
        self._next_id = 1

    # --- Queries ---

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return self.G.number_of_nodes()

    def __contains__(self, node_id: int) -> bool:
        return node_id in self.G

    def node(self, node_id: int) -> Node:
        """Return the node record. Raises KeyError for unknown ids."""
        if node_id not in self.G:
            raise KeyError(f"Unknown node id: {node_id}")
        return self.G.nodes[node_id]["node"]

    def nodes(self) -> List[Node]:
        return [attrs["node"] for _, attrs in self.G.nodes(data=True)]

    def node_ids(self) -> List[int]:
        return list(self.G.nodes)

    def find_kind(self, kind: NodeKind) -> Optional[Node]:
        """Return the first node of the given kind, or None."""
        for node in self.nodes():
            if node.kind == kind:
                return node
        return None

    @property
    def start(self) -> Optional[Node]:
        return self.find_kind(NodeKind.START)

    @property
    def finish(self) -> Optional[Node]:
        return self.find_kind(NodeKind.FINISH)

    def edges(self) -> List[Edge]:
        return [self._edge(u, v, key) for u, v, key in self.G.edges(keys=True)]

    def inbound(self, node_id: int) -> List[Edge]:
        self.node(node_id)
        return [self._edge(u, v, key) for u, v, key in self.G.in_edges(node_id, keys=True)]

    def outbound(self, node_id: int) -> List[Edge]:
        self.node(node_id)
        return [self._edge(u, v, key) for u, v, key in self.G.out_edges(node_id, keys=True)]

    def predecessors(self, node_id: int) -> List[int]:
        """Distinct source node ids with at least one edge into node_id."""
        self.node(node_id)
        return list(self.G.predecessors(node_id))

    def successors(self, node_id: int) -> List[int]:
        self.node(node_id)
        return list(self.G.successors(node_id))

    def has_edge(self, edge: Edge) -> bool:
        return self.G.has_edge(edge.source, edge.dest, key=(edge.source_port, edge.dest_port))

    def can_insert(self, kind: NodeKind) -> bool:
        """False when kind is Start or Finish and one is already present."""
        kind = NodeKind(kind)
        return kind not in UNIQUE_KINDS or self.find_kind(kind) is None

    @staticmethod
    def _edge(u: int, v: int, key: Tuple[int, int]) -> Edge:
        return Edge(source=u, source_port=key[0], dest=v, dest_port=key[1])

    # --- Mutations ---

    def insert(self, kind: NodeKind, position: Point, payload: Any = None,
               node_id: Optional[int] = None) -> Optional[int]:
        """
        Insert a node and return its id.

        Returns None (and leaves the graph untouched) when a second Start or
        Finish is requested. `node_id` is only used when restoring a saved
        graph; it must not collide with an existing node.
        """
        kind = NodeKind(kind)
        if not self.can_insert(kind):
            logger.warning(f"Refused to insert a second {kind.value} node")
            return None

        if node_id is None:
            node_id = self._next_id
        elif node_id in self.G:
            raise ValueError(f"Node id {node_id} is already in use")

        self._next_id = max(self._next_id, node_id + 1)
        node = Node(id=node_id, kind=kind, position=(position[0], position[1]), payload=payload)
        self.G.add_node(node_id, node=node)
        logger.info(f"Inserted {kind.value} node {node_id} at {node.position}")
        return node_id

    def move(self, node_id: int, position: Point) -> None:
        """Record a new position reported by the layout surface."""
        self.node(node_id).position = (position[0], position[1])

    def remove(self, node_id: int) -> None:
        """Remove a node together with every edge incident to it."""
        node = self.node(node_id)
        # networkx drops incident edges along with the node
        self.G.remove_node(node_id)
        logger.info(f"Removed {node.kind.value} node {node_id}")

    def connect(self, source: int, dest: int, source_port: int = 0, dest_port: int = 0) -> bool:
        """
        Connect an output port of `source` to an input port of `dest`.

        Illegal kind pairs, missing ports and already existing connections are
        refused silently; the return value tells whether an edge was added.
        """
        src_node = self.node(source)
        dst_node = self.node(dest)

        if (src_node.kind, dst_node.kind) not in LEGAL_PAIRS:
            logger.debug(f"Refused connection {src_node.kind.value}->{dst_node.kind.value} ({source}->{dest})")
            return False
        if not 0 <= source_port < src_node.outputs or not 0 <= dest_port < dst_node.inputs:
            logger.debug(f"Refused connection {source}:{source_port}->{dest}:{dest_port}: no such port")
            return False

        key = (source_port, dest_port)
        if self.G.has_edge(source, dest, key=key):
            return False
        self.G.add_edge(source, dest, key=key)
        return True

    def disconnect(self, source: int, dest: int, source_port: int = 0, dest_port: int = 0) -> bool:
        """Remove one connection. Returns False when it did not exist."""
        key = (source_port, dest_port)
        if not self.G.has_edge(source, dest, key=key):
            return False
        self.G.remove_edge(source, dest, key=key)
        return True

    def reserve_ids(self, next_id: int) -> None:
        """Make sure no id below next_id is handed out again."""
        self._next_id = max(self._next_id, next_id)

    def clear(self) -> None:
        """Remove every node and edge. Ids handed out so far stay retired."""
        count = self.G.number_of_nodes()
        self.G.clear()
        logger.info(f"Cleared graph ({count} nodes removed)")

    # --- Invariants ---

    def check_invariants(self) -> None:
        """Assert the structural rules. A failure here is a bug in the store."""
        for kind in UNIQUE_KINDS:
            count = sum(1 for n in self.nodes() if n.kind == kind)
            assert count <= 1, f"{count} {kind.value} nodes in graph"
        for edge in self.edges():
            assert edge.source in self.G and edge.dest in self.G, f"Dangling edge {edge}"
            pair = (self.node(edge.source).kind, self.node(edge.dest).kind)
            assert pair in LEGAL_PAIRS, f"Illegal edge {edge}"

    def iter_nodes_sorted(self) -> Iterator[Node]:
        for node_id in sorted(self.G.nodes):
            yield self.node(node_id)
