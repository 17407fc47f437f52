"""
Graph snapshot serialization.

A snapshot is a plain JSON document:

{
  "version": 1,
  "cost_policy": "per_predecessor",
  "next_id": 5,
  "nodes": [
    {"id": 1, "kind": "Start", "position": [0.0, 0.0], "cost": null},
    {"id": 2, "kind": "Waypoint", "position": [200.0, 0.0], "cost": {"1": 8}},
    ...
  ],
  "edges": [
    {"source": 1, "source_port": 0, "dest": 2, "dest_port": 0},
    ...
  ]
}

"cost" is an int under the scalar policy and a {predecessor_id: cost} object
under the per-predecessor policy (JSON object keys are strings on disk).
Nodes and edges are written in id order and keys are sorted, so writing a
loaded snapshot again gives back the same bytes.

Loading validates the whole document before anything is built; any schema
violation raises LoadError.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from pathcanvas.cost_model import CostModel, CostPolicy, create_cost_model
from pathcanvas.graph_store import GraphStore, NodeKind, UNIQUE_KINDS

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class LoadError(ValueError):
    """Raised when a snapshot cannot be turned back into a graph."""


def dump_snapshot(store: GraphStore, cost_model: CostModel) -> Dict[str, Any]:
    nodes = []
    for node in store.iter_nodes_sorted():
        cost = node.payload
        if isinstance(cost, dict):
            cost = {str(pred): value for pred, value in sorted(cost.items())}
        nodes.append({
            "id": node.id,
            "kind": node.kind.value,
            "position": [node.position[0], node.position[1]],
            "cost": cost,
        })
    edges = [
        {
            "source": edge.source,
            "source_port": edge.source_port,
            "dest": edge.dest,
            "dest_port": edge.dest_port,
        }
        for edge in sorted(store.edges())
    ]
    return {
        "version": SNAPSHOT_VERSION,
        "cost_policy": cost_model.policy.value,
        "next_id": store.next_id,
        "nodes": nodes,
        "edges": edges,
    }


def dumps(snapshot: Dict[str, Any]) -> str:
    return json.dumps(snapshot, indent=2, sort_keys=True, ensure_ascii=False)


def loads(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LoadError("Snapshot must be a JSON object")
    return data


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _decode_cost(raw: Any, policy: CostPolicy, node_id: int) -> Any:
    if policy == CostPolicy.PER_PREDECESSOR and isinstance(raw, dict):
        decoded = {}
        for key, value in raw.items():
            try:
                decoded[int(key)] = value
            except (TypeError, ValueError):
                raise LoadError(f"Node {node_id}: predecessor key {key!r} is not an id")
        return decoded
    return raw


def restore_snapshot(snapshot: Dict[str, Any], **cost_options) -> Tuple[GraphStore, CostModel]:
    """
    Build a fresh store and cost model from a snapshot document.

    `cost_options` are passed to the cost model (min_cost, distance_divisor,
    default_cost); the policy always comes from the snapshot.
    """
    if snapshot.get("version") != SNAPSHOT_VERSION:
        raise LoadError(f"Unsupported snapshot version: {snapshot.get('version')!r}")
    try:
        policy = CostPolicy(snapshot.get("cost_policy"))
    except ValueError:
        raise LoadError(f"Unknown cost policy: {snapshot.get('cost_policy')!r}")

    raw_nodes = snapshot.get("nodes")
    raw_edges = snapshot.get("edges")
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise LoadError("Snapshot needs 'nodes' and 'edges' lists")

    store = GraphStore()
    cost_model = create_cost_model(policy, store, **cost_options)
    seen_kinds: List[NodeKind] = []

    for raw in raw_nodes:
        if not isinstance(raw, dict):
            raise LoadError(f"Node entry must be an object: {raw!r}")
        node_id = raw.get("id")
        if not _is_int(node_id) or node_id < 1:
            raise LoadError(f"Invalid node id: {node_id!r}")
        if node_id in store:
            raise LoadError(f"Duplicate node id: {node_id}")
        try:
            kind = NodeKind(raw.get("kind"))
        except ValueError:
            raise LoadError(f"Node {node_id}: unknown kind {raw.get('kind')!r}")
        if kind in UNIQUE_KINDS and kind in seen_kinds:
            raise LoadError(f"More than one {kind.value} node")
        seen_kinds.append(kind)

        position = raw.get("position")
        if not isinstance(position, list) or len(position) != 2 or not all(_is_number(v) for v in position):
            raise LoadError(f"Node {node_id}: position must be [x, y] with finite numbers")

        payload = _decode_cost(raw.get("cost"), policy, node_id)
        if not cost_model.validate_payload(kind, payload):
            raise LoadError(f"Node {node_id}: cost {raw.get('cost')!r} does not fit the {policy.value} policy")

        store.insert(kind, (position[0], position[1]), payload=payload, node_id=node_id)

    for raw in raw_edges:
        if not isinstance(raw, dict):
            raise LoadError(f"Edge entry must be an object: {raw!r}")
        fields = [raw.get(k) for k in ("source", "source_port", "dest", "dest_port")]
        if not all(_is_int(v) for v in fields):
            raise LoadError(f"Invalid edge: {raw!r}")
        source, source_port, dest, dest_port = fields
        if source not in store or dest not in store:
            raise LoadError(f"Edge references a missing node: {raw!r}")
        if not store.connect(source, dest, source_port, dest_port):
            raise LoadError(f"Edge is not allowed or duplicated: {raw!r}")

    next_id = snapshot.get("next_id")
    if not _is_int(next_id) or next_id < store.next_id:
        raise LoadError(f"next_id must be an int >= {store.next_id}, got {next_id!r}")
    store.reserve_ids(next_id)

    return store, cost_model


def save_snapshot_file(path: Union[str, Path], snapshot: Dict[str, Any]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps(snapshot))
    logger.info(f"Saved snapshot to {path}")
    return path


def load_snapshot_file(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise LoadError(f"Failed to read {path}: {e}") from e
    return loads(text)
