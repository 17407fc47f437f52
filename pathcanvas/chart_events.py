"""Turning ECharts click events into node ids."""

from typing import Any, Dict, Optional

from pathcanvas.graph_store import GraphStore

# Event keys we request from ECharts click events
REQUESTED_EVENT_KEYS = ['componentType', 'name', 'seriesType', 'dataType']


def normalize_click_payload(raw_payload: Any) -> Dict[str, Any]:
    """
    NiceGUI delivers the requested keys as a dict, as a list in
    REQUESTED_EVENT_KEYS order, or as just the clicked item's name.
    """
    if isinstance(raw_payload, dict):
        return raw_payload
    if isinstance(raw_payload, str):
        return {'name': raw_payload}
    if isinstance(raw_payload, (list, tuple)):
        return dict(zip(REQUESTED_EVENT_KEYS, raw_payload))
    return {}


def resolve_node_id_from_payload(payload: Dict[str, Any], store: GraphStore) -> Optional[int]:
    """Return the clicked node id, or None for edges, background and stale ids."""
    if not isinstance(payload, dict):
        return None
    if payload.get('componentType') != 'series':
        return None
    if payload.get('dataType') == 'edge':
        return None

    name = payload.get('name')
    try:
        node_id = int(name)
    except (TypeError, ValueError):
        return None
    return node_id if node_id in store else None
