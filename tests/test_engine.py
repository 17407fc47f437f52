import pytest

from pathcanvas.config import EngineSettings
from pathcanvas.cost_model import CostPolicy
from pathcanvas.events import PathFailed, PathFound
from pathcanvas.geometry import Rect
from pathcanvas.graph_store import NodeKind
from pathcanvas.path_engine import PathError
from pathcanvas.snapshot import LoadError


@pytest.fixture
def engine():
    from pathcanvas.engine import PathCanvasEngine
    return PathCanvasEngine()


@pytest.fixture
def events(engine):
    received = []
    engine.subscribe(received.append)
    return received


def line(engine):
    s = engine.insert_node(NodeKind.START, (0, 0))
    w = engine.insert_node(NodeKind.WAYPOINT, (200, 0))
    f = engine.insert_node(NodeKind.FINISH, (400, 0))
    assert engine.connect(s, w)
    assert engine.connect(w, f)
    return s, w, f


def layout(engine):
    for node in engine.store.nodes():
        engine.report_node_rect(node.id, Rect.at(node.position))


def test_manual_flow(engine, events):
    s, w, f = line(engine)
    assert engine.recompute_costs() is None

    outcome = engine.run_path_search()

    assert outcome.result.path == (s, w, f)
    assert outcome.result.cost == 16
    assert events == [PathFound(cost=16, path=(s, w, f))]
    assert engine.last_outcome == outcome
    assert engine.highlighted_nodes() == {s, w, f}


@pytest.mark.parametrize("kinds,error", [
    ([NodeKind.FINISH], PathError.MISSING_START),
    ([NodeKind.START], PathError.MISSING_FINISH),
    ([NodeKind.START, NodeKind.FINISH], PathError.UNREACHABLE),
])
def test_manual_failures_are_published(engine, events, kinds, error):
    for kind in kinds:
        engine.insert_node(kind, (0, 0))
    outcome = engine.run_path_search()
    assert outcome.error == error
    assert events == [PathFailed(error)]
    assert engine.highlighted_nodes() == set()


def test_refused_insert_returns_none(engine):
    engine.insert_node(NodeKind.START, (0, 0))
    assert not engine.can_insert(NodeKind.START)
    assert engine.insert_node(NodeKind.START, (10, 10)) is None


def test_auto_mode_keeps_last_success_on_failure(engine, events):
    s, w, f = line(engine)
    engine.set_auto_recalculate(True)
    layout(engine)
    success = engine.last_outcome
    assert success.ok

    engine.disconnect(w, f)
    layout(engine)

    assert engine.last_outcome == success
    assert [e.name for e in events] == ["PathFound"]


def test_auto_mode_via_recompute_costs(engine, events):
    s, w, f = line(engine)
    engine.set_auto_recalculate(True)
    rects = {s: Rect.at((0, 0)), w: Rect.at((120, 0)), f: Rect.at((240, 0))}
    outcome = engine.recompute_costs(rects)
    # boxes touch edge to edge, so every cost is clamped up to 1
    assert outcome.result.cost == 2


def test_clear_result_and_removal_drop_highlights(engine):
    s, w, f = line(engine)
    engine.run_path_search()
    engine.remove_node(w)
    assert engine.highlighted_nodes() == {s, f}
    engine.clear_result()
    assert engine.highlighted_nodes() == set()
    assert engine.last_outcome is None


def test_remove_node_forgets_predecessor_costs(engine):
    s, w, f = line(engine)
    engine.set_cost(f, 5, predecessor=w)
    engine.remove_node(w)
    assert engine.store.node(f).payload == {}


def test_manual_cost_editing(engine):
    s, w, f = line(engine)
    assert engine.increment_cost(f, w) == 2
    assert engine.decrement_cost(f, w) == 1
    assert engine.decrement_cost(f, w) == 1
    assert engine.edge_cost(w, f) == 1


def test_scalar_settings():
    from pathcanvas.engine import PathCanvasEngine
    engine = PathCanvasEngine(EngineSettings(cost_policy="scalar", solver="networkx"))
    s, w, f = line(engine)
    assert engine.cost_model.policy == CostPolicy.SCALAR
    assert engine.store.node(w).payload == 1
    assert engine.run_path_search().result.cost == 2


def test_clear_keeps_auto_flag_and_empties_graph(engine):
    line(engine)
    engine.set_auto_recalculate(True)
    engine.run_path_search()
    engine.clear()
    assert len(engine.store) == 0
    assert engine.last_outcome is None
    assert engine.auto_recalculate is True


def test_snapshot_round_trip_through_engine(engine):
    s, w, f = line(engine)
    engine.recompute_costs()
    engine.set_auto_recalculate(True)
    snapshot = engine.to_snapshot()

    from pathcanvas.engine import PathCanvasEngine
    other = PathCanvasEngine()
    other.set_auto_recalculate(True)
    other.load_snapshot(snapshot)

    assert other.to_snapshot() == snapshot
    assert other.auto_recalculate is True
    assert other.run_path_search().result.cost == 16


def test_bad_snapshot_leaves_graph_unchanged(engine):
    line(engine)
    before = engine.to_snapshot()
    with pytest.raises(LoadError):
        engine.load_snapshot({"version": 1, "cost_policy": "scalar", "nodes": "nope", "edges": []})
    assert engine.to_snapshot() == before


def test_save_and_load_file(engine, tmp_path):
    line(engine)
    engine.recompute_costs()
    path = engine.save_file(tmp_path / "graph.json")

    from pathcanvas.engine import PathCanvasEngine
    other = PathCanvasEngine()
    other.load_file(path)
    assert other.to_snapshot() == engine.to_snapshot()


def test_failed_file_load_falls_back_to_empty_graph(engine, tmp_path):
    line(engine)
    bad = tmp_path / "bad.json"
    bad.write_text("{ definitely not json", encoding="utf-8")

    with pytest.raises(LoadError):
        engine.load_file(bad)
    assert len(engine.store) == 0
    assert engine.insert_node(NodeKind.START, (0, 0)) == 1


def test_layout_changed_tracks_geometry_and_structure_only(engine):
    s, w, f = line(engine)
    assert engine.layout_changed
    engine.mark_layout_current()

    engine.increment_cost(f, w)
    engine.run_path_search()
    assert not engine.connect(s, f)
    assert not engine.layout_changed

    engine.move_node(w, (210, 0))
    assert engine.layout_changed
    engine.mark_layout_current()

    engine.disconnect(w, f)
    assert engine.layout_changed
    engine.mark_layout_current()

    engine.invalidate_layout()
    assert engine.layout_changed


def test_snapshot_with_non_finite_position_is_refused(engine):
    s, w, f = line(engine)
    snapshot = engine.to_snapshot()
    snapshot["nodes"][1]["position"] = [float("nan"), 0.0]

    from pathcanvas.engine import PathCanvasEngine
    other = PathCanvasEngine()
    with pytest.raises(LoadError):
        other.load_snapshot(snapshot)
    assert len(other.store) == 0
    assert other.recompute_costs() is None
