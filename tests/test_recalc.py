import pytest

from pathcanvas.cost_model import CostPolicy, create_cost_model
from pathcanvas.events import EventBus, PathFound
from pathcanvas.geometry import Rect
from pathcanvas.graph_store import GraphStore, NodeKind
from pathcanvas.path_engine import run_path_search
from pathcanvas.recalc import LayoutPass, RecalculationTrigger


class SearchSpy:
    def __init__(self, store, model):
        self.store = store
        self.model = model
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return run_path_search(self.store, self.model)


@pytest.fixture
def setup():
    store = GraphStore()
    model = create_cost_model(CostPolicy.PER_PREDECESSOR, store)
    s = store.insert(NodeKind.START, (0, 0))
    w = store.insert(NodeKind.WAYPOINT, (200, 0), payload={})
    f = store.insert(NodeKind.FINISH, (400, 0), payload={})
    store.connect(s, w)
    store.connect(w, f)
    bus = EventBus()
    events = []
    bus.subscribe(events.append)
    spy = SearchSpy(store, model)
    trigger = RecalculationTrigger(store, model, spy, bus)
    return trigger, spy, events, (s, w, f)


def report_all(trigger):
    outcome = None
    for node in trigger.store.nodes():
        outcome = trigger.report_node_rect(node.id, Rect.at(node.position))
    return outcome


def test_layout_pass_completes_only_when_every_node_reported():
    store = GraphStore()
    a = store.insert(NodeKind.WAYPOINT, (0, 0))
    b = store.insert(NodeKind.WAYPOINT, (0, 0))
    layout = LayoutPass()
    assert not layout.is_complete(store)
    layout.report(a, Rect.at((0, 0)))
    assert not layout.is_complete(store)
    layout.report(b, Rect.at((0, 0)))
    assert layout.is_complete(store)
    layout.reset()
    assert layout.rects == {}


def test_costs_wait_for_the_full_pass(setup):
    trigger, spy, events, (s, w, f) = setup
    store = trigger.store

    trigger.report_node_rect(s, Rect.at((0, 0)))
    trigger.report_node_rect(w, Rect.at((200, 0)))
    assert store.node(w).payload == {}

    trigger.report_node_rect(f, Rect.at((400, 0)))
    assert store.node(w).payload == {s: 8}
    assert store.node(f).payload == {w: 8}


def test_each_cycle_needs_fresh_reports(setup):
    trigger, spy, events, (s, w, f) = setup
    report_all(trigger)
    trigger.store.move(f, (720, 0))

    # only one node reported in the next cycle: nothing recomputed yet
    trigger.report_node_rect(f, Rect.at((720, 0)))
    assert trigger.store.node(f).payload == {w: 8}

    trigger.report_node_rect(s, Rect.at((0, 0)))
    trigger.report_node_rect(w, Rect.at((200, 0)))
    assert trigger.store.node(f).payload == {w: 40}


def test_reports_for_unknown_nodes_are_ignored(setup):
    trigger, spy, events, ids = setup
    assert trigger.report_node_rect(999, Rect.at((0, 0))) is None
    assert 999 not in trigger.layout.rects


def test_manual_mode_never_searches(setup):
    trigger, spy, events, ids = setup
    assert report_all(trigger) is None
    assert spy.calls == 0
    assert events == []


def test_auto_mode_searches_after_recompute(setup):
    trigger, spy, events, (s, w, f) = setup
    trigger.set_auto_recalculate(True)

    outcome = report_all(trigger)

    assert spy.calls == 1
    assert outcome.ok
    assert outcome.result.path == (s, w, f)
    assert events == [PathFound(cost=16, path=(s, w, f))]
    assert trigger.last_success == outcome


def test_auto_mode_swallows_failures(setup):
    trigger, spy, events, (s, w, f) = setup
    trigger.set_auto_recalculate(True)
    first = report_all(trigger)

    trigger.store.disconnect(w, f)
    outcome = report_all(trigger)

    assert spy.calls == 2
    assert not outcome.ok
    assert len(events) == 1
    assert trigger.last_success == first


def test_recompute_directly(setup):
    trigger, spy, events, (s, w, f) = setup
    trigger.set_auto_recalculate(True)
    rects = {node.id: Rect.at(node.position) for node in trigger.store.nodes()}
    outcome = trigger.recompute(rects)
    assert outcome.result.cost == 16
