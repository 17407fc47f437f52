import pytest

from pathcanvas.cost_model import CostPolicy, create_cost_model
from pathcanvas.graph_store import GraphStore, NodeKind
from pathcanvas.graph_viz import (
    GraphVisualizer,
    HIGHLIGHT_COLOR,
    KIND_COLORS,
    LINK_COLOR,
    PATH_LINK_COLOR,
    highlighted_nodes,
    node_title,
    path_links,
)
from pathcanvas.path_engine import PathError, SearchOutcome, dijkstra


def find_link(links, src, tgt):
    for l in links:
        if l.get("source") == src and l.get("target") == tgt:
            return l
    return None


@pytest.fixture
def canvas():
    """
    Start -> Waypoint -> Finish, plus a side Waypoint hanging off Start.
    """
    store = GraphStore()
    model = create_cost_model(CostPolicy.PER_PREDECESSOR, store)
    s = store.insert(NodeKind.START, (0, 0))
    w = store.insert(NodeKind.WAYPOINT, (200, 0), payload={})
    f = store.insert(NodeKind.FINISH, (400, 0), payload={})
    side = store.insert(NodeKind.WAYPOINT, (200, 200), payload={})
    for a, b in [(s, w), (w, f), (s, side)]:
        store.connect(a, b)
    model.set_cost(f, 4, predecessor=w)
    return store, model


def test_colors_follow_kind_without_a_result(canvas):
    store, model = canvas
    series = GraphVisualizer(store, model).generate_echarts()["series"][0]

    color_map = {d["id"]: d["itemStyle"]["color"] for d in series["data"]}
    assert color_map == {
        "1": KIND_COLORS[NodeKind.START],
        "2": KIND_COLORS[NodeKind.WAYPOINT],
        "3": KIND_COLORS[NodeKind.FINISH],
        "4": KIND_COLORS[NodeKind.WAYPOINT],
    }
    assert all(l["lineStyle"]["color"] == LINK_COLOR for l in series["links"])


def test_path_nodes_and_links_are_highlighted(canvas):
    store, model = canvas
    outcome = dijkstra(store, model)
    series = GraphVisualizer(store, model).generate_echarts(outcome)["series"][0]

    color_map = {d["id"]: d["itemStyle"]["color"] for d in series["data"]}
    assert color_map["1"] == color_map["2"] == color_map["3"] == HIGHLIGHT_COLOR
    assert color_map["4"] == KIND_COLORS[NodeKind.WAYPOINT]

    path_link = find_link(series["links"], "2", "3")
    ls = path_link["lineStyle"]
    assert ls["color"] == PATH_LINK_COLOR
    assert ls["width"] >= 4
    # glow emulation uses shadowBlur
    assert ls["shadowBlur"] >= 10

    side_link = find_link(series["links"], "1", "4")
    assert side_link["lineStyle"]["width"] == 2
    assert side_link["lineStyle"]["color"] == LINK_COLOR


def test_links_are_labelled_with_costs(canvas):
    store, model = canvas
    links = GraphVisualizer(store, model).generate_echarts()["series"][0]["links"]
    assert find_link(links, "2", "3")["value"] == 4
    assert find_link(links, "2", "3")["label"]["formatter"] == "4"
    assert find_link(links, "1", "2")["value"] == model.default_cost


def test_nodes_are_placed_at_box_centers(canvas):
    store, model = canvas
    data = GraphVisualizer(store, model).generate_echarts()["series"][0]["data"]
    waypoint = [d for d in data if d["id"] == "2"][0]
    assert (waypoint["x"], waypoint["y"]) == (260.0, 30.0)
    assert waypoint["label"]["formatter"] == "Waypoint #2"


def test_failed_outcome_highlights_nothing():
    failed = SearchOutcome.failed(PathError.UNREACHABLE)
    assert highlighted_nodes(failed) == set()
    assert path_links(failed) == set()
    assert highlighted_nodes(None) == set()


def test_path_links_pairs_consecutive_nodes():
    outcome = SearchOutcome.found([1, 5, 3], 4)
    assert path_links(outcome) == {(1, 5), (5, 3)}


def test_node_titles(canvas):
    store, _ = canvas
    assert node_title(store.node(1)) == "Start"
    assert node_title(store.node(3)) == "Finish"
