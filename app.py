"""
Main NiceGUI application for the path canvas.

Renders the graph with ui.echart and drives PathCanvasEngine from a side panel:
adding/removing/moving nodes, connecting them, editing costs, saving and
loading snapshots, and running the shortest-path search on demand or
automatically after every layout pass.
"""

import logging
from typing import Optional

from dotenv import load_dotenv
from nicegui import ui

load_dotenv()

from pathcanvas.chart_events import REQUESTED_EVENT_KEYS, normalize_click_payload, resolve_node_id_from_payload
from pathcanvas.config import load_settings
from pathcanvas.cost_model import CostPolicy
from pathcanvas.engine import PathCanvasEngine
from pathcanvas.events import PathFound
from pathcanvas.geometry import Rect
from pathcanvas.graph_store import NodeKind
from pathcanvas.graph_viz import GraphVisualizer, node_title
from pathcanvas.path_engine import SearchOutcome
from pathcanvas.paths import ensure_graphs_dir
from pathcanvas.snapshot import LoadError

settings = load_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def layout_pass(engine: PathCanvasEngine) -> Optional[SearchOutcome]:
    """
    Report every node's rectangle for one update cycle. The last report
    completes the pass and triggers cost recomputation (and, in auto mode,
    the path search, whose outcome is returned).

    Skipped while the layout is unchanged, so hand-edited costs are only
    overwritten once a node moves or the graph structure changes.
    """
    if not engine.layout_changed:
        return None
    engine.trigger.begin_cycle()
    outcome = None
    for node in engine.store.nodes():
        outcome = engine.report_node_rect(node.id, Rect.at(node.position))
    engine.mark_layout_current()
    return outcome


def calculate(engine: PathCanvasEngine) -> SearchOutcome:
    """Calc path button: bring costs up to date, then publish one result."""
    outcome = layout_pass(engine)
    if outcome is not None and outcome.ok:
        # auto mode already searched and published the path
        return outcome
    return engine.run_path_search()


def describe_event(event) -> str:
    if isinstance(event, PathFound):
        return f"Path found, total cost {event.cost}"
    return {
        "MissingStart": "There is no Start node",
        "MissingFinish": "There is no Finish node",
        "Unreachable": "Finish cannot be reached from Start",
    }[event.name]


@ui.page('/')
def main_page():
    engine = PathCanvasEngine(settings)
    graphs_dir = ensure_graphs_dir()
    state = {
        'chart': None,
        'selected_node_id': None,
        'details_container': None,
        'result_label': None,
    }

    def on_engine_event(event):
        ok = isinstance(event, PathFound)
        ui.notify(describe_event(event), type='positive' if ok else 'warning', position='bottom-right')

    engine.subscribe(on_engine_event)

    # --- Rendering ---

    def refresh():
        layout_pass(engine)
        if state['chart']:
            options = GraphVisualizer(engine.store, engine.cost_model).generate_echarts(engine.last_outcome)
            state['chart'].options.clear()
            state['chart'].options.update(options)
            state['chart'].update()
        refresh_result()
        refresh_add_buttons()
        show_node_details(state['selected_node_id'])

    def refresh_result():
        label = state['result_label']
        if not label:
            return
        outcome = engine.last_outcome
        if outcome is None:
            label.set_text('No path calculated')
        elif outcome.ok:
            path = ' → '.join(str(nid) for nid in outcome.result.path)
            label.set_text(f'{path} (cost {outcome.result.cost})')
        else:
            label.set_text(outcome.error.value)

    def refresh_add_buttons():
        for kind, button in add_buttons.items():
            button.set_enabled(engine.can_insert(kind))

    # --- Actions ---

    def add_node(kind: NodeKind):
        node_id = engine.insert_node(kind, (float(x_input.value or 0), float(y_input.value or 0)))
        if node_id is None:
            ui.notify(f'There can only be one {kind.value} node', type='warning')
            return
        state['selected_node_id'] = node_id
        engine.clear_result()
        refresh()

    def remove_node(node_id: int):
        engine.remove_node(node_id)
        state['selected_node_id'] = None
        engine.clear_result()
        refresh()

    def remove_all():
        engine.clear()
        state['selected_node_id'] = None
        refresh()

    def connect(source: int, dest):
        if dest is None:
            return
        if not engine.connect(source, int(dest)):
            ui.notify('These nodes cannot be connected', type='warning')
            return
        engine.clear_result()
        refresh()

    def move(node_id: int, x, y):
        engine.move_node(node_id, (float(x or 0), float(y or 0)))
        refresh()

    def change_cost(node_id: int, predecessor, delta: int):
        pred = int(predecessor) if predecessor is not None else None
        if delta > 0:
            engine.increment_cost(node_id, pred)
        else:
            engine.decrement_cost(node_id, pred)
        if engine.auto_recalculate:
            engine.run_path_search()
        refresh()

    def calc_path():
        calculate(engine)
        refresh()

    def toggle_auto(e):
        engine.set_auto_recalculate(e.value)
        if e.value:
            engine.invalidate_layout()
        refresh()

    def save(name: str):
        if not name:
            ui.notify('Enter a file name', type='warning')
            return
        filename = name if name.endswith('.json') else f'{name}.json'
        try:
            path = engine.save_file(graphs_dir / filename)
        except OSError as e:
            ui.notify(f'Save failed: {e}', type='negative')
            return
        ui.notify(f'Saved {path.name}', type='positive')
        load_select.set_options(sorted(p.name for p in graphs_dir.glob('*.json')))

    def load(filename):
        if not filename:
            return
        try:
            engine.load_file(graphs_dir / filename)
            ui.notify(f'Loaded {filename}', type='positive')
        except LoadError as e:
            ui.notify(f'Load failed, starting with an empty graph: {e}', type='negative')
        state['selected_node_id'] = None
        refresh()

    # --- Selection ---

    def handle_chart_click(event):
        raw_payload = event.args if hasattr(event, 'args') else event
        payload = normalize_click_payload(raw_payload)
        node_id = resolve_node_id_from_payload(payload, engine.store)
        state['selected_node_id'] = node_id
        show_node_details(node_id)

    def show_node_details(node_id):
        container = state['details_container']
        if not container:
            return
        container.clear()
        if node_id is None or node_id not in engine.store:
            with container:
                ui.label('Click a node to edit it').classes('text-grey')
            return

        node = engine.store.node(node_id)
        with container:
            ui.label(node_title(node)).classes('text-lg font-bold')

            with ui.row().classes('items-center'):
                nx_in = ui.number('x', value=node.position[0]).classes('w-20')
                ny_in = ui.number('y', value=node.position[1]).classes('w-20')
                ui.button('Move', on_click=lambda: move(node_id, nx_in.value, ny_in.value)).props('flat')

            if node.outputs:
                targets = {
                    n.id: node_title(n) for n in engine.store.iter_nodes_sorted()
                    if n.id != node_id and n.kind != NodeKind.START
                }
                with ui.row().classes('items-center'):
                    target = ui.select(targets, label='Connect to').classes('w-40')
                    ui.button('Connect', on_click=lambda: connect(node_id, target.value)).props('flat')

            if node.kind != NodeKind.START:
                preds = sorted(engine.store.predecessors(node_id))
                if engine.cost_model.policy == CostPolicy.PER_PREDECESSOR:
                    for pred in preds:
                        with ui.row().classes('items-center'):
                            ui.label(f'from {pred}: {engine.edge_cost(pred, node_id)}')
                            ui.button(icon='remove', on_click=lambda p=pred: change_cost(node_id, p, -1)).props('flat dense')
                            ui.button(icon='add', on_click=lambda p=pred: change_cost(node_id, p, +1)).props('flat dense')
                else:
                    with ui.row().classes('items-center'):
                        ui.label(f'cost: {engine.cost_model.cost_of(node_id)}')
                        ui.button(icon='remove', on_click=lambda: change_cost(node_id, None, -1)).props('flat dense')
                        ui.button(icon='add', on_click=lambda: change_cost(node_id, None, +1)).props('flat dense')

            ui.button('Remove', icon='delete', on_click=lambda: remove_node(node_id)).props('flat color=negative')

    # --- Layout ---

    with ui.left_drawer(value=True).classes('gap-4'):
        ui.label('File').classes('text-bold')
        name_input = ui.input('File name', value='graph.json')
        ui.button('Save', on_click=lambda: save(name_input.value))
        load_select = ui.select(sorted(p.name for p in graphs_dir.glob('*.json')), label='Saved graphs').classes('w-full')
        ui.button('Load', on_click=lambda: load(load_select.value))

        ui.separator()
        ui.label('Add node').classes('text-bold')
        with ui.row():
            x_input = ui.number('x', value=0).classes('w-20')
            y_input = ui.number('y', value=0).classes('w-20')
        add_buttons = {}
        with ui.row():
            for kind in NodeKind:
                add_buttons[kind] = ui.button(kind.value, on_click=lambda k=kind: add_node(k))

        ui.separator()
        ui.label('Calculator').classes('text-bold')
        ui.button('Calc path', on_click=calc_path).props('color=primary')
        ui.switch('Auto recalculate', value=engine.auto_recalculate, on_change=toggle_auto)
        state['result_label'] = ui.label()
        ui.button('Remove all', on_click=remove_all).props('flat color=negative')

        ui.separator()
        state['details_container'] = ui.column().classes('w-full gap-2')

    state['chart'] = ui.echart({'series': [{'type': 'graph', 'layout': 'none', 'data': [], 'links': []}]}).classes('w-full h-[80vh]')
    state['chart'].on('click', handle_chart_click, REQUESTED_EVENT_KEYS)

    refresh()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='Path Canvas',
        port=8081,
    )
