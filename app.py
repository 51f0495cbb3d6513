"""
Main NiceGUI application for nnviz.

Renders the canonical network with ui.echart using coordinates from the layout
adapter, and wires UI events to NetworkStore commands:
- toolbar buttons for structural edits,
- a context card for the selected node (values, weights, labels),
- a JSON dialog for bulk edits,
- a share link carrying the encoded network as ?net=...

The encoded network is written to db/network.txt after every committed change
and decoded once at startup.
"""

import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from nicegui import ui

load_dotenv()

logging.basicConfig(
    level=os.environ.get("NNVIZ_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("nnviz.app")

from nnviz.chart_builder import (
    REQUESTED_EVENT_KEYS,
    build_echart_options,
    format_value,
    normalize_click_payload,
    resolve_element_id_from_payload,
)
from nnviz.codec import DecodeError
from nnviz.config import get_settings
from nnviz.identifiers import NodeKind, NodeRef, WeightRef, parse_and_resolve, weight_ref_for
from nnviz.network import ValidationError
from nnviz.paths import ensure_db_dir, get_state_path
from nnviz.propagation import hidden_label
from nnviz.store import NetworkStore, load_initial_network, read_state_file, write_state_file

# Ensure required directories exist on startup
ensure_db_dir()


def _persist(encoded: str) -> None:
    try:
        write_state_file(get_state_path(), encoded)
    except OSError as e:
        logger.error(f"Failed to persist network: {e}")


# One process-wide store; every page talks to the same canonical network
store = NetworkStore(
    load_initial_network(read_state_file(get_state_path())),
    settings=get_settings(),
    on_commit=_persist,
)


@ui.page('/')
def main_page(net: Optional[str] = None):
    ui.query('body').style('margin: 0; padding: 0; overflow: hidden;')

    if net:
        try:
            store.load_encoded(net)
            ui.notify('Network loaded from link', type='positive', position='bottom')
        except DecodeError as e:
            logger.warning(f"Share link could not be decoded: {e}")
            ui.notify('Link could not be decoded, keeping the current network', type='negative')

    state = {'chart': None}

    def run_command(action: str, **params) -> None:
        try:
            changed = store.dispatch(action, **params)
        except ValidationError as e:
            ui.notify(f'Edit rejected: {e}', type='negative', position='bottom')
            return
        if changed:
            refresh_ui()

    def edit_value(element_id: str, value) -> None:
        if value is None:
            return
        try:
            changed = store.handle_value_edit(element_id, value)
        except ValidationError as e:
            ui.notify(f'Edit rejected: {e}', type='negative', position='bottom')
            return
        if changed:
            refresh_chart_ui()

    def edit_label(element_id: str, label: str) -> None:
        if store.handle_label_edit(element_id, label or ''):
            refresh_chart_ui()

    def refresh_chart_ui():
        if state['chart']:
            graph, boxes = store.view()
            options = build_echart_options(graph, boxes, selected_id=store.selected_id)
            state['chart'].options.clear()
            state['chart'].options.update(options)
            state['chart'].update()

    def refresh_ui():
        refresh_chart_ui()
        node_details.refresh()

    def handle_chart_click(event):
        raw_payload = event.args if hasattr(event, 'args') else event
        payload = normalize_click_payload(raw_payload)
        element_id = resolve_element_id_from_payload(payload, store.network)
        store.select(element_id)
        refresh_ui()

    # --- Context card ---

    @ui.refreshable
    def node_details():
        network = store.network
        selected = store.selected_id
        ref = parse_and_resolve(network, selected) if selected else None

        if ref is None:
            ui.label('Network').classes('text-lg font-bold')
            sizes = ' → '.join(str(s) for s in network.layer_sizes())
            ui.label(f'Layers: {sizes}').classes('text-sm text-gray-600')
            graph, _ = store.view()
            for node, value in zip(network.output_layer, graph.output_values):
                ui.label(f'{node.label}: {format_value(value)}').classes('text-sm')
            for li in range(len(network.hidden_layers)):
                with ui.row().classes('items-center gap-2'):
                    ui.label(f'Hidden layer {li + 1}').classes('text-sm')
                    ui.button(icon='add', on_click=lambda _, li=li: run_command('add_hidden_node', layer=li)) \
                        .props('flat dense').tooltip('Add node')
                    ui.button(icon='delete', on_click=lambda _, li=li: run_command('remove_hidden_layer', layer=li)) \
                        .props('flat dense color=negative').tooltip('Remove layer')
            return

        if isinstance(ref, WeightRef):
            ui.label('Weight').classes('text-lg font-bold')
            src = ref.source_ref()
            weights = (network.input_layer[src.index].weights if src.kind == NodeKind.INPUT
                       else network.hidden_layers[src.layer][src.index].weights)
            ui.number('Weight', value=weights[ref.target], step=0.1, format='%.4f',
                      on_change=lambda e: edit_value(selected, e.value)).classes('w-full')
            return

        if not isinstance(ref, NodeRef):
            return

        graph, _ = store.view()
        value = graph.node_map()[ref.to_id()].value

        if ref.kind == NodeKind.INPUT:
            node = network.input_layer[ref.index]
            ui.label('Input node').classes('text-lg font-bold')
            ui.input('Label', value=node.label,
                     on_change=lambda e: edit_label(selected, e.value)).classes('w-full')
            ui.number('Value', value=node.value, step=0.1, format='%.4f',
                      on_change=lambda e: edit_value(selected, e.value)).classes('w-full')
            for n, w in enumerate(node.weights):
                w_id = weight_ref_for(network, 0, ref.index, n).to_id()
                ui.number(f'Weight → {n + 1}', value=w, step=0.1, format='%.4f',
                          on_change=lambda e, w_id=w_id: edit_value(w_id, e.value)).classes('w-full')
            ui.button('Remove input', icon='delete',
                      on_click=lambda: run_command('remove_input_node', index=ref.index)) \
                .props('flat color=negative').set_enabled(len(network.input_layer) > 1)

        elif ref.kind == NodeKind.HIDDEN:
            ui.label(f'Hidden node {hidden_label(ref.layer, ref.index)}').classes('text-lg font-bold')
            ui.label(f'Value: {format_value(value)}').classes('text-sm')
            with ui.row():
                ui.button('Add node', icon='add',
                          on_click=lambda: run_command('add_hidden_node', layer=ref.layer)).props('flat')
                ui.button('Remove node', icon='delete',
                          on_click=lambda: run_command('remove_hidden_node', layer=ref.layer, index=ref.index)) \
                    .props('flat color=negative').set_enabled(len(network.hidden_layers[ref.layer]) > 1)
            ui.button('Remove layer', icon='layers_clear',
                      on_click=lambda: run_command('remove_hidden_layer', layer=ref.layer)) \
                .props('flat color=negative')

        elif ref.kind == NodeKind.OUTPUT:
            node = network.output_layer[ref.index]
            ui.label('Output node').classes('text-lg font-bold')
            ui.input('Label', value=node.label,
                     on_change=lambda e: edit_label(selected, e.value)).classes('w-full')
            ui.label(f'Value: {format_value(value)}').classes('text-sm')
            ui.button('Remove output', icon='delete',
                      on_click=lambda: run_command('remove_output_node', index=ref.index)) \
                .props('flat color=negative').set_enabled(len(network.output_layer) > 1)

    # --- Bulk JSON editor ---

    def show_json_dialog():
        with ui.dialog() as dialog, ui.card().classes('w-[700px] max-w-full'):
            ui.label('Edit network (JSON)').classes('text-lg font-bold')
            editor = ui.textarea(value=store.to_text()).classes('w-full font-mono') \
                .props('outlined rows=24')
            error_label = ui.label('').classes('text-sm text-red-500')

            def do_save():
                try:
                    store.replace_from_text(editor.value)
                except ValidationError as e:
                    error_label.text = f'❌ {e}'
                    return
                dialog.close()
                ui.notify('Network replaced', type='positive', position='bottom')
                refresh_ui()

            with ui.row().classes('w-full justify-end gap-2 mt-2'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Save', on_click=do_save).props('color=primary')
        dialog.open()

    def copy_share_link():
        link = f'/?net={store.encoded()}'
        ui.clipboard.write(link)
        ui.notify('Share link copied to clipboard', position='bottom')

    # --- Layout Construction ---

    graph, boxes = store.view()
    state['chart'] = ui.echart(build_echart_options(graph, boxes, selected_id=store.selected_id))
    state['chart'].style('width: 100vw; height: 100vh; position: absolute; top: 0; left: 0; z-index: 0;')
    state['chart'].on('click', handle_chart_click, REQUESTED_EVENT_KEYS)

    with ui.row().classes('fixed left-4 top-4 z-10 gap-2 bg-white/90 rounded shadow p-2'):
        ui.button('Input', icon='add', on_click=lambda: run_command('add_input_node')).props('flat dense')
        ui.button('Hidden layer', icon='add', on_click=lambda: run_command('add_hidden_layer')).props('flat dense')
        ui.button('Output', icon='add', on_click=lambda: run_command('add_output_node')).props('flat dense')
        ui.button('JSON', icon='code', on_click=show_json_dialog).props('flat dense')
        ui.button('Share', icon='link', on_click=copy_share_link).props('flat dense')

    with ui.card().classes('fixed right-6 top-6 w-80 max-h-[90vh] overflow-y-auto z-20 shadow-2xl'):
        node_details()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='nnviz',
        port=int(os.environ.get('NNVIZ_PORT', 8081)),
        reload=not getattr(sys, 'frozen', False),
    )
