"""
Edit Handlers - NiceGUI event handlers for one org chart canvas.

Keeps views.py focused on layout: every pointer, keyboard and button event
of the canvas and tree view is turned into a HierarchyEditor call here, and
its outcome into a notification.
"""

import logging
from typing import Dict, Any, Callable

from nicegui import ui, run

from orgchart.edit.actions import HierarchyEditor, EditOutcome, EditorState, OutcomeStatus
from orgchart.edit.controller import EditController

logger = logging.getLogger(__name__)


def notify_outcome(outcome: EditOutcome):
    """Present a gesture outcome. NO_CHANGE is silent."""
    if outcome.status is OutcomeStatus.APPLIED:
        ui.notify('Edit applied', type='positive', position='bottom', timeout=1000)
    elif outcome.status is OutcomeStatus.REJECTED:
        ui.notify(outcome.message or 'Edit rejected', type='warning', position='bottom')


def setup_edit_handlers(
    state: Dict[str, Any],
    editor: HierarchyEditor,
    edit_controller: EditController,
    normalize_click_payload: Callable,
    resolve_node_id_from_payload: Callable,
    resolve_edge_from_payload: Callable,
    refresh_view: Callable,
):
    """
    Set up all canvas event handlers.

    Args:
        state: View state dictionary (selected_id, edit_mode, saving, chart)
        editor: HierarchyEditor for this canvas
        edit_controller: EditController holding drag/hover state
        normalize_click_payload: Function to normalize chart event payloads
        resolve_node_id_from_payload: Function to resolve node ids from payloads
        resolve_edge_from_payload: Function to resolve edges from payloads
        refresh_view: Function to re-render chart, tree and controls

    Returns:
        Dict with handler functions for binding to UI events
    """

    def sync_controller_data():
        """Hand the current layout to the controller for hit detection."""
        edit_controller.update_graph_data(editor.layout)

    def on_edit_state_change(edit_state):
        if state.get('drop_target_id') != edit_state.target_node_id:
            state['drop_target_id'] = edit_state.target_node_id
            refresh_view()

    edit_controller.set_on_state_change(on_edit_state_change)

    def apply(outcome: EditOutcome):
        notify_outcome(outcome)
        if outcome.status is OutcomeStatus.APPLIED:
            sync_controller_data()
            refresh_view()

    # --- Pointer and keyboard ---

    def handle_keyboard(e):
        """Ctrl toggles edit mode (edge clicks detach); Escape cancels a drag."""
        if e.key == 'Control':
            is_pressed = e.action.keydown
            if is_pressed and not state.get('edit_mode'):
                ui.notify('Edit mode active: click an edge to detach', position='bottom', timeout=500, color='info')
            state['edit_mode'] = is_pressed
        elif e.key == 'Escape' and e.action.keydown:
            edit_controller.cancel()

    def handle_mouse_down(event):
        """Start a connect drag on a node."""
        raw = event.args if hasattr(event, 'args') else event
        node_id = resolve_node_id_from_payload(normalize_click_payload(raw), editor.forest)
        if node_id:
            sync_controller_data()
            edit_controller.start_drag(node_id)

    def handle_mouse_over(event):
        """Snap the connect target while dragging."""
        if not edit_controller.state.dragging_node_id:
            return
        raw = event.args if hasattr(event, 'args') else event
        node_id = resolve_node_id_from_payload(normalize_click_payload(raw), editor.forest)
        if node_id:
            edit_controller.hover_node(node_id)

    def handle_mouse_out(event):
        if edit_controller.state.dragging_node_id:
            edit_controller.hover_node(None)

    async def handle_mouse_up(event):
        """Complete the drag: connect to the hovered node, else the nearest one."""
        if not edit_controller.state.dragging_node_id:
            return

        if not edit_controller.state.target_node_id:
            raw = event.args if hasattr(event, 'args') else event
            if isinstance(raw, dict) and state.get('chart') is not None:
                pixel = [raw.get('offsetX', 0), raw.get('offsetY', 0)]
                try:
                    point = await state['chart'].run_chart_method('convertFromPixel', {'seriesIndex': 0}, pixel)
                except Exception as e:
                    logger.debug(f"Could not convert pointer position: {e}")
                    point = None
                if point:
                    edit_controller.set_mouse_position(point[0], point[1])

        gesture = edit_controller.end_drag()
        if not gesture:
            return
        apply(editor.connect(gesture['parent_id'], gesture['child_id']))

    def handle_chart_click(event):
        """Select a node, or detach an edge when edit mode is active."""
        raw = event.args if hasattr(event, 'args') else event
        payload = normalize_click_payload(raw)

        edge = resolve_edge_from_payload(payload, editor.forest)
        if edge:
            if state.get('edit_mode'):
                apply(editor.detach(edge[1]))
            return

        node_id = resolve_node_id_from_payload(payload, editor.forest)
        state['selected_id'] = node_id
        refresh_view()

    # --- Tree view ---

    def handle_tree_drop(node_id: str, target_id: str):
        apply(editor.drop(node_id, target_id))

    # --- Controls ---

    def handle_detach_selected():
        node_id = state.get('selected_id')
        if not node_id:
            ui.notify('Select a node first', type='warning', position='bottom')
            return
        apply(editor.detach(node_id))

    def handle_undo():
        apply(editor.undo_detach())

    def handle_discard():
        editor.reset()
        sync_controller_data()
        ui.notify('Pending changes discarded', position='bottom', timeout=1000)
        refresh_view()

    async def handle_save():
        if state.get('saving'):
            return
        if not editor.can_commit:
            ui.notify('Nothing to save', position='bottom', timeout=1000)
            return

        state['saving'] = True
        refresh_view()
        try:
            result = await run.io_bound(editor.commit)
        except Exception as e:
            logger.exception("Unexpected error while saving the hierarchy")
            ui.notify(f'Save failed: {e}', type='negative', position='bottom')
            return
        finally:
            state['saving'] = False
            sync_controller_data()
            refresh_view()

        if result.success:
            ui.notify(result.message or 'Hierarchy updated', type='positive', position='bottom')
        else:
            ui.notify(result.message or 'Save failed', type='negative', position='bottom')

    async def handle_refresh():
        if state.get('saving') or editor.state is EditorState.COMMITTING:
            return
        ok = await run.io_bound(editor.refresh)
        if ok:
            if editor.message:
                ui.notify(editor.message, type='warning', position='bottom')
        else:
            ui.notify(editor.message or 'Refresh failed', type='negative', position='bottom')
        sync_controller_data()
        refresh_view()

    return {
        'handle_keyboard': handle_keyboard,
        'handle_mouse_down': handle_mouse_down,
        'handle_mouse_over': handle_mouse_over,
        'handle_mouse_out': handle_mouse_out,
        'handle_mouse_up': handle_mouse_up,
        'handle_chart_click': handle_chart_click,
        'handle_tree_drop': handle_tree_drop,
        'handle_detach_selected': handle_detach_selected,
        'handle_undo': handle_undo,
        'handle_discard': handle_discard,
        'handle_save': handle_save,
        'handle_refresh': handle_refresh,
        'sync_controller_data': sync_controller_data,
    }
