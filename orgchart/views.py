"""
NiceGUI views for the org chart editor.

render_org_chart() lays out one editing surface: toolbar, the ECharts canvas,
a collapsible tree view with drag-and-drop, and the pending-changes panel.
All events go through orgchart.edit.handlers.
"""

import logging
from typing import Dict, Any, Callable

from nicegui import ui

from orgchart.chart_builder import (
    REQUESTED_EVENT_KEYS,
    build_echart_options,
    normalize_click_payload,
    pending_summary,
    resolve_edge_from_payload,
    resolve_node_id_from_payload,
)
from orgchart.edit import EditController, HierarchyEditor, EditorState, setup_edit_handlers

logger = logging.getLogger(__name__)

TREE_INDENT_PX = 16


def render_org_chart(editor: HierarchyEditor, title: str) -> Dict[str, Callable]:
    """
    Render the editing surface for one editor.

    Returns:
        The handler dict from setup_edit_handlers, plus 'refresh_view'.
    """
    state: Dict[str, Any] = {
        'selected_id': None,
        'edit_mode': False,
        'saving': False,
        'drop_target_id': None,
        'collapsed': set(),
        'tree_drag_id': None,
        'chart': None,
    }
    edit_controller = EditController()
    controls: Dict[str, Any] = {}

    def get_current_options():
        return build_echart_options(
            editor.forest,
            editor.layout,
            kind=editor.kind,
            pending_ids=editor.pending_ids,
            selected_id=state['selected_id'],
            drop_target_id=state['drop_target_id'],
        )

    def update_controls():
        if not controls:
            return
        selected = state['selected_id']
        if selected is not None and selected not in editor.forest:
            state['selected_id'] = selected = None
        busy = state['saving'] or editor.state is EditorState.COMMITTING

        controls['save'].set_enabled(editor.can_commit and not busy)
        controls['discard'].set_enabled(editor.can_commit and not busy)
        controls['undo'].set_enabled(editor.can_undo and not busy)
        controls['detach'].set_enabled(
            selected is not None and editor.forest.parent_of(selected) is not None and not busy
        )
        controls['edit'].set_enabled(selected is not None)
        controls['delete'].set_enabled(selected is not None and not busy)
        controls['refresh'].set_enabled(not busy)

        if busy:
            controls['status'].text = 'Saving...'
        elif editor.can_commit:
            controls['status'].text = f'{len(editor.pending_ids)} pending change(s)'
        else:
            controls['status'].text = 'No pending changes'

    def refresh_view():
        chart = state['chart']
        if chart is not None:
            chart.options.clear()
            chart.options.update(get_current_options())
            chart.update()
        update_controls()
        tree_view.refresh()
        pending_panel.refresh()

    handlers = setup_edit_handlers(
        state=state,
        editor=editor,
        edit_controller=edit_controller,
        normalize_click_payload=normalize_click_payload,
        resolve_node_id_from_payload=resolve_node_id_from_payload,
        resolve_edge_from_payload=resolve_edge_from_payload,
        refresh_view=refresh_view,
    )

    # --- Tree view helpers ---

    def select(node_id: str):
        state['selected_id'] = node_id
        refresh_view()

    def toggle_collapsed(node_id: str):
        collapsed = state['collapsed']
        if node_id in collapsed:
            collapsed.discard(node_id)
        else:
            collapsed.add(node_id)
        tree_view.refresh()

    def finish_tree_drop(target_id: str):
        node_id = state['tree_drag_id']
        state['tree_drag_id'] = None
        if node_id and node_id != target_id:
            handlers['handle_tree_drop'](node_id, target_id)

    def finish_root_drop():
        node_id = state['tree_drag_id']
        state['tree_drag_id'] = None
        if node_id:
            state['selected_id'] = node_id
            handlers['handle_detach_selected']()

    def make_row_handlers(node_id: str, row):
        def on_dragstart():
            state['tree_drag_id'] = node_id

        def on_dragenter():
            dragging = state['tree_drag_id']
            if dragging and editor.can_drop(dragging, node_id):
                row.classes(add='bg-green-900')

        def on_dragleave():
            row.classes(remove='bg-green-900')

        def on_drop():
            row.classes(remove='bg-green-900')
            finish_tree_drop(node_id)

        return on_dragstart, on_dragenter, on_dragleave, on_drop

    def make_toggle_handler(node_id: str):
        def handler():
            toggle_collapsed(node_id)
        return handler

    def make_select_handler(node_id: str):
        def handler():
            select(node_id)
        return handler

    @ui.refreshable
    def tree_view():
        forest = editor.forest
        if len(forest) == 0:
            ui.label('No nodes yet').classes('text-gray-400 text-sm')
            return

        collapsed = state['collapsed']
        skip_below = None
        for node, depth in forest.walk():
            if skip_below is not None:
                if depth > skip_below:
                    continue
                skip_below = None
            has_children = bool(forest.children(node.id))
            is_collapsed = has_children and node.id in collapsed
            if is_collapsed:
                skip_below = depth

            row_classes = 'items-center gap-1 w-full no-wrap cursor-move rounded px-1'
            if node.id == state['selected_id']:
                row_classes += ' bg-slate-700'
            with ui.row().classes(row_classes).style(f'padding-left: {depth * TREE_INDENT_PX}px') as row:
                if has_children:
                    ui.button(
                        icon='chevron_right' if is_collapsed else 'expand_more',
                        on_click=make_toggle_handler(node.id),
                    ).props('flat dense round size=sm')
                else:
                    ui.icon('remove', size='xs').classes('text-gray-500 px-2')
                label = ui.label(node.display_name).classes('text-sm')
                if node.id in editor.pending_ids:
                    label.classes('text-orange-400')
                label.on('click', make_select_handler(node.id))

            on_dragstart, on_dragenter, on_dragleave, on_drop = make_row_handlers(node.id, row)
            row.props('draggable')
            row.on('dragstart', on_dragstart)
            row.on('dragenter', on_dragenter)
            row.on('dragleave', on_dragleave)
            row.on('dragover.prevent', lambda: None)
            row.on('drop', on_drop)

        with ui.element('div').classes(
            'w-full mt-2 p-2 text-xs text-gray-400 border border-dashed border-slate-600 rounded'
        ) as root_zone:
            ui.label('Drop here to make it a root')
        root_zone.on('dragover.prevent', lambda: None)
        root_zone.on('drop', finish_root_drop)

    @ui.refreshable
    def pending_panel():
        ui.label('Pending changes').classes('text-sm font-bold')
        lines = pending_summary(editor.forest, editor.pending_operations)
        if not lines:
            ui.label('None').classes('text-gray-400 text-sm')
        for line in lines:
            ui.label(line).classes('text-sm')
        if editor.message:
            ui.label(editor.message).classes('text-sm text-amber-400')

    def with_selected(action: Callable[[str], None]):
        def run_action():
            if state['selected_id']:
                action(state['selected_id'])
        return run_action

    # --- Layout ---

    with ui.row().classes('w-full items-center gap-2'):
        ui.label(title).classes('text-xl font-bold')
        ui.space()
        controls['status'] = ui.label('').classes('text-sm text-gray-400')
        ui.button('Add', icon='add', on_click=lambda: editor.request_add_child(state['selected_id'])) \
            .props('flat dense').tooltip('Add a node under the selection (or a root)')
        controls['edit'] = ui.button(icon='edit', on_click=with_selected(editor.request_edit)) \
            .props('flat dense').tooltip('Rename')
        controls['delete'] = ui.button(icon='delete', on_click=with_selected(editor.request_delete)) \
            .props('flat dense color=negative').tooltip('Delete')
        controls['detach'] = ui.button('Detach', icon='link_off', on_click=handlers['handle_detach_selected']) \
            .props('flat dense')
        controls['undo'] = ui.button('Undo detach', icon='undo', on_click=handlers['handle_undo']) \
            .props('flat dense')
        controls['discard'] = ui.button('Discard', icon='close', on_click=handlers['handle_discard']) \
            .props('flat dense')
        controls['refresh'] = ui.button(icon='refresh', on_click=handlers['handle_refresh']) \
            .props('flat dense').tooltip('Reload')
        controls['save'] = ui.button('Save', icon='save', on_click=handlers['handle_save']).props('color=primary')

    ui.label('Drag from a node onto another to make it the parent. Hold Ctrl and click an edge to detach.') \
        .classes('text-xs text-gray-500')

    with ui.row().classes('w-full no-wrap gap-4'):
        state['chart'] = ui.echart(get_current_options()).classes('grow h-[600px]')
        with ui.column().classes('w-80 gap-1 max-h-[600px] overflow-y-auto'):
            ui.label('Tree').classes('text-sm font-bold')
            tree_view()
            ui.separator()
            pending_panel()

    chart = state['chart']
    chart.on('chart:click', handlers['handle_chart_click'], REQUESTED_EVENT_KEYS)
    chart.on('chart:mousedown', handlers['handle_mouse_down'], REQUESTED_EVENT_KEYS)
    chart.on('chart:mouseover', handlers['handle_mouse_over'], REQUESTED_EVENT_KEYS)
    chart.on('chart:mouseout', handlers['handle_mouse_out'])
    chart.on('mouseup', handlers['handle_mouse_up'], ['offsetX', 'offsetY'])

    ui.keyboard(on_key=handlers['handle_keyboard'])

    update_controls()
    ui.timer(0.1, handlers['handle_refresh'], once=True)

    handlers['refresh_view'] = refresh_view
    return handlers
