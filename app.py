"""
Main NiceGUI application for the org chart editor.

Hosts one HierarchyEditor per page (sectors at '/', positions at
'/positions'), wires its callbacks to simple add / rename / delete dialogs,
and keeps a summary table that refreshes after every successful save.
"""

import logging
import os
import sys
from typing import Dict, Any, Optional

from dotenv import load_dotenv
from nicegui import ui, run

load_dotenv()

from orgchart.chart_builder import summary_rows
from orgchart.config import get_settings
from orgchart.edit import HierarchyEditor, EditorCallbacks
from orgchart.models import NodeKind
from orgchart.storage import EntityStoreError, create_store
from orgchart.views import render_org_chart

logging.basicConfig(
    level=os.environ.get("ORGCHART_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()
store = create_store(settings)

PAGE_TITLES = {
    NodeKind.SECTOR: 'Sectors',
    NodeKind.POSITION: 'Positions',
}


def render_nav(current: NodeKind):
    with ui.header().classes('items-center gap-4 bg-slate-900'):
        ui.label('Org Chart').classes('text-lg font-bold')
        for kind, path in ((NodeKind.SECTOR, '/'), (NodeKind.POSITION, '/positions')):
            link = ui.link(PAGE_TITLES[kind], path).classes('text-white no-underline')
            if kind is current:
                link.classes('font-bold underline')


def render_editor_page(kind: NodeKind, group_key: Optional[str] = None, sectors: Optional[list] = None):
    """Build one editor, its dialogs and its summary table."""
    page_state: Dict[str, Any] = {'stale': False, 'view': None}

    def node_name(node_id: Optional[str]) -> str:
        node = editor.forest.get(node_id) if node_id else None
        return node.display_name if node else '-'

    async def reload_after_crud():
        await run.io_bound(editor.refresh)
        if page_state['view']:
            page_state['view']['sync_controller_data']()
            page_state['view']['refresh_view']()
        summary_table.refresh()

    def open_add_dialog(parent_id: Optional[str]):
        with ui.dialog() as dialog, ui.card().classes('w-96'):
            if parent_id:
                ui.label(f'Add under {node_name(parent_id)}').classes('text-lg font-bold')
            else:
                ui.label('Add root node').classes('text-lg font-bold')
            name_input = ui.input('Name').classes('w-full')

            group_select = None
            if kind is NodeKind.POSITION and parent_id is None and group_key is None:
                options = {s.id: s.display_name for s in (sectors or [])}
                group_select = ui.select(options, label='Sector').classes('w-full')

            error_label = ui.label('').classes('text-red-500 text-sm')

            async def save():
                name = (name_input.value or '').strip()
                if not name:
                    error_label.text = 'Name is required'
                    return
                node_group = group_key
                if group_select is not None:
                    node_group = group_select.value
                    if not node_group:
                        error_label.text = 'Pick a sector'
                        return
                try:
                    await run.io_bound(store.create_node, kind, name, parent_id, node_group)
                except EntityStoreError as e:
                    error_label.text = f'Could not create: {e}'
                    return
                ui.notify(f'Created {name}', type='positive')
                dialog.close()
                await reload_after_crud()

            with ui.row().classes('w-full justify-end gap-2 mt-4'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Create', on_click=save).props('color=primary')
        dialog.open()

    def open_edit_dialog(node_id: str):
        with ui.dialog() as dialog, ui.card().classes('w-96'):
            ui.label('Rename').classes('text-lg font-bold')
            name_input = ui.input('Name', value=node_name(node_id)).classes('w-full')
            error_label = ui.label('').classes('text-red-500 text-sm')

            async def save():
                name = (name_input.value or '').strip()
                if not name:
                    error_label.text = 'Name is required'
                    return
                try:
                    await run.io_bound(store.rename_node, kind, node_id, name)
                except EntityStoreError as e:
                    error_label.text = f'Could not rename: {e}'
                    return
                dialog.close()
                await reload_after_crud()

            with ui.row().classes('w-full justify-end gap-2 mt-4'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Save', on_click=save).props('color=primary')
        dialog.open()

    def open_delete_dialog(node_id: str):
        with ui.dialog() as dialog, ui.card().classes('w-96'):
            ui.label(f'Delete {node_name(node_id)}?').classes('text-lg font-bold')
            ui.label('Its children become roots.').classes('text-gray-400 text-sm')

            async def confirm():
                try:
                    await run.io_bound(store.delete_node, kind, node_id)
                except EntityStoreError as e:
                    ui.notify(f'Could not delete: {e}', type='negative')
                    return
                dialog.close()
                await reload_after_crud()

            with ui.row().classes('w-full justify-end gap-2 mt-4'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Delete', on_click=confirm).props('color=negative')
        dialog.open()

    def on_hierarchy_changed():
        # Called from the commit worker thread; the timer below picks it up.
        page_state['stale'] = True

    editor = HierarchyEditor(
        store,
        kind,
        group_key=group_key,
        callbacks=EditorCallbacks(
            on_add_child=open_add_dialog,
            on_edit=open_edit_dialog,
            on_delete=open_delete_dialog,
            on_hierarchy_changed=on_hierarchy_changed,
        ),
    )

    page_state['view'] = render_org_chart(editor, PAGE_TITLES[kind])

    @ui.refreshable
    def summary_table():
        rows = summary_rows(editor.forest)
        columns = [
            {'name': 'name', 'label': 'Name', 'field': 'name', 'sortable': True, 'align': 'left'},
            {'name': 'parent', 'label': 'Parent', 'field': 'parent', 'sortable': True, 'align': 'left'},
            {'name': 'children', 'label': 'Children', 'field': 'children'},
            {'name': 'members', 'label': 'People', 'field': 'members'},
        ]
        ui.table(columns=columns, rows=rows, row_key='id').classes('w-full').props('dense flat')

    def auto_refresh_check():
        if page_state['stale']:
            page_state['stale'] = False
            summary_table.refresh()

    with ui.expansion('All entries', icon='table_rows').classes('w-full'):
        summary_table()
    ui.timer(1.0, auto_refresh_check)


@ui.page('/')
def sectors_page():
    ui.dark_mode().enable()
    render_nav(NodeKind.SECTOR)
    render_editor_page(NodeKind.SECTOR)


@ui.page('/positions')
async def positions_page(sector: Optional[str] = None):
    ui.dark_mode().enable()
    render_nav(NodeKind.POSITION)

    try:
        sectors = await run.io_bound(store.fetch_nodes, NodeKind.SECTOR)
    except EntityStoreError as e:
        logger.warning(f"Could not load sectors for the filter: {e}")
        sectors = []

    options = {'': 'All sectors'}
    options.update({s.id: s.display_name for s in sectors})
    with ui.row().classes('items-center gap-2'):
        ui.select(
            options,
            value=sector or '',
            label='Sector',
            on_change=lambda e: ui.navigate.to(f'/positions?sector={e.value}' if e.value else '/positions'),
        ).classes('w-64')

    render_editor_page(NodeKind.POSITION, group_key=sector or None, sectors=sectors)


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='Org Chart',
        port=settings.port,
        reload=not getattr(sys, 'frozen', False),
        storage_secret=os.environ.get('ORGCHART_STORAGE_SECRET', 'orgchart_secret_key'),
    )
