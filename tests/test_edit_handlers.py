"""
Tests for the NiceGUI event handlers, with ui/run patched out.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from orgchart.chart_builder import (
    normalize_click_payload,
    resolve_edge_from_payload,
    resolve_node_id_from_payload,
)
from orgchart.edit import EditController, EditorState, HierarchyEditor
from orgchart.edit.handlers import setup_edit_handlers
from orgchart.models import Node, NodeKind
from orgchart.storage import EntityStoreError


async def fake_io_bound(func, *args, **kwargs):
    return func(*args, **kwargs)


@pytest.fixture
def mock_ui():
    with patch('orgchart.edit.handlers.ui') as ui, patch('orgchart.edit.handlers.run') as run:
        run.io_bound.side_effect = fake_io_bound
        yield ui


@pytest.fixture
def store():
    store = MagicMock()
    store.fetch_nodes.return_value = [
        Node('a', 'Board'),
        Node('b', 'Operations', 'a'),
        Node('c', 'Audit'),
    ]
    return store


@pytest.fixture
def editor(store):
    editor = HierarchyEditor(store, NodeKind.SECTOR)
    editor.load()
    return editor


@pytest.fixture
def env(mock_ui, editor):
    state = {'selected_id': None, 'edit_mode': False, 'saving': False, 'chart': None}
    refresh_view = MagicMock()
    handlers = setup_edit_handlers(
        state=state,
        editor=editor,
        edit_controller=EditController(),
        normalize_click_payload=normalize_click_payload,
        resolve_node_id_from_payload=resolve_node_id_from_payload,
        resolve_edge_from_payload=resolve_edge_from_payload,
        refresh_view=refresh_view,
    )
    return SimpleNamespace(state=state, handlers=handlers, refresh_view=refresh_view, ui=mock_ui)


def event(args):
    return SimpleNamespace(args=args)


EDGE_AB = {'componentType': 'series', 'dataType': 'edge', 'data': {'source': 'a', 'target': 'b'}}


class TestChartClicks:

    def test_node_click_selects(self, env):
        env.handlers['handle_chart_click'](event({'componentType': 'series', 'name': 'b'}))
        assert env.state['selected_id'] == 'b'
        env.refresh_view.assert_called()

    def test_edge_click_detaches_in_edit_mode(self, env, editor):
        env.state['edit_mode'] = True
        env.handlers['handle_chart_click'](event(EDGE_AB))
        assert editor.forest.parent_of('b') is None
        env.ui.notify.assert_called_once()
        assert env.ui.notify.call_args.kwargs['type'] == 'positive'

    def test_edge_click_ignored_outside_edit_mode(self, env, editor):
        env.handlers['handle_chart_click'](event(EDGE_AB))
        assert editor.forest.parent_of('b') == 'a'

    def test_drag_between_nodes_connects(self, env, editor):
        env.handlers['handle_mouse_down'](event({'componentType': 'series', 'name': 'c'}))
        env.handlers['handle_mouse_over'](event({'componentType': 'series', 'name': 'a'}))
        asyncio.run(env.handlers['handle_mouse_up'](event({'offsetX': 0, 'offsetY': 0})))
        assert editor.forest.parent_of('a') == 'c'

    def test_rejected_drag_warns(self, env, editor):
        env.handlers['handle_mouse_down'](event({'componentType': 'series', 'name': 'b'}))
        env.handlers['handle_mouse_over'](event({'componentType': 'series', 'name': 'a'}))
        asyncio.run(env.handlers['handle_mouse_up'](event({})))
        assert editor.forest.parent_of('a') is None
        assert env.ui.notify.call_args.kwargs['type'] == 'warning'


class TestControls:

    def test_tree_drop(self, env, editor):
        env.handlers['handle_tree_drop']('c', 'b')
        assert editor.forest.parent_of('c') == 'b'

    def test_detach_selected_requires_selection(self, env, editor):
        env.handlers['handle_detach_selected']()
        assert env.ui.notify.call_args.kwargs['type'] == 'warning'
        assert editor.state is EditorState.CLEAN

    def test_detach_and_undo(self, env, editor):
        env.state['selected_id'] = 'b'
        env.handlers['handle_detach_selected']()
        assert editor.forest.parent_of('b') is None
        env.handlers['handle_undo']()
        assert editor.forest.parent_of('b') == 'a'

    def test_discard(self, env, editor):
        env.handlers['handle_tree_drop']('c', 'b')
        env.handlers['handle_discard']()
        assert editor.state is EditorState.CLEAN

    def test_ctrl_toggles_edit_mode(self, env):
        key = SimpleNamespace(key='Control', action=SimpleNamespace(keydown=True))
        env.handlers['handle_keyboard'](key)
        assert env.state['edit_mode'] is True
        key.action.keydown = False
        env.handlers['handle_keyboard'](key)
        assert env.state['edit_mode'] is False


class TestSave:

    def test_save_commits(self, env, editor, store):
        env.handlers['handle_tree_drop']('c', 'b')
        asyncio.run(env.handlers['handle_save']())
        store.update_hierarchy.assert_called_once_with(NodeKind.SECTOR, [{'id': 'c', 'newParentId': 'b'}])
        assert env.state['saving'] is False
        assert env.ui.notify.call_args.kwargs['type'] == 'positive'

    def test_save_failure_notifies_and_keeps_edits(self, env, editor, store):
        store.update_hierarchy.side_effect = EntityStoreError('Server returned 500', 'update_hierarchy', 500)
        env.handlers['handle_tree_drop']('c', 'b')
        asyncio.run(env.handlers['handle_save']())
        assert env.ui.notify.call_args.kwargs['type'] == 'negative'
        assert editor.pending_ids == {'c'}
        assert env.state['saving'] is False

    def test_save_with_nothing_pending(self, env, store):
        asyncio.run(env.handlers['handle_save']())
        store.update_hierarchy.assert_not_called()

    def test_refresh_failure_notifies(self, env, store):
        store.fetch_nodes.side_effect = EntityStoreError('down', 'fetch_nodes')
        asyncio.run(env.handlers['handle_refresh']())
        assert env.ui.notify.call_args.kwargs['type'] == 'negative'

    def test_refresh_ignored_while_saving(self, env, editor, store):
        env.handlers['handle_tree_drop']('c', 'b')
        fetches = store.fetch_nodes.call_count
        env.state['saving'] = True
        asyncio.run(env.handlers['handle_refresh']())
        assert store.fetch_nodes.call_count == fetches
        assert editor.pending_ids == {'c'}
