"""
Interactive editing for the org chart canvas.

This package provides:
- HierarchyEditor: editing session (gestures, buffer, commit)
- EditController: drag/hover state for connect gestures
- setup_edit_handlers: NiceGUI event handlers for views.py

Usage:
    from orgchart.edit import HierarchyEditor, EditController
    from orgchart.edit.handlers import setup_edit_handlers
"""

from orgchart.edit.constants import (
    CONNECTION_RADIUS,
    NODE_WIDTH,
    NODE_HEIGHT,
)
from orgchart.edit.controller import EditController, EditState
from orgchart.edit.actions import (
    HierarchyEditor,
    EditorCallbacks,
    EditorState,
    EditOutcome,
    OutcomeStatus,
    CommitResult,
)
from orgchart.edit.handlers import setup_edit_handlers

__all__ = [
    'HierarchyEditor',
    'EditorCallbacks',
    'EditorState',
    'EditOutcome',
    'OutcomeStatus',
    'CommitResult',
    'EditController',
    'EditState',
    'setup_edit_handlers',
    'CONNECTION_RADIUS',
    'NODE_WIDTH',
    'NODE_HEIGHT',
]
