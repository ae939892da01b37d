"""
Edit Controller - pointer/drag state for the org chart canvas.

Owns the transient gesture state (what is being dragged, what is under the
pointer) for one canvas. It never touches the edit buffer: it only tells the
caller which connection the pointer release completes.

Dragging from node A and releasing over node B yields a ``connect`` gesture
(A becomes parent of B). Edge removal is driven by chart clicks in the
handlers, not by this controller.
"""

import math
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple, Callable

from orgchart.edit.constants import CONNECTION_RADIUS


@dataclass
class EditState:
    """Snapshot of the current gesture state."""
    mouse_x: float = 0
    mouse_y: float = 0
    dragging_node_id: Optional[str] = None
    action: Optional[str] = None
    target_node_id: Optional[str] = None


class EditController:
    """Tracks drag/hover state and works out which connection is in progress."""

    def __init__(self):
        self._state = EditState()
        self._node_positions: Dict[str, Tuple[float, float]] = {}
        self._on_state_change: Optional[Callable[[EditState], None]] = None

    @property
    def state(self) -> EditState:
        return self._state

    def set_on_state_change(self, callback: Callable[[EditState], None]):
        self._on_state_change = callback

    def update_graph_data(self, positions: Dict[str, Tuple[float, float]]):
        """Replace the node positions used for hit detection."""
        self._node_positions = dict(positions)
        if self._state.dragging_node_id not in self._node_positions:
            self._state = EditState(mouse_x=self._state.mouse_x, mouse_y=self._state.mouse_y)
        self._recalculate_action()

    def set_mouse_position(self, x: float, y: float) -> EditState:
        self._state = EditState(mouse_x=x, mouse_y=y, dragging_node_id=self._state.dragging_node_id)
        if self._state.dragging_node_id:
            self._recalculate_action()
            self._notify_change()
        return self._state

    def start_drag(self, node_id: str) -> EditState:
        if node_id not in self._node_positions:
            return self._state
        self._state = EditState(mouse_x=self._state.mouse_x, mouse_y=self._state.mouse_y,
                                dragging_node_id=node_id)
        self._recalculate_action()
        self._notify_change()
        return self._state

    def hover_node(self, node_id: Optional[str]) -> EditState:
        """Pointer is over a rendered node (chart mouseover). Snaps the connect target."""
        if not self._state.dragging_node_id:
            return self._state
        if node_id == self._state.dragging_node_id or node_id not in self._node_positions:
            node_id = None
        self._state = EditState(
            mouse_x=self._state.mouse_x, mouse_y=self._state.mouse_y,
            dragging_node_id=self._state.dragging_node_id,
            action='connect' if node_id else None, target_node_id=node_id
        )
        self._notify_change()
        return self._state

    def end_drag(self, release_node_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Finish the gesture.

        Args:
            release_node_id: Node under the pointer at release, when the chart
                reported one. Takes precedence over proximity hit detection.

        Returns:
            The completed gesture (see get_commit_data) or None.
        """
        if release_node_id is not None:
            self.hover_node(release_node_id)
        commit = self.get_commit_data()
        self._state = EditState(mouse_x=self._state.mouse_x, mouse_y=self._state.mouse_y)
        self._notify_change()
        return commit

    def cancel(self) -> EditState:
        self._state = EditState(mouse_x=self._state.mouse_x, mouse_y=self._state.mouse_y)
        self._notify_change()
        return self._state

    def get_commit_data(self) -> Optional[Dict[str, Any]]:
        """
        Translate the current state into a gesture for HierarchyEditor:
        ``{'action': 'connect', 'parent_id': A, 'child_id': B}``.
        """
        if self._state.action == 'connect' and self._state.dragging_node_id and self._state.target_node_id:
            return {
                'action': 'connect',
                'parent_id': self._state.dragging_node_id,
                'child_id': self._state.target_node_id,
            }
        return None

    def _notify_change(self):
        if self._on_state_change:
            self._on_state_change(self._state)

    def _recalculate_action(self):
        if not self._state.dragging_node_id:
            return
        mouse = (self._state.mouse_x, self._state.mouse_y)
        nearby = self._find_nearby_node(mouse, exclude=self._state.dragging_node_id)
        self._state = EditState(
            mouse_x=mouse[0], mouse_y=mouse[1],
            dragging_node_id=self._state.dragging_node_id,
            action='connect' if nearby else None,
            target_node_id=nearby['id'] if nearby else None
        )

    def _find_nearby_node(self, mouse: Tuple[float, float], exclude: str = None) -> Optional[Dict[str, Any]]:
        closest = None
        closest_dist = float('inf')

        for node_id, pos in self._node_positions.items():
            if node_id == exclude:
                continue
            dist = math.hypot(mouse[0] - pos[0], mouse[1] - pos[1])
            if dist < CONNECTION_RADIUS and dist < closest_dist:
                closest_dist = dist
                closest = {'id': node_id, 'position': pos, 'distance': dist}
        return closest
