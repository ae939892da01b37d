"""
Edit buffer for pending hierarchy changes.

Holds at most one pending parent per node (last write wins) on top of the
parents from the last fetch. Nothing here talks to the entity store; the
buffer is flattened into a batch payload at commit time.

Only the most recent detach can be undone.
"""

from typing import Dict, Any, List, Mapping, Optional

from orgchart.models import ReparentOp


class EditBuffer:
    """
    Net-effect overlay of reparent operations.

    Usage:
        buffer = EditBuffer({"a": None, "b": "a"})
        buffer.record_reparent("b", None)
        buffer.flatten()   # [{"id": "b", "newParentId": None}]
    """

    def __init__(self, original_parents: Optional[Mapping[str, Optional[str]]] = None):
        self._original: Dict[str, Optional[str]] = dict(original_parents or {})
        self._pending: Dict[str, Optional[str]] = {}
        self._last_detach: Optional[ReparentOp] = None

    # --- Recording ---

    def record_reparent(self, node_id: str, new_parent_id: Optional[str]) -> None:
        """Upsert the node's pending parent. Writing the original parent clears the entry."""
        if new_parent_id == self._original.get(node_id):
            self._pending.pop(node_id, None)
        else:
            self._pending[node_id] = new_parent_id

    def record_detach(self, node_id: str, previous_parent_id: Optional[str]) -> None:
        """Detach the node (parent -> None) and remember the removal for undo."""
        self.record_reparent(node_id, None)
        self._last_detach = ReparentOp(node_id, previous_parent_id, None)

    def undo_last_detach(self) -> Optional[ReparentOp]:
        """
        Restore the most recently detached edge.

        Returns the applied operation, or None if there was nothing to undo.
        """
        if self._last_detach is None:
            return None
        restore = self._last_detach.inverse()
        self.record_reparent(restore.node_id, restore.new_parent_id)
        self._last_detach = None
        return restore

    def reset(self) -> None:
        """Discard every pending edit and the undo register."""
        self._pending.clear()
        self._last_detach = None

    def rebase(self, original_parents: Mapping[str, Optional[str]]) -> None:
        """
        Replace the baseline after a refetch. Entries that now match the
        fetched parent, or refer to nodes that no longer exist, are dropped.
        The undo register is cleared when either end of the detached edge is gone.
        """
        self._original = dict(original_parents)
        for node_id in list(self._pending):
            if node_id not in self._original or self._pending[node_id] == self._original[node_id]:
                del self._pending[node_id]
        last = self._last_detach
        if last is not None and (last.node_id not in self._original
                                 or last.previous_parent_id not in self._original):
            self._last_detach = None

    # --- Queries ---

    @property
    def last_detach(self) -> Optional[ReparentOp]:
        return self._last_detach

    def is_dirty(self) -> bool:
        return bool(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._pending

    def original_parent(self, node_id: str) -> Optional[str]:
        return self._original.get(node_id)

    def pending_parent(self, node_id: str) -> Optional[str]:
        """Pending parent if the node was edited, else its fetched parent."""
        if node_id in self._pending:
            return self._pending[node_id]
        return self._original.get(node_id)

    def overrides(self) -> Dict[str, Optional[str]]:
        return dict(self._pending)

    def operations(self) -> List[ReparentOp]:
        return [
            ReparentOp(node_id, self._original.get(node_id), new_parent)
            for node_id, new_parent in self._pending.items()
        ]

    def flatten(self) -> List[Dict[str, Any]]:
        """Minimal ``{id, newParentId}`` list of net changes since the last fetch."""
        return [op.to_update() for op in self.operations()]
