"""
Hierarchy Editor - the editing session behind one org chart canvas.

Translates gestures (connect, detach, tree drop, undo) into validated
buffer edits, keeps the working forest and layout in step, and runs the
single batch commit against the entity store.

Session states:
    CLEAN -> MODIFIED (first pending edit)
    MODIFIED -> COMMITTING -> CLEAN (success) | MODIFIED (failure)
    MODIFIED -> CLEAN (reset, or edits that cancel out)

Validation problems never raise; every gesture returns an EditOutcome the
host UI can present however it likes.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple

from orgchart.edit_buffer import EditBuffer
from orgchart.hierarchy import Forest, is_descendant
from orgchart.layout import LayoutConfig, compute_layout, layout_for_kind
from orgchart.models import Node, NodeKind, ReparentOp, ValidationResult
from orgchart.storage.protocol import EntityStore, EntityStoreError
from orgchart.validator import rejection_message, validate

logger = logging.getLogger(__name__)


UNKNOWN_NODE_MESSAGE = "That node is no longer part of this chart."
BUSY_MESSAGE = "A save is in progress. Please wait."
STALE_EDITS_MESSAGE = (
    "Pending changes conflicted with the refreshed hierarchy and were discarded."
)


class EditorState(Enum):
    CLEAN = "clean"
    MODIFIED = "modified"
    COMMITTING = "committing"


class OutcomeStatus(Enum):
    APPLIED = "applied"
    NO_CHANGE = "no_change"
    REJECTED = "rejected"


@dataclass(frozen=True)
class EditOutcome:
    """Result of a single gesture."""
    status: OutcomeStatus
    result: Optional[ValidationResult] = None
    message: Optional[str] = None
    operation: Optional[ReparentOp] = None

    @property
    def applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED


@dataclass(frozen=True)
class CommitResult:
    success: bool
    sent: int = 0
    message: Optional[str] = None


@dataclass
class EditorCallbacks:
    """Hooks into the host page. The editor never owns form state."""
    on_add_child: Optional[Callable[[Optional[str]], None]] = None
    on_edit: Optional[Callable[[str], None]] = None
    on_delete: Optional[Callable[[str], None]] = None
    on_hierarchy_changed: Optional[Callable[[], None]] = None


class HierarchyEditor:
    """
    Editing session for one forest.

    Usage:
        editor = HierarchyEditor(store, NodeKind.SECTOR)
        editor.load()
        editor.connect("board", "finance")   # board becomes parent of finance
        editor.commit()
    """

    def __init__(self, store: EntityStore, kind: NodeKind,
                 group_key: Optional[str] = None,
                 callbacks: Optional[EditorCallbacks] = None,
                 layout_config: Optional[LayoutConfig] = None):
        """
        Args:
            store: Entity store to fetch from and commit to
            kind: Which forest this session edits
            group_key: For positions, restrict the chart to one sector
            callbacks: Host page hooks
            layout_config: Override the per-kind layout spacing
        """
        self.store = store
        self.kind = kind
        self.group_key = group_key
        self.callbacks = callbacks or EditorCallbacks()
        self.layout_config = layout_config or layout_for_kind(kind)

        self._snapshot: List[Node] = []
        self._buffer = EditBuffer()
        self._forest = Forest.build([])
        self._layout: Dict[str, Tuple[float, float]] = {}
        self._state = EditorState.CLEAN
        self._message: Optional[str] = None
        self._loaded = False
        self._commits = 0
        self._on_change: Optional[Callable[["HierarchyEditor"], None]] = None

    # --- Read-only views ---

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def forest(self) -> Forest:
        """Working forest: last fetch with pending edits applied."""
        return self._forest

    @property
    def layout(self) -> Dict[str, Tuple[float, float]]:
        return dict(self._layout)

    @property
    def pending_ids(self) -> Set[str]:
        return set(self._buffer.overrides())

    @property
    def pending_operations(self) -> List[ReparentOp]:
        return self._buffer.operations()

    @property
    def message(self) -> Optional[str]:
        return self._message

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def can_commit(self) -> bool:
        return self._state is EditorState.MODIFIED

    @property
    def can_undo(self) -> bool:
        return self._buffer.last_detach is not None and self._state is not EditorState.COMMITTING

    def set_on_change(self, callback: Optional[Callable[["HierarchyEditor"], None]]):
        self._on_change = callback

    def clear_message(self):
        self._message = None

    # --- Fetch ---

    def load(self) -> bool:
        """
        Fetch the forest from the store.

        On failure the last known forest stays on screen and the error is
        kept as the current message. Pending edits survive a reload; those
        that no longer differ from the fetched parents are dropped.
        A fetch that overlaps a commit is discarded: the commit's own reload
        is the newer view.
        """
        commits_before = self._commits
        try:
            nodes = self.store.fetch_nodes(self.kind)
        except EntityStoreError as e:
            logger.warning(f"Failed to load {self.kind.value} hierarchy: {e}")
            self._message = f"Failed to load the hierarchy: {e}"
            self._notify_change()
            return False

        if self._commits != commits_before:
            logger.debug(f"Discarding {self.kind.value} fetch that overlapped a commit")
            return True

        if self.group_key is not None:
            nodes = [n for n in nodes if n.group_key == self.group_key]

        self._snapshot = nodes
        self._buffer.rebase(Forest.build(nodes).parents())
        self._rebuild()
        if self._pending_edits_conflict():
            logger.warning("Pending edits conflict with the reloaded hierarchy; discarding them")
            self._buffer.reset()
            self._rebuild()
            self._message = STALE_EDITS_MESSAGE
        self._loaded = True
        if self._state is not EditorState.COMMITTING:
            self._state = EditorState.MODIFIED if self._buffer.is_dirty() else EditorState.CLEAN
        logger.debug(f"Loaded {len(nodes)} {self.kind.value} node(s)")
        self._notify_change()
        return True

    def refresh(self) -> bool:
        """Manual refresh. Same as load()."""
        return self.load()

    # --- Gestures ---

    def connect(self, parent_id: str, child_id: str) -> EditOutcome:
        """Drag-connect gesture: ``parent_id`` becomes the parent of ``child_id``."""
        if self._state is EditorState.COMMITTING:
            return self._reject(None, BUSY_MESSAGE)
        if parent_id not in self._forest or child_id not in self._forest:
            return self._reject(None, UNKNOWN_NODE_MESSAGE)

        parent = self._forest.node(parent_id)
        child = self._forest.node(child_id)
        if self.kind is NodeKind.POSITION and parent.group_key != child.group_key:
            return self._reject(ValidationResult.REJECTED_CROSS_GROUP)

        result = validate(self._forest, child_id, parent_id)
        if not result.accepted:
            return self._reject(result)

        current = self._forest.parent_of(child_id)
        if current == parent_id:
            return EditOutcome(OutcomeStatus.NO_CHANGE, result)

        self._buffer.record_reparent(child_id, parent_id)
        self._after_edit()
        logger.debug(f"Reparented {child_id!r}: {current!r} -> {parent_id!r}")
        return EditOutcome(OutcomeStatus.APPLIED, result, operation=ReparentOp(child_id, current, parent_id))

    def drop(self, node_id: str, target_id: str) -> EditOutcome:
        """Tree-view drop of ``node_id`` onto ``target_id``."""
        return self.connect(target_id, node_id)

    def can_drop(self, node_id: str, target_id: str) -> bool:
        """
        Drop-target highlighting check for the tree view.

        Mirrors the validator's self/descendant/group rules so an invalid
        target is never highlighted. connect() still validates on drop.
        """
        if node_id not in self._forest or target_id not in self._forest:
            return False
        if node_id == target_id or target_id in self._forest.descendants(node_id):
            return False
        if self.kind is NodeKind.POSITION:
            return self._forest.node(node_id).group_key == self._forest.node(target_id).group_key
        return True

    def detach(self, node_id: str) -> EditOutcome:
        """Edge-removal gesture: the node becomes a root. Undoable once."""
        if self._state is EditorState.COMMITTING:
            return self._reject(None, BUSY_MESSAGE)
        if node_id not in self._forest:
            return self._reject(None, UNKNOWN_NODE_MESSAGE)

        current = self._forest.parent_of(node_id)
        if current is None:
            return EditOutcome(OutcomeStatus.NO_CHANGE, ValidationResult.ACCEPTED)

        self._buffer.record_detach(node_id, current)
        self._after_edit()
        logger.debug(f"Detached {node_id!r} from {current!r}")
        return EditOutcome(OutcomeStatus.APPLIED, ValidationResult.ACCEPTED,
                           operation=ReparentOp(node_id, current, None))

    def undo_detach(self) -> EditOutcome:
        """
        Restore the most recently detached edge.

        Later edits may have made the old parent illegal (e.g. it now sits
        below the detached node). The restoration is validated first and a
        rejection leaves buffer and undo register untouched.
        """
        if self._state is EditorState.COMMITTING:
            return self._reject(None, BUSY_MESSAGE)
        last = self._buffer.last_detach
        if last is None:
            return EditOutcome(OutcomeStatus.NO_CHANGE)

        restore = last.inverse()
        if restore.new_parent_id is not None:
            if restore.node_id not in self._forest or restore.new_parent_id not in self._forest:
                return self._reject(None, UNKNOWN_NODE_MESSAGE)
            result = validate(self._forest, restore.node_id, restore.new_parent_id)
            if not result.accepted:
                return self._reject(result)

        applied = self._buffer.undo_last_detach()
        self._after_edit()
        return EditOutcome(OutcomeStatus.APPLIED, ValidationResult.ACCEPTED, operation=applied)

    def reset(self) -> None:
        """Discard every pending edit."""
        if self._state is EditorState.COMMITTING:
            return
        self._buffer.reset()
        self._after_edit()

    # --- Commit ---

    def commit(self) -> CommitResult:
        """
        Send the net pending changes as one batch.

        Success: buffer cleared, forest refetched, on_hierarchy_changed fired.
        Failure: buffer kept for retry, state back to MODIFIED.
        """
        if self._state is EditorState.COMMITTING:
            return CommitResult(False, 0, BUSY_MESSAGE)
        if not self._buffer.is_dirty():
            return CommitResult(True, 0, "Nothing to save.")

        updates = self._buffer.flatten()
        self._state = EditorState.COMMITTING
        self._notify_change()

        try:
            self.store.update_hierarchy(self.kind, updates)
        except EntityStoreError as e:
            logger.warning(f"Commit of {len(updates)} {self.kind.value} update(s) failed: {e}")
            self._state = EditorState.MODIFIED
            self._message = f"Failed to save the hierarchy: {e}"
            self._notify_change()
            return CommitResult(False, 0, self._message)

        logger.info(f"Committed {len(updates)} {self.kind.value} update(s)")
        self._commits += 1
        self._buffer.reset()
        self._state = EditorState.CLEAN
        if self.load():
            self._message = "Hierarchy updated."
        self._notify_change()

        if self.callbacks.on_hierarchy_changed:
            self.callbacks.on_hierarchy_changed()
        return CommitResult(True, len(updates), self._message)

    # --- Host callbacks ---

    def request_add_child(self, parent_id: Optional[str] = None) -> None:
        if parent_id is not None and parent_id not in self._forest:
            logger.warning(f"Add child requested under unknown node {parent_id!r}")
            return
        if self.callbacks.on_add_child:
            self.callbacks.on_add_child(parent_id)

    def request_edit(self, node_id: str) -> None:
        if node_id not in self._forest:
            logger.warning(f"Edit requested for unknown node {node_id!r}")
            return
        if self.callbacks.on_edit:
            self.callbacks.on_edit(node_id)

    def request_delete(self, node_id: str) -> None:
        if node_id not in self._forest:
            logger.warning(f"Delete requested for unknown node {node_id!r}")
            return
        if self.callbacks.on_delete:
            self.callbacks.on_delete(node_id)

    # --- Internals ---

    def _rebuild(self):
        self._forest = Forest.build(self._snapshot, self._buffer.overrides())
        self._layout = compute_layout(self._forest, self.layout_config)

    def _pending_edits_conflict(self) -> bool:
        """
        True if a pending parent now closes a cycle or crosses sectors.
        Problems already present in the fetched data do not count.
        """
        for node_id in self._buffer.overrides():
            parent_id = self._forest.parent_of(node_id)
            if parent_id is None:
                continue
            if is_descendant(self._forest, node_id, parent_id):
                return True
            if self.kind is NodeKind.POSITION:
                if self._forest.node(node_id).group_key != self._forest.node(parent_id).group_key:
                    return True
        return False

    def _after_edit(self):
        self._rebuild()
        self._state = EditorState.MODIFIED if self._buffer.is_dirty() else EditorState.CLEAN
        self._message = None
        self._notify_change()

    def _reject(self, result: Optional[ValidationResult], message: Optional[str] = None) -> EditOutcome:
        message = message or rejection_message(result)
        self._message = message
        logger.debug(f"Gesture rejected: {result} ({message})")
        self._notify_change()
        return EditOutcome(OutcomeStatus.REJECTED, result, message)

    def _notify_change(self):
        if self._on_change:
            self._on_change(self)
