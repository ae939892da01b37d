"""
Reparent validation - the single authority on whether an edge change is legal.

Always call it with the working forest (pending edits applied), never the raw
fetch. Otherwise two sequential drags could jointly close a cycle that
neither would close alone.
"""

from typing import Dict, Optional

from orgchart.hierarchy import Forest, is_descendant
from orgchart.models import NodeKind, ValidationResult


REJECTION_MESSAGES: Dict[ValidationResult, str] = {
    ValidationResult.REJECTED_SELF_PARENT: "A node cannot be its own parent.",
    ValidationResult.REJECTED_CYCLE: (
        "This connection would create a cycle, which is not allowed in a hierarchy."
    ),
    ValidationResult.REJECTED_CROSS_GROUP: (
        "Positions can only report to positions in the same sector."
    ),
}


def validate(forest: Forest, child_id: str, new_parent_id: Optional[str]) -> ValidationResult:
    """
    Decide whether ``child_id`` may be placed under ``new_parent_id``.

    Checks run in order and short-circuit: self-parent, cycle, cross-group.
    ``new_parent_id=None`` (make root) is always accepted. Re-asserting the
    current parent is accepted; callers decide whether to record it.

    Raises:
        KeyError if either id is not in the forest.
    """
    child = forest.node(child_id)
    if new_parent_id is None:
        return ValidationResult.ACCEPTED
    parent = forest.node(new_parent_id)

    if child_id == new_parent_id:
        return ValidationResult.REJECTED_SELF_PARENT

    # The proposed parent must not currently sit below the child.
    if is_descendant(forest, child_id, new_parent_id):
        return ValidationResult.REJECTED_CYCLE

    if child.kind is NodeKind.POSITION:
        if parent.kind is not NodeKind.POSITION or child.group_key != parent.group_key:
            return ValidationResult.REJECTED_CROSS_GROUP
    elif child.kind is NodeKind.SECTOR:
        if parent.kind is not NodeKind.SECTOR:
            return ValidationResult.REJECTED_CROSS_GROUP
    else:
        raise ValueError(f"Unhandled node kind: {child.kind!r}")

    return ValidationResult.ACCEPTED


def rejection_message(result: ValidationResult) -> Optional[str]:
    """User-facing text for a rejection, or None when accepted."""
    return REJECTION_MESSAGES.get(result)
