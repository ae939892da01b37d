"""
Core data types for the hierarchy editor.

Sectors and positions share one node shape. The kind is carried explicitly
on every node so code can dispatch on it instead of probing optional fields.

Record format (canonical wire shape):
{
  "id": "uuid-or-int",
  "displayName": "Finance",
  "parentId": "other-id" | null,
  "groupKey": "sector-id",       # positions only
  "childCount": 3,
  "memberCount": 12
}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Mapping, Optional, Tuple


class NodeKind(Enum):
    """Which forest a node belongs to."""
    SECTOR = "sector"
    POSITION = "position"


# Field aliases accepted when parsing records. The first name is canonical;
# the rest are the names used by the legacy admin backend.
_SHARED_ALIASES: Dict[str, Tuple[str, ...]] = {
    "id": ("id",),
    "display_name": ("displayName", "nome", "name", "label"),
}

_KIND_ALIASES: Dict[NodeKind, Dict[str, Tuple[str, ...]]] = {
    NodeKind.SECTOR: {
        "parent_id": ("parentId", "setorPaiId", "parent_id"),
        "group_key": ("groupKey",),
        "child_count": ("childCount", "quantidadeCargos"),
        "member_count": ("memberCount", "quantidadePessoas"),
    },
    NodeKind.POSITION: {
        "parent_id": ("parentId", "cargoPaiId", "parent_id"),
        "group_key": ("groupKey", "setorId"),
        "child_count": ("childCount", "quantidadeAtribuicoes"),
        "member_count": ("memberCount", "quantidadePessoas"),
    },
}


def _pick(record: Dict[str, Any], names: Tuple[str, ...]) -> Any:
    for name in names:
        if name in record:
            return record[name]
    return None


def _as_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _as_count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class Node:
    """A sector or a position as seen by the hierarchy editor."""
    id: str
    display_name: str
    parent_id: Optional[str] = None
    kind: NodeKind = NodeKind.SECTOR
    group_key: Optional[str] = None
    child_count: int = 0
    member_count: int = 0

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @classmethod
    def from_record(cls, record: Dict[str, Any], kind: NodeKind) -> "Node":
        """
        Parse one entity record.

        Accepts the canonical camelCase names and the legacy backend names
        (e.g. ``setorPaiId`` for sectors, ``cargoPaiId``/``setorId`` for
        positions). Raises ValueError if the record is not an object or
        has no id.
        """
        if not isinstance(record, Mapping):
            raise ValueError(f"Record is not an object: {record!r}")
        node_id = _as_id(_pick(record, _SHARED_ALIASES["id"]))
        if node_id is None:
            raise ValueError(f"Record without id: {record!r}")

        aliases = _KIND_ALIASES[kind]
        display_name = _pick(record, _SHARED_ALIASES["display_name"])
        group_key = None
        if kind is NodeKind.POSITION:
            group_key = _as_id(_pick(record, aliases["group_key"]))

        return cls(
            id=node_id,
            display_name=str(display_name) if display_name is not None else node_id,
            parent_id=_as_id(_pick(record, aliases["parent_id"])),
            kind=kind,
            group_key=group_key,
            child_count=_as_count(_pick(record, aliases["child_count"])),
            member_count=_as_count(_pick(record, aliases["member_count"])),
        )

    def to_record(self) -> Dict[str, Any]:
        """Return the canonical wire representation."""
        record = {
            "id": self.id,
            "displayName": self.display_name,
            "parentId": self.parent_id,
            "childCount": self.child_count,
            "memberCount": self.member_count,
        }
        if self.kind is NodeKind.POSITION:
            record["groupKey"] = self.group_key
        return record


@dataclass(frozen=True)
class ReparentOp:
    """A single pending parent change."""
    node_id: str
    previous_parent_id: Optional[str]
    new_parent_id: Optional[str]

    def inverse(self) -> "ReparentOp":
        return ReparentOp(
            node_id=self.node_id,
            previous_parent_id=self.new_parent_id,
            new_parent_id=self.previous_parent_id,
        )

    def to_update(self) -> Dict[str, Any]:
        return {"id": self.node_id, "newParentId": self.new_parent_id}


class ValidationResult(Enum):
    """Outcome of asking whether an edge change is legal."""
    ACCEPTED = "accepted"
    REJECTED_SELF_PARENT = "rejected_self_parent"
    REJECTED_CYCLE = "rejected_cycle"
    REJECTED_CROSS_GROUP = "rejected_cross_group"

    @property
    def accepted(self) -> bool:
        return self is ValidationResult.ACCEPTED
