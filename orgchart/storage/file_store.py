"""
File-based Entity Store.

Implements the EntityStore protocol with local JSON files. Used for offline
work, demos and tests.

Structure:
- {data_dir}/sectors.json: list of sector records
- {data_dir}/positions.json: list of position records
"""

import json
import logging
import os
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Dict, Any, List, Optional

from orgchart.hierarchy import Forest
from orgchart.models import Node, NodeKind
from orgchart.storage.protocol import EntityStoreError

logger = logging.getLogger(__name__)


COLLECTION_FILES = {
    NodeKind.SECTOR: "sectors.json",
    NodeKind.POSITION: "positions.json",
}


class FileEntityStore:
    """Local JSON storage for sectors and positions."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def store_type(self) -> str:
        return "file"

    # --- File I/O Helpers ---

    def _path(self, kind: NodeKind) -> Path:
        return self.data_dir / COLLECTION_FILES[kind]

    def _load_records(self, kind: NodeKind) -> List[Dict[str, Any]]:
        path = self._path(kind)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise EntityStoreError(f"Failed to read {path.name}: {e}", "fetch_nodes")
        if not isinstance(data, list):
            raise EntityStoreError(f"{path.name} does not contain a list", "fetch_nodes")
        return data

    def _save_records(self, kind: NodeKind, records: List[Dict[str, Any]]) -> None:
        """Write via a temp file so a crash never leaves a half-written collection."""
        path = self._path(kind)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

    def _load_nodes(self, kind: NodeKind) -> List[Node]:
        nodes = []
        for record in self._load_records(kind):
            try:
                nodes.append(Node.from_record(record, kind))
            except ValueError as e:
                logger.warning(f"Skipping malformed {kind.value} record: {e}")
        return nodes

    def _save_nodes(self, kind: NodeKind, nodes: List[Node]) -> None:
        records = []
        for n in nodes:
            record = n.to_record()
            # Derived on read
            record.pop("childCount", None)
            records.append(record)
        self._save_records(kind, records)

    # --- Hierarchy ---

    def fetch_nodes(self, kind: NodeKind) -> List[Node]:
        """Load nodes, deriving childCount from the stored parent links."""
        nodes = self._load_nodes(kind)
        if kind is NodeKind.SECTOR:
            positions = self._load_nodes(NodeKind.POSITION)
            counts: Dict[str, int] = {}
            for p in positions:
                if p.group_key:
                    counts[p.group_key] = counts.get(p.group_key, 0) + 1
        else:
            counts = {}
            for n in nodes:
                if n.parent_id:
                    counts[n.parent_id] = counts.get(n.parent_id, 0) + 1
        return [replace(n, child_count=counts.get(n.id, 0)) for n in nodes]

    def update_hierarchy(self, kind: NodeKind, updates: List[Dict[str, Any]]) -> None:
        """
        Apply the batch atomically: either every update is written or none.

        Rejects unknown ids and any batch whose result is not a valid forest.
        """
        nodes = self._load_nodes(kind)
        by_id = {n.id: n for n in nodes}

        overrides: Dict[str, Optional[str]] = {}
        for update in updates:
            node_id = str(update.get("id"))
            new_parent = update.get("newParentId")
            new_parent = str(new_parent) if new_parent is not None else None
            if node_id not in by_id:
                raise EntityStoreError(f"Unknown {kind.value} id: {node_id}", "update_hierarchy", 404)
            if new_parent is not None and new_parent not in by_id:
                raise EntityStoreError(f"Unknown parent id: {new_parent}", "update_hierarchy", 404)
            overrides[node_id] = new_parent

        if not Forest.build(nodes, overrides).is_valid_forest():
            raise EntityStoreError("Update would break the hierarchy", "update_hierarchy", 409)

        updated = [replace(n, parent_id=overrides[n.id]) if n.id in overrides else n for n in nodes]
        self._save_nodes(kind, updated)
        logger.info(f"Updated {len(overrides)} {kind.value} parent(s)")

    # --- Host page CRUD ---

    def create_node(self, kind: NodeKind, display_name: str,
                    parent_id: Optional[str] = None,
                    group_key: Optional[str] = None) -> Node:
        nodes = self._load_nodes(kind)
        if kind is NodeKind.POSITION and parent_id is not None and group_key is None:
            parent = next((n for n in nodes if n.id == parent_id), None)
            group_key = parent.group_key if parent else None
        node = Node(
            id=str(uuid.uuid4()),
            display_name=display_name,
            parent_id=parent_id,
            kind=kind,
            group_key=group_key if kind is NodeKind.POSITION else None,
        )
        nodes.append(node)
        self._save_nodes(kind, nodes)
        return node

    def rename_node(self, kind: NodeKind, node_id: str, display_name: str) -> None:
        nodes = self._load_nodes(kind)
        if not any(n.id == node_id for n in nodes):
            raise EntityStoreError(f"Unknown {kind.value} id: {node_id}", "rename_node", 404)
        self._save_nodes(kind, [replace(n, display_name=display_name) if n.id == node_id else n for n in nodes])

    def delete_node(self, kind: NodeKind, node_id: str) -> None:
        """Delete a node and re-root any children that referenced it."""
        nodes = self._load_nodes(kind)
        if not any(n.id == node_id for n in nodes):
            raise EntityStoreError(f"Unknown {kind.value} id: {node_id}", "delete_node", 404)
        remaining = []
        for n in nodes:
            if n.id == node_id:
                continue
            remaining.append(replace(n, parent_id=None) if n.parent_id == node_id else n)
        self._save_nodes(kind, remaining)

    def seed_demo_data(self) -> None:
        """Populate with a small organization if both collections are empty."""
        if self._load_records(NodeKind.SECTOR) or self._load_records(NodeKind.POSITION):
            return

        logger.info("Seeding demo organization...")
        board = self.create_node(NodeKind.SECTOR, "Board")
        ops = self.create_node(NodeKind.SECTOR, "Operations", parent_id=board.id)
        fin = self.create_node(NodeKind.SECTOR, "Finance", parent_id=board.id)
        self.create_node(NodeKind.SECTOR, "Logistics", parent_id=ops.id)
        self.create_node(NodeKind.SECTOR, "Accounting", parent_id=fin.id)

        ceo = self.create_node(NodeKind.POSITION, "CEO", group_key=board.id)
        self.create_node(NodeKind.POSITION, "Board Secretary", parent_id=ceo.id)
        coo = self.create_node(NodeKind.POSITION, "Operations Director", group_key=ops.id)
        self.create_node(NodeKind.POSITION, "Shift Supervisor", parent_id=coo.id)
        cfo = self.create_node(NodeKind.POSITION, "Finance Director", group_key=fin.id)
        self.create_node(NodeKind.POSITION, "Treasury Analyst", parent_id=cfo.id)
