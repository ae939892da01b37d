"""
EntityStore Protocol Definition.

This module defines the interface the hierarchy editor needs from the
service that stores sectors and positions. Both HttpEntityStore (the admin
REST API) and FileEntityStore (local JSON files) conform to this protocol.
"""

from typing import Protocol, Dict, Any, List, Optional, runtime_checkable

from orgchart.models import Node, NodeKind


class EntityStoreError(Exception):
    """Raised by stores for any fetch/persist failure, with context."""
    def __init__(self, message: str, operation: str, status_code: Optional[int] = None):
        self.operation = operation
        self.status_code = status_code
        super().__init__(message)


@runtime_checkable
class EntityStore(Protocol):
    """
    Abstract protocol for entity stores.

    The editor only reads flat node lists and writes parent reassignments in
    one batch. The create/rename/delete methods back the host page's forms.
    """

    @property
    def store_type(self) -> str:
        """Return the store type identifier ('http' or 'file')."""
        ...

    # --- Hierarchy ---

    def fetch_nodes(self, kind: NodeKind) -> List[Node]:
        """
        Load the flat node list for one forest.

        Returns:
            Nodes in server order. Parent references may dangle; the
            hierarchy model repairs that on build.

        Raises:
            EntityStoreError on transport or decoding failure.
        """
        ...

    def update_hierarchy(self, kind: NodeKind, updates: List[Dict[str, Any]]) -> None:
        """
        Persist a batch of parent reassignments.

        Args:
            kind: Which forest the ids belong to
            updates: ``[{"id": ..., "newParentId": ... | None}, ...]``

        Raises:
            EntityStoreError if the batch was not accepted. The caller
            re-fetches on success; no response body is relied upon.
        """
        ...

    # --- Host page CRUD ---

    def create_node(self, kind: NodeKind, display_name: str,
                    parent_id: Optional[str] = None,
                    group_key: Optional[str] = None) -> Node:
        """Create a node and return it as stored."""
        ...

    def rename_node(self, kind: NodeKind, node_id: str, display_name: str) -> None:
        """Change a node's display name."""
        ...

    def delete_node(self, kind: NodeKind, node_id: str) -> None:
        """Delete a node. Its children become roots."""
        ...
