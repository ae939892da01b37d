"""
HTTP Entity Store.

Talks to the admin REST API:

    GET    {base}/setores                      -> flat sector list
    POST   {base}/setores/update-hierarchy     <- {"updates": [{id, newParentId}]}
    POST   {base}/setores                      <- {displayName, parentId}
    PUT    {base}/setores/{id}                 <- {displayName}
    DELETE {base}/setores/{id}

Positions use the same shape under ``/cargos``.
"""

import logging
from typing import Dict, Any, List, Optional

import requests

from orgchart.models import Node, NodeKind
from orgchart.storage.protocol import EntityStoreError

logger = logging.getLogger(__name__)


COLLECTION_PATHS = {
    NodeKind.SECTOR: "setores",
    NodeKind.POSITION: "cargos",
}

DEFAULT_TIMEOUT = 10.0


class HttpEntityStore:
    """EntityStore backed by the admin console's REST API."""

    def __init__(self, base_url: str, token: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Args:
            base_url: API root, e.g. ``http://localhost:5000/api``
            token: Optional bearer token sent on every request
            timeout: Per-request timeout in seconds
            session: Optional pre-configured session (tests inject a mock)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if token:
            self._session.headers.update({"Authorization": f"Bearer {token}"})

    @property
    def store_type(self) -> str:
        return "http"

    def _url(self, kind: NodeKind, *parts: str) -> str:
        return "/".join([self.base_url, COLLECTION_PATHS[kind], *parts])

    def _request(self, method: str, url: str, operation: str, **kwargs) -> requests.Response:
        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{operation}: {method} {url} failed: {e}")
            raise EntityStoreError(f"Request failed: {e}", operation) from e

        if not response.ok:
            logger.warning(f"{operation}: {method} {url} returned {response.status_code}")
            raise EntityStoreError(
                f"Server returned {response.status_code} for {operation}",
                operation,
                response.status_code,
            )
        return response

    # --- Hierarchy ---

    def fetch_nodes(self, kind: NodeKind) -> List[Node]:
        response = self._request("GET", self._url(kind), "fetch_nodes")
        try:
            records = response.json()
        except ValueError as e:
            raise EntityStoreError(f"Invalid JSON in node list: {e}", "fetch_nodes") from e
        if not isinstance(records, list):
            raise EntityStoreError("Node list response is not a JSON array", "fetch_nodes")

        nodes = []
        for record in records:
            try:
                nodes.append(Node.from_record(record, kind))
            except (ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed {kind.value} record: {e}")
        return nodes

    def update_hierarchy(self, kind: NodeKind, updates: List[Dict[str, Any]]) -> None:
        self._request(
            "POST",
            self._url(kind, "update-hierarchy"),
            "update_hierarchy",
            json={"updates": updates},
        )

    # --- Host page CRUD ---

    def create_node(self, kind: NodeKind, display_name: str,
                    parent_id: Optional[str] = None,
                    group_key: Optional[str] = None) -> Node:
        payload: Dict[str, Any] = {"displayName": display_name, "parentId": parent_id}
        if kind is NodeKind.POSITION:
            payload["groupKey"] = group_key
        response = self._request("POST", self._url(kind), "create_node", json=payload)
        try:
            return Node.from_record(response.json(), kind)
        except ValueError as e:
            raise EntityStoreError(f"Invalid create response: {e}", "create_node") from e

    def rename_node(self, kind: NodeKind, node_id: str, display_name: str) -> None:
        self._request("PUT", self._url(kind, str(node_id)), "rename_node",
                      json={"displayName": display_name})

    def delete_node(self, kind: NodeKind, node_id: str) -> None:
        self._request("DELETE", self._url(kind, str(node_id)), "delete_node")
