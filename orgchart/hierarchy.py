"""
In-memory hierarchy model.

Builds a forest from the flat node list returned by the entity store and
answers ancestry questions. The structure is held in a NetworkX DiGraph with
edges pointing parent -> child; the node payload lives in the ``node``
attribute.

Traversals are explicit stack walks so deep or pathological trees never hit
the interpreter recursion limit.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

import networkx as nx

from orgchart.models import Node, NodeKind

logger = logging.getLogger(__name__)


class Forest:
    """
    Immutable forest view over a list of nodes.

    Use ``Forest.build`` to create one. ``overrides`` lets the caller layer
    pending parent changes over the fetched snapshot without touching it:

        working = Forest.build(snapshot, overrides={"b": None})
    """

    def __init__(self, graph: nx.DiGraph, order: List[str], parents: Dict[str, Optional[str]]):
        self._graph = graph
        self._order = order
        self._parents = parents

    @classmethod
    def build(cls, nodes: Iterable[Node],
              overrides: Optional[Mapping[str, Optional[str]]] = None) -> "Forest":
        overrides = overrides or {}
        graph = nx.DiGraph()
        order: List[str] = []

        for node in nodes:
            if node.id in graph:
                logger.warning(f"Duplicate node id {node.id!r}; keeping the last record")
            else:
                order.append(node.id)
            graph.add_node(node.id, node=node)

        parents: Dict[str, Optional[str]] = {}
        for node_id in order:
            node = graph.nodes[node_id]["node"]
            parent_id = overrides[node_id] if node_id in overrides else node.parent_id
            if parent_id is not None and (parent_id not in graph or parent_id == node_id):
                # Partial server data must not break the editor: treat as root.
                logger.debug(f"Node {node_id!r} has dangling parent {parent_id!r}; treating as root")
                parent_id = None
            parents[node_id] = parent_id
            if parent_id is not None:
                graph.add_edge(parent_id, node_id)

        return cls(graph, order, parents)

    # --- Basic access ---

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._parents

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Node]:
        for node_id in self._order:
            yield self._graph.nodes[node_id]["node"]

    @property
    def graph(self) -> nx.DiGraph:
        return self._graph

    def get(self, node_id: str) -> Optional[Node]:
        if node_id not in self._parents:
            return None
        return self._graph.nodes[node_id]["node"]

    def node(self, node_id: str) -> Node:
        """Like get(), but raises KeyError for unknown ids."""
        if node_id not in self._parents:
            raise KeyError(node_id)
        return self._graph.nodes[node_id]["node"]

    def parent_of(self, node_id: str) -> Optional[str]:
        """Effective parent id (after overrides and dangling-reference repair)."""
        return self._parents.get(node_id)

    def parents(self) -> Dict[str, Optional[str]]:
        return dict(self._parents)

    # --- Structure queries ---

    def roots(self) -> List[Node]:
        return [self._graph.nodes[nid]["node"] for nid in self._order if self._parents[nid] is None]

    def children(self, node_id: str) -> List[Node]:
        if node_id not in self._parents:
            return []
        return [self._graph.nodes[cid]["node"] for cid in self._graph.successors(node_id)]

    def descendants(self, node_id: str) -> Set[str]:
        if node_id not in self._parents:
            return set()
        found: Set[str] = set()
        stack = list(self._graph.successors(node_id))
        while stack:
            current = stack.pop()
            if current in found:
                continue
            found.add(current)
            stack.extend(self._graph.successors(current))
        return found

    def depth_of(self, node_id: str) -> int:
        """Number of ancestors above node_id (roots are depth 0)."""
        depth = 0
        seen = {node_id}
        parent = self._parents.get(node_id)
        while parent is not None and parent not in seen:
            seen.add(parent)
            depth += 1
            parent = self._parents.get(parent)
        return depth

    def walk(self) -> List[Tuple[Node, int]]:
        """Pre-order (node, depth) pairs, roots first, siblings in stable order."""
        out: List[Tuple[Node, int]] = []
        stack = [(root.id, 0) for root in reversed(self.roots())]
        while stack:
            node_id, depth = stack.pop()
            out.append((self._graph.nodes[node_id]["node"], depth))
            children = list(self._graph.successors(node_id))
            for child_id in reversed(children):
                stack.append((child_id, depth + 1))
        return out

    def edges(self) -> List[Tuple[str, str]]:
        """(parent_id, child_id) pairs in child insertion order."""
        return [(self._parents[nid], nid) for nid in self._order if self._parents[nid] is not None]

    def is_valid_forest(self) -> bool:
        """
        Check the full forest invariant: single parent, acyclic, and for
        positions parent and child share a group.
        """
        if len(self._graph) == 0:
            return True
        if not nx.is_branching(self._graph):
            return False
        for parent_id, child_id in self._graph.edges():
            child = self._graph.nodes[child_id]["node"]
            if child.kind is NodeKind.POSITION:
                parent = self._graph.nodes[parent_id]["node"]
                if parent.group_key != child.group_key:
                    return False
        return True


# --- Functional API ---

def build(nodes: Iterable[Node], overrides: Optional[Mapping[str, Optional[str]]] = None) -> Forest:
    return Forest.build(nodes, overrides)


def descendants_of(forest: Forest, node_id: str) -> Set[str]:
    return forest.descendants(node_id)


def is_descendant(forest: Forest, ancestor_id: str, candidate_id: str) -> bool:
    return candidate_id in forest.descendants(ancestor_id)


def roots_of(forest: Forest) -> List[Node]:
    return forest.roots()


def children_of(forest: Forest, node_id: str) -> List[Node]:
    return forest.children(node_id)
