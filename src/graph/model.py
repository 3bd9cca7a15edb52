"""Immutable dependency graph and its builder."""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from common.errors import GraphConstructionError
from .nodes import Node, NodeKey, NodeKind


@dataclass(frozen=True)
class Edge:
    """Directed edge; ``label`` holds the requested version range, if any."""
    source: Node
    target: Node
    label: Optional[str] = None

    @property
    def key(self) -> Tuple[NodeKey, NodeKey]:
        return (self.source.key, self.target.key)


class DependencyGraph:
    """Frozen graph of nodes and ordered edges with read-only queries.

    Instances are produced by GraphBuilder.build(); there is no mutation API.
    """

    __slots__ = ("_root", "_nodes", "_edges", "_by_key", "_outgoing", "_incoming")

    def __init__(self, root: Node, nodes: Iterable[Node], edges: Iterable[Edge]):
        self._root = root
        self._nodes: FrozenSet[Node] = frozenset(nodes)
        self._edges: Tuple[Edge, ...] = tuple(edges)
        by_key: Dict[NodeKey, Node] = {n.key: n for n in self._nodes}
        outgoing: Dict[NodeKey, List[Edge]] = {}
        incoming: Dict[NodeKey, List[Edge]] = {}
        for edge in self._edges:
            outgoing.setdefault(edge.source.key, []).append(edge)
            incoming.setdefault(edge.target.key, []).append(edge)
        self._by_key: Mapping[NodeKey, Node] = MappingProxyType(by_key)
        self._outgoing = {k: tuple(v) for k, v in outgoing.items()}
        self._incoming = {k: tuple(v) for k, v in incoming.items()}

    @property
    def root(self) -> Node:
        return self._root

    @property
    def nodes(self) -> FrozenSet[Node]:
        return self._nodes

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        key = getattr(node, "key", None)
        return key in self._by_key

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def find_node(self, key: NodeKey) -> Optional[Node]:
        return self._by_key.get(key)

    def find_package(self, package_id: str) -> List[Node]:
        """All package nodes with ``package_id`` (case-insensitive)."""
        wanted = package_id.casefold()
        return [
            n for n in self._nodes
            if n.kind is NodeKind.PACKAGE and n.key.name == wanted
        ]

    def nodes_of_kind(self, kind: NodeKind) -> List[Node]:
        return sorted((n for n in self._nodes if n.kind is kind), key=lambda n: n.key)

    def package_nodes(self) -> List[Node]:
        return self.nodes_of_kind(NodeKind.PACKAGE)

    def assembly_nodes(self) -> List[Node]:
        return self.nodes_of_kind(NodeKind.ASSEMBLY)

    def edges_from(self, node: Node) -> Tuple[Edge, ...]:
        return self._outgoing.get(node.key, ())

    def edges_to(self, node: Node) -> Tuple[Edge, ...]:
        return self._incoming.get(node.key, ())

    def successors(self, node: Node) -> List[Node]:
        return [e.target for e in self.edges_from(node)]

    def predecessors(self, node: Node) -> List[Node]:
        return [e.source for e in self.edges_to(node)]

    def reachable_from(self, node: Optional[Node] = None) -> Set[Node]:
        """Nodes reachable from ``node`` (default: the root), itself included."""
        start = node if node is not None else self._root
        seen: Set[NodeKey] = {start.key}
        found: Set[Node] = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nxt in self.successors(current):
                if nxt.key not in seen:
                    seen.add(nxt.key)
                    found.add(nxt)
                    queue.append(nxt)
        return found

    def __repr__(self) -> str:
        return f"DependencyGraph(root={self._root.display!r}, nodes={len(self._nodes)}, edges={len(self._edges)})"


class GraphBuilder:
    """Accumulates nodes and edges; consumed once by build().

    Insertion is idempotent: a node whose key is already present, or an
    identical edge, is ignored. All mutation happens under one lock so
    parallel producers may share a builder.
    """

    def __init__(self, root: Node):
        self._lock = threading.Lock()
        self._root = root
        self._nodes: Dict[NodeKey, Node] = {root.key: root}
        self._edges: List[Edge] = []
        self._edge_labels: Dict[Tuple[NodeKey, NodeKey], Optional[str]] = {}
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise GraphConstructionError("Builder has already been consumed")

    def with_node(self, node: Node) -> "GraphBuilder":
        with self._lock:
            self._check_open()
            self._nodes.setdefault(node.key, node)
        return self

    def with_nodes(self, nodes: Iterable[Node]) -> "GraphBuilder":
        for node in nodes:
            self.with_node(node)
        return self

    def with_edge(self, edge: Edge) -> "GraphBuilder":
        """Add an edge between registered nodes.

        Raises:
            GraphConstructionError: If an endpoint is unknown or the pair
                already has an edge with a different label.
        """
        with self._lock:
            self._check_open()
            for endpoint in (edge.source, edge.target):
                if endpoint.key not in self._nodes:
                    raise GraphConstructionError(
                        f"Edge endpoint {endpoint.display} is not a node of this graph"
                    )
            pair = edge.key
            if pair in self._edge_labels:
                if self._edge_labels[pair] != edge.label:
                    raise GraphConstructionError(
                        f"Conflicting labels for {edge.source.display} -> {edge.target.display}: "
                        f"{self._edge_labels[pair]!r} vs {edge.label!r}"
                    )
                return self
            self._edge_labels[pair] = edge.label
            # Store registered instances so edges never point at stray copies
            self._edges.append(Edge(self._nodes[pair[0]], self._nodes[pair[1]], edge.label))
        return self

    def with_edges(self, edges: Iterable[Edge]) -> "GraphBuilder":
        for edge in edges:
            self.with_edge(edge)
        return self

    def has_node(self, node: Node) -> bool:
        with self._lock:
            return node.key in self._nodes

    def build(self) -> DependencyGraph:
        with self._lock:
            self._check_open()
            self._built = True
            return DependencyGraph(self._root, self._nodes.values(), self._edges)
