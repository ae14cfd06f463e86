"""In-process graph store.

Keeps nodes and edges in dicts, with properties stored in their encoded form
so reads go through the same codec as the Neo4j backend.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Sequence

from graph_extractor.graph.graph_types import (
    Direction,
    Edge,
    EdgeKind,
    Graph,
    Node,
    NodeKind,
)
from graph_extractor.storage.base import DEFAULT_NODE_LIMIT, GraphStore, edge_kind_filter
from graph_extractor.storage.codec import decode_properties, encode_properties
from graph_extractor.storage.exceptions import GraphStoreError, NotConnectedError
from graph_extractor.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class _StoredNode:
    id: str
    kind: NodeKind
    name: str
    properties: str


@dataclass(frozen=True)
class _StoredEdge:
    id: str
    kind: EdgeKind
    source_id: str
    target_id: str
    properties: str


class _State:
    def __init__(self) -> None:
        self.nodes: dict[str, _StoredNode] = {}
        self.edges: dict[str, _StoredEdge] = {}
        self.outgoing: dict[str, list[str]] = {}
        self.incoming: dict[str, list[str]] = {}

    def put_node(self, node: Node) -> None:
        self.nodes[node.id] = _StoredNode(
            id=node.id,
            kind=NodeKind(node.kind),
            name=node.name,
            properties=encode_properties(node.properties, node.id),
        )

    def put_edge(self, edge: Edge) -> None:
        for endpoint in (edge.source_id, edge.target_id):
            if endpoint not in self.nodes:
                raise GraphStoreError(
                    f"Edge {edge.id} references unknown node {endpoint}", "memory"
                )
        stored = _StoredEdge(
            id=edge.id,
            kind=EdgeKind(edge.kind),
            source_id=edge.source_id,
            target_id=edge.target_id,
            properties=encode_properties(edge.properties, edge.id),
        )
        if edge.id not in self.edges:
            self.outgoing.setdefault(edge.source_id, []).append(edge.id)
            self.incoming.setdefault(edge.target_id, []).append(edge.id)
        self.edges[edge.id] = stored


class InMemoryGraphStore(GraphStore):
    """Dict-backed GraphStore for tests and embedding."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._state = _State()
        self._lock = threading.RLock()
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        if not self._connected:
            logger.info("Connected to in-memory graph store")
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    def _require_connection(self) -> None:
        if not self._connected:
            raise NotConnectedError(self.backend_name)

    async def clear_all(self) -> None:
        self._require_connection()
        with self._lock:
            self._state = _State()

    async def replace_graph(self, graph: Graph) -> None:
        """Build the new state aside and swap it in, so readers see old or new."""
        self._require_connection()
        state = _State()
        for node in graph.nodes:
            state.put_node(node)
        for edge in graph.edges:
            state.put_edge(edge)
        with self._lock:
            self._state = state

    # Nodes

    async def add_node(self, node: Node) -> None:
        self._require_connection()
        with self._lock:
            self._state.put_node(node)

    async def get_node(self, node_id: str) -> Node | None:
        self._require_connection()
        stored = self._state.nodes.get(node_id)
        return _to_node(stored) if stored else None

    async def get_nodes_by_type(
        self, kind: NodeKind, limit: int | None = DEFAULT_NODE_LIMIT
    ) -> list[Node]:
        self._require_connection()
        kind = NodeKind(kind)
        matches: list[Node] = []
        for stored in list(self._state.nodes.values()):
            if limit is not None and len(matches) >= limit:
                break
            if stored.kind == kind:
                matches.append(_to_node(stored))
        return matches

    async def find_nodes(
        self,
        kind: NodeKind,
        name: str | None = None,
        path: str | None = None,
    ) -> list[Node]:
        self._require_connection()
        kind = NodeKind(kind)
        matches: list[Node] = []
        for stored in list(self._state.nodes.values()):
            if stored.kind != kind:
                continue
            if name is not None and stored.name != name:
                continue
            node = _to_node(stored)
            if path is not None and node.path != path:
                continue
            matches.append(node)
        return matches

    # Edges

    async def add_edge(self, edge: Edge) -> None:
        self._require_connection()
        with self._lock:
            self._state.put_edge(edge)

    async def get_edge(self, edge_id: str) -> Edge | None:
        self._require_connection()
        stored = self._state.edges.get(edge_id)
        return _to_edge(stored) if stored else None

    async def get_edges_by_type(
        self, kind: EdgeKind, limit: int | None = DEFAULT_NODE_LIMIT
    ) -> list[Edge]:
        self._require_connection()
        kind = EdgeKind(kind)
        matches = [_to_edge(e) for e in list(self._state.edges.values()) if e.kind == kind]
        return matches if limit is None else matches[:limit]

    async def get_edges_between(
        self,
        source_id: str,
        target_id: str,
        kinds: Sequence[EdgeKind] | None = None,
    ) -> list[Edge]:
        self._require_connection()
        allowed = edge_kind_filter(kinds)
        state = self._state
        return [
            _to_edge(state.edges[edge_id])
            for edge_id in state.outgoing.get(source_id, [])
            if state.edges[edge_id].target_id == target_id
            and (allowed is None or state.edges[edge_id].kind in allowed)
        ]

    async def get_outgoing_edges(
        self, node_id: str, kinds: Sequence[EdgeKind] | None = None
    ) -> list[Edge]:
        self._require_connection()
        return self._adjacent(self._state.outgoing, node_id, edge_kind_filter(kinds))

    async def get_incoming_edges(
        self, node_id: str, kinds: Sequence[EdgeKind] | None = None
    ) -> list[Edge]:
        self._require_connection()
        return self._adjacent(self._state.incoming, node_id, edge_kind_filter(kinds))

    def _adjacent(
        self,
        index: dict[str, list[str]],
        node_id: str,
        allowed: frozenset[EdgeKind] | None,
    ) -> list[Edge]:
        edges = self._state.edges
        return [
            _to_edge(edges[edge_id])
            for edge_id in index.get(node_id, [])
            if allowed is None or edges[edge_id].kind in allowed
        ]

    # Queries

    async def execute_query(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        self._require_connection()
        raise GraphStoreError(
            "Raw queries are not supported by the in-memory store", self.backend_name
        )

    async def get_subgraph(
        self,
        start_id: str,
        depth: int,
        edge_kinds: Sequence[EdgeKind] | None = None,
        direction: Direction = Direction.both,
    ) -> Graph:
        self._require_connection()
        direction = Direction(direction)
        allowed = edge_kind_filter(edge_kinds)
        state = self._state

        start = state.nodes.get(start_id)
        if start is None:
            return Graph.empty()
        if depth < 1:
            return Graph([_to_node(start)], [])

        # Breadth-first distances; an edge lies on a path of at most `depth`
        # hops exactly when the endpoint it is left from sits within depth - 1.
        distance: dict[str, int] = {start_id: 0}
        node_order: list[str] = [start_id]
        edge_order: list[str] = []
        seen_edges: set[str] = set()
        queue: deque[str] = deque([start_id])

        while queue:
            current = queue.popleft()
            if distance[current] >= depth:
                continue
            for edge_id, neighbour in self._steps(current, direction, allowed):
                if edge_id not in seen_edges:
                    seen_edges.add(edge_id)
                    edge_order.append(edge_id)
                if neighbour not in distance:
                    distance[neighbour] = distance[current] + 1
                    node_order.append(neighbour)
                    queue.append(neighbour)

        return Graph(
            [_to_node(state.nodes[node_id]) for node_id in node_order],
            [_to_edge(state.edges[edge_id]) for edge_id in edge_order],
        )

    def _steps(
        self,
        node_id: str,
        direction: Direction,
        allowed: frozenset[EdgeKind] | None,
    ):
        state = self._state
        if direction in (Direction.outgoing, Direction.both):
            for edge_id in state.outgoing.get(node_id, []):
                edge = state.edges[edge_id]
                if allowed is None or edge.kind in allowed:
                    yield edge_id, edge.target_id
        if direction in (Direction.incoming, Direction.both):
            for edge_id in state.incoming.get(node_id, []):
                edge = state.edges[edge_id]
                if allowed is None or edge.kind in allowed:
                    yield edge_id, edge.source_id


def _to_node(stored: _StoredNode) -> Node:
    return Node(
        id=stored.id,
        kind=stored.kind,
        name=stored.name,
        properties=decode_properties(stored.properties, stored.id),
    )


def _to_edge(stored: _StoredEdge) -> Edge:
    return Edge(
        id=stored.id,
        kind=stored.kind,
        source_id=stored.source_id,
        target_id=stored.target_id,
        properties=decode_properties(stored.properties, stored.id),
    )
