"""
Storage contract for the code graph.

GraphStore is the only interface the assembler and the query engine see.
Backends implement the abstract primitives; batch writes and the full
rebuild in replace_graph have generic fallbacks that backends with
transactions override.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Sequence

from graph_extractor.graph.graph_types import (
    Direction,
    Edge,
    EdgeKind,
    Graph,
    Node,
    NodeKind,
)

DEFAULT_NODE_LIMIT = 100


class GraphStore(ABC):
    """Abstract graph store.

    Every method except connect() and disconnect() raises NotConnectedError
    when called before a successful connect().
    """

    backend_name: str = "abstract"

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Open the backend session. Calling it again on a live store is a no-op."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend session. Idempotent."""

    async def __aenter__(self) -> "GraphStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    @abstractmethod
    async def clear_all(self) -> None:
        """Remove every node and edge."""

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    @abstractmethod
    async def add_node(self, node: Node) -> None:
        ...

    async def add_nodes(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            await self.add_node(node)

    @abstractmethod
    async def get_node(self, node_id: str) -> Node | None:
        ...

    @abstractmethod
    async def get_nodes_by_type(
        self, kind: NodeKind, limit: int | None = DEFAULT_NODE_LIMIT
    ) -> list[Node]:
        """Nodes of one kind; ``limit=None`` returns all of them."""

    @abstractmethod
    async def find_nodes(
        self,
        kind: NodeKind,
        name: str | None = None,
        path: str | None = None,
    ) -> list[Node]:
        """Nodes of one kind with an exact ``name`` and/or ``path`` property."""

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    @abstractmethod
    async def add_edge(self, edge: Edge) -> None:
        ...

    async def add_edges(self, edges: Iterable[Edge]) -> None:
        for edge in edges:
            await self.add_edge(edge)

    @abstractmethod
    async def get_edge(self, edge_id: str) -> Edge | None:
        ...

    @abstractmethod
    async def get_edges_by_type(
        self, kind: EdgeKind, limit: int | None = DEFAULT_NODE_LIMIT
    ) -> list[Edge]:
        ...

    @abstractmethod
    async def get_edges_between(
        self,
        source_id: str,
        target_id: str,
        kinds: Sequence[EdgeKind] | None = None,
    ) -> list[Edge]:
        """Edges declared from ``source_id`` to ``target_id``."""

    @abstractmethod
    async def get_outgoing_edges(
        self, node_id: str, kinds: Sequence[EdgeKind] | None = None
    ) -> list[Edge]:
        ...

    @abstractmethod
    async def get_incoming_edges(
        self, node_id: str, kinds: Sequence[EdgeKind] | None = None
    ) -> list[Edge]:
        ...

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    async def execute_query(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a backend-native query and return its rows."""

    @abstractmethod
    async def get_subgraph(
        self,
        start_id: str,
        depth: int,
        edge_kinds: Sequence[EdgeKind] | None = None,
        direction: Direction = Direction.both,
    ) -> Graph:
        """Nodes and edges on any path of 1..depth hops from ``start_id``.

        Paths only use edges whose kind is in ``edge_kinds`` (any kind when
        None) and follow them in ``direction``. The start node is part of
        the result whenever it exists; a ``depth`` below 1 returns it alone.
        """

    async def replace_graph(self, graph: Graph) -> None:
        """Clear the store and write ``graph`` in its place.

        This fallback is not atomic: a failure partway leaves the store
        partially written.
        """
        await self.clear_all()
        await self.add_nodes(graph.nodes)
        await self.add_edges(graph.edges)


def edge_kind_filter(kinds: Sequence[EdgeKind] | None) -> frozenset[EdgeKind] | None:
    """Validate ``kinds`` and return them as a set, or None for any kind."""
    if kinds is None:
        return None
    return frozenset(EdgeKind(kind) for kind in kinds)
