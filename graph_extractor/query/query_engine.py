"""Read-only queries over the code graph.

Three query shapes are supported, each resolving a start node (or a set of
error nodes) and expanding around it through the store's traversal
primitives:

  - query_structure: what is inside / around a function, class or file
  - trace_dependencies: what a file imports, or what imports it
  - find_error_paths: which code throws an error and where it is handled

Every query first makes sure the store is reachable and returns an empty
Graph when nothing matches. None of them write to the store.
"""

from typing import Sequence

from graph_extractor.graph.graph_types import (
    Direction,
    Edge,
    EdgeKind,
    Graph,
    Node,
    NodeKind,
)
from graph_extractor.graph.paths import normalize_path
from graph_extractor.query.exceptions import AmbiguousResolutionError
from graph_extractor.query.resolution import (
    AmbiguityPolicy,
    Ambiguous,
    NotFound,
    Resolution,
    Unique,
    resolution_from,
)
from graph_extractor.storage.base import GraphStore
from graph_extractor.storage.exceptions import NotConnectedError, StoreConnectionError
from graph_extractor.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_STRUCTURE_DEPTH = 2
DEFAULT_TRACE_DEPTH = 3
DEFAULT_DEPENDENCY_KINDS = (EdgeKind.imports, EdgeKind.depends_on)

# Node kinds that can throw an error
THROWING_KINDS = frozenset({NodeKind.function, NodeKind.method})


class QueryEngine:
    """Answers structure, dependency and error-path queries against a GraphStore."""

    def __init__(self, store: GraphStore):
        self.store = store

    async def ensure_connected(self) -> None:
        """Probe the store with a bounded read and reconnect if it fails.

        Raises:
            StoreConnectionError: If reconnecting fails.
        """
        try:
            await self.store.get_nodes_by_type(NodeKind.repository, 1)
        except NotConnectedError:
            logger.info("Graph store not connected, connecting")
            await self.store.connect()
        except StoreConnectionError as e:
            logger.warning(f"Graph store health check failed, reconnecting: {e}")
            await self.store.disconnect()
            await self.store.connect()

    async def resolve_start_node(
        self,
        file_path: str | None = None,
        function_name: str | None = None,
        class_name: str | None = None,
    ) -> Resolution:
        """Find the start node for a structure query.

        A function name takes precedence over a class name, which takes
        precedence over the file path. When a name matches declarations in
        several files and ``file_path`` is given, matches in that file win.
        """
        path = normalize_path(file_path) if file_path else None

        if function_name:
            candidates = await self.store.find_nodes(NodeKind.function, name=function_name)
        elif class_name:
            candidates = await self.store.find_nodes(NodeKind.class_, name=class_name)
        elif path:
            return resolution_from(await self.store.find_nodes(NodeKind.file, path=path))
        else:
            return NotFound()

        if len(candidates) > 1 and path:
            in_file = [c for c in candidates if c.properties.get("filePath") == path]
            if in_file:
                candidates = in_file
        return resolution_from(candidates)

    async def query_structure(
        self,
        file_path: str | None = None,
        function_name: str | None = None,
        class_name: str | None = None,
        depth: int = DEFAULT_STRUCTURE_DEPTH,
        ambiguity: AmbiguityPolicy = AmbiguityPolicy.FIRST,
    ) -> Graph:
        """Subgraph of ``depth`` hops around a function, class or file.

        Raises:
            AmbiguousResolutionError: If several nodes match and ``ambiguity``
                is AmbiguityPolicy.RAISE.
        """
        await self.ensure_connected()

        resolution = await self.resolve_start_node(file_path, function_name, class_name)
        match resolution:
            case NotFound():
                return Graph.empty()
            case Unique(node=node):
                start = node
            case Ambiguous(candidates=candidates) as ambiguous:
                target = function_name or class_name or file_path or ""
                if AmbiguityPolicy(ambiguity) == AmbiguityPolicy.RAISE:
                    raise AmbiguousResolutionError(
                        str(candidates[0].kind), target, [c.id for c in candidates]
                    )
                logger.warning(
                    f"{len(candidates)} {candidates[0].kind} nodes match '{target}', "
                    f"using the first ({ambiguous.first.id})"
                )
                start = ambiguous.first

        return await self.store.get_subgraph(start.id, depth)

    async def trace_dependencies(
        self,
        source_path: str,
        direction: Direction = Direction.both,
        edge_kinds: Sequence[EdgeKind] | None = None,
        max_depth: int = DEFAULT_TRACE_DEPTH,
    ) -> Graph:
        """Files reachable from ``source_path`` over dependency edges.

        ``outgoing`` follows what the file depends on, ``incoming`` what
        depends on it, ``both`` either.
        """
        await self.ensure_connected()

        files = await self.store.find_nodes(NodeKind.file, path=normalize_path(source_path))
        if not files:
            return Graph.empty()

        kinds = list(edge_kinds) if edge_kinds is not None else list(DEFAULT_DEPENDENCY_KINDS)
        return await self.store.get_subgraph(
            files[0].id,
            max_depth,
            edge_kinds=kinds,
            direction=Direction(direction),
        )

    async def find_error_paths(
        self,
        error_message: str | None = None,
        function_name: str | None = None,
        repository_name: str | None = None,
    ) -> Graph:
        """Error definitions with the code that throws and handles them.

        Args:
            error_message: Substring matched against the error's name or its
                ``message`` property. All errors when omitted.
            function_name: Keep only errors thrown by a function or method
                with this name.
            repository_name: Return nothing unless the graph was built for a
                repository with this name.
        """
        await self.ensure_connected()

        if repository_name:
            repositories = await self.store.find_nodes(NodeKind.repository, name=repository_name)
            if not repositories:
                return Graph.empty()

        error_nodes = await self.store.get_nodes_by_type(NodeKind.error_definition, limit=None)
        if error_message:
            error_nodes = [n for n in error_nodes if _matches_message(n, error_message)]

        nodes: dict[str, Node] = {}
        edges: dict[str, Edge] = {}

        for error_node in error_nodes:
            throws = await self.store.get_incoming_edges(error_node.id, [EdgeKind.throws])
            throwers = await self._endpoints([e.source_id for e in throws])
            if function_name and not any(
                t.name == function_name and t.kind in THROWING_KINDS for t in throwers
            ):
                continue

            handled_by = await self.store.get_outgoing_edges(error_node.id, [EdgeKind.handled_by])
            handlers = await self._endpoints([e.target_id for e in handled_by])

            nodes.setdefault(error_node.id, error_node)
            for node in (*throwers, *handlers):
                nodes.setdefault(node.id, node)
            for edge in (*throws, *handled_by):
                edges.setdefault(edge.id, edge)

        return Graph(nodes.values(), edges.values())

    async def _endpoints(self, node_ids: list[str]) -> list[Node]:
        found: list[Node] = []
        for node_id in dict.fromkeys(node_ids):
            node = await self.store.get_node(node_id)
            if node is not None:
                found.append(node)
        return found


def _matches_message(node: Node, needle: str) -> bool:
    if needle in node.name:
        return True
    message = node.properties.get("message")
    return isinstance(message, str) and needle in message
