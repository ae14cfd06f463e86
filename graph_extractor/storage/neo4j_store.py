"""Neo4j-backed graph store.

Schema:
  - Nodes: (:CodeNode:<Kind> {id, kind, name, path, properties})
  - Relationships: -[:<KIND> {id, properties}]->
  - ``properties`` holds the JSON-encoded property map; ``path`` is copied
    out of it so file lookups can use an index.

Node labels and relationship types come from NodeKind / EdgeKind and are
validated against them before being interpolated into Cypher.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Sequence

from neo4j import AsyncDriver
from neo4j.exceptions import AuthError, DriverError, ServiceUnavailable, SessionExpired

from graph_extractor.core.config import Settings
from graph_extractor.core.neo4j import create_driver
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
from graph_extractor.storage.exceptions import (
    GraphStoreError,
    NotConnectedError,
    StoreConnectionError,
)
from graph_extractor.utils.logging import get_logger

logger = get_logger(__name__)

BASE_LABEL = "CodeNode"

NODE_PROJECTION = "{id: {var}.id, kind: {var}.kind, name: {var}.name, properties: {var}.properties}"
EDGE_PROJECTION = (
    "{id: {var}.id, kind: type({var}), source_id: startNode({var}).id, "
    "target_id: endNode({var}).id, properties: {var}.properties}"
)

CONNECTION_ERRORS = (ServiceUnavailable, SessionExpired, AuthError)
# connect() also rejects driver configuration problems such as an unsupported URI scheme
CONNECT_ERRORS = CONNECTION_ERRORS + (DriverError,)


def _node_map(var: str) -> str:
    return NODE_PROJECTION.replace("{var}", var)


def _edge_map(var: str) -> str:
    return EDGE_PROJECTION.replace("{var}", var)


def _excludes_all(kinds: Sequence[EdgeKind] | None) -> bool:
    # An empty kind list matches no relationship; Cypher has no empty type pattern
    allowed = edge_kind_filter(kinds)
    return allowed is not None and not allowed


def _rel_pattern(kinds: Sequence[EdgeKind] | None) -> str:
    allowed = edge_kind_filter(kinds)
    if allowed is None:
        return ""
    return ":" + "|".join(sorted(str(kind) for kind in allowed))


class Neo4jGraphStore(GraphStore):
    """GraphStore backed by a Neo4j database through the async driver.

    The driver is created on connect() unless one is injected. Single
    add_node / add_edge calls each run in their own auto-commit transaction;
    replace_graph runs the whole clear-and-write in one write transaction.

    Attributes:
        settings: Connection settings used to build the driver
        database: Name of the Neo4j database
    """

    backend_name = "neo4j"

    def __init__(self, settings: Settings, driver: AsyncDriver | None = None):
        self.settings = settings
        self.database = settings.NEO4J_DATABASE
        self._driver = driver
        self._owns_driver = driver is None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        if self._connected:
            return

        uri = self.settings.NEO4J_URI
        try:
            if self._driver is None:
                self._driver = create_driver(self.settings)
            await self._driver.verify_connectivity()
            async with self._driver.session(database=self.database) as session:
                result = await session.run(
                    f"""
                    CREATE CONSTRAINT code_node_id IF NOT EXISTS
                    FOR (n:{BASE_LABEL})
                    REQUIRE n.id IS UNIQUE
                    """
                )
                await result.consume()
                result = await session.run(
                    f"""
                    CREATE INDEX code_node_path IF NOT EXISTS
                    FOR (n:{BASE_LABEL})
                    ON (n.path)
                    """
                )
                await result.consume()
        except ValueError as e:
            raise StoreConnectionError(str(e), self.backend_name) from e
        except CONNECT_ERRORS as e:
            await self._close_driver()
            logger.error(f"Failed to connect to Neo4j at {uri}: {e}")
            raise StoreConnectionError(
                f"Failed to connect to Neo4j: {e}", self.backend_name, uri
            ) from e

        self._connected = True
        logger.info(f"Connected to Neo4j at {uri} (database={self.database})")

    async def disconnect(self) -> None:
        if self._driver is None and not self._connected:
            return
        self._connected = False
        await self._close_driver()
        logger.info("Disconnected from Neo4j")

    async def _close_driver(self) -> None:
        if self._driver is not None and self._owns_driver:
            await self._driver.close()
            self._driver = None

    def _require_driver(self) -> AsyncDriver:
        if not self._connected or self._driver is None:
            raise NotConnectedError(self.backend_name)
        return self._driver

    async def _read(self, query: str, **params: Any) -> list[dict[str, Any]]:
        driver = self._require_driver()
        try:
            async with driver.session(database=self.database) as session:
                result = await session.run(query, **params)
                return await result.data()
        except CONNECTION_ERRORS as e:
            raise StoreConnectionError(
                f"Lost connection to Neo4j: {e}", self.backend_name, self.settings.NEO4J_URI
            ) from e

    async def _write(self, query: str, **params: Any) -> dict[str, Any] | None:
        driver = self._require_driver()
        try:
            async with driver.session(database=self.database) as session:
                result = await session.run(query, **params)
                record = await result.single()
                return record.data() if record is not None else None
        except CONNECTION_ERRORS as e:
            raise StoreConnectionError(
                f"Lost connection to Neo4j: {e}", self.backend_name, self.settings.NEO4J_URI
            ) from e

    async def clear_all(self) -> None:
        await self._write(f"MATCH (n:{BASE_LABEL}) DETACH DELETE n")
        logger.info("Cleared code graph")

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def add_node(self, node: Node) -> None:
        label = NodeKind(node.kind)
        await self._write(
            f"""
            MERGE (n:{BASE_LABEL} {{id: $id}})
            SET n:{label},
                n.kind = $kind,
                n.name = $name,
                n.path = $path,
                n.properties = $properties
            """,
            **_node_row(node),
        )

    async def add_nodes(self, nodes) -> None:
        for label, rows in _node_rows_by_kind(nodes).items():
            await self._write(_UPSERT_NODES.format(base=BASE_LABEL, label=label), rows=rows)

    async def get_node(self, node_id: str) -> Node | None:
        rows = await self._read(
            f"MATCH (n:{BASE_LABEL} {{id: $id}}) RETURN {_node_map('n')} AS node",
            id=node_id,
        )
        return _decode_node(rows[0]["node"]) if rows else None

    async def get_nodes_by_type(
        self, kind: NodeKind, limit: int | None = DEFAULT_NODE_LIMIT
    ) -> list[Node]:
        label = NodeKind(kind)
        query = f"MATCH (n:{BASE_LABEL}:{label}) RETURN {_node_map('n')} AS node"
        params: dict[str, Any] = {}
        if limit is not None:
            query += " LIMIT $limit"
            params["limit"] = max(0, int(limit))
        rows = await self._read(query, **params)
        return [_decode_node(row["node"]) for row in rows]

    async def find_nodes(
        self,
        kind: NodeKind,
        name: str | None = None,
        path: str | None = None,
    ) -> list[Node]:
        label = NodeKind(kind)
        conditions: list[str] = []
        params: dict[str, Any] = {}
        if name is not None:
            conditions.append("n.name = $name")
            params["name"] = name
        if path is not None:
            conditions.append("n.path = $path")
            params["path"] = path

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = await self._read(
            f"""
            MATCH (n:{BASE_LABEL}:{label})
            {where_clause}
            RETURN {_node_map('n')} AS node
            """,
            **params,
        )
        return [_decode_node(row["node"]) for row in rows]

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    async def add_edge(self, edge: Edge) -> None:
        rel_type = EdgeKind(edge.kind)
        record = await self._write(
            f"""
            MATCH (a:{BASE_LABEL} {{id: $source_id}}), (b:{BASE_LABEL} {{id: $target_id}})
            MERGE (a)-[r:{rel_type} {{id: $id}}]->(b)
            SET r.properties = $properties
            RETURN count(r) AS written
            """,
            **_edge_row(edge),
        )
        if not record or not record.get("written"):
            raise GraphStoreError(
                f"Edge {edge.id} references a node that does not exist", self.backend_name
            )

    async def add_edges(self, edges) -> None:
        for rel_type, rows in _edge_rows_by_kind(edges).items():
            record = await self._write(
                _UPSERT_EDGES.format(base=BASE_LABEL, rel_type=rel_type), rows=rows
            )
            written = record.get("written", 0) if record else 0
            if written != len(rows):
                raise GraphStoreError(
                    f"Wrote {written} of {len(rows)} {rel_type} edges; "
                    "some endpoints do not exist",
                    self.backend_name,
                )

    async def get_edge(self, edge_id: str) -> Edge | None:
        rows = await self._read(
            f"""
            MATCH (:{BASE_LABEL})-[r {{id: $id}}]->(:{BASE_LABEL})
            RETURN {_edge_map('r')} AS edge
            """,
            id=edge_id,
        )
        return _decode_edge(rows[0]["edge"]) if rows else None

    async def get_edges_by_type(
        self, kind: EdgeKind, limit: int | None = DEFAULT_NODE_LIMIT
    ) -> list[Edge]:
        rel_type = EdgeKind(kind)
        query = f"MATCH (:{BASE_LABEL})-[r:{rel_type}]->(:{BASE_LABEL}) RETURN {_edge_map('r')} AS edge"
        params: dict[str, Any] = {}
        if limit is not None:
            query += " LIMIT $limit"
            params["limit"] = max(0, int(limit))
        rows = await self._read(query, **params)
        return [_decode_edge(row["edge"]) for row in rows]

    async def get_edges_between(
        self,
        source_id: str,
        target_id: str,
        kinds: Sequence[EdgeKind] | None = None,
    ) -> list[Edge]:
        self._require_driver()
        if _excludes_all(kinds):
            return []
        rows = await self._read(
            f"""
            MATCH (:{BASE_LABEL} {{id: $source_id}})-[r{_rel_pattern(kinds)}]->(:{BASE_LABEL} {{id: $target_id}})
            RETURN {_edge_map('r')} AS edge
            """,
            source_id=source_id,
            target_id=target_id,
        )
        return [_decode_edge(row["edge"]) for row in rows]

    async def get_outgoing_edges(
        self, node_id: str, kinds: Sequence[EdgeKind] | None = None
    ) -> list[Edge]:
        self._require_driver()
        if _excludes_all(kinds):
            return []
        rows = await self._read(
            f"""
            MATCH (:{BASE_LABEL} {{id: $id}})-[r{_rel_pattern(kinds)}]->(:{BASE_LABEL})
            RETURN {_edge_map('r')} AS edge
            """,
            id=node_id,
        )
        return [_decode_edge(row["edge"]) for row in rows]

    async def get_incoming_edges(
        self, node_id: str, kinds: Sequence[EdgeKind] | None = None
    ) -> list[Edge]:
        self._require_driver()
        if _excludes_all(kinds):
            return []
        rows = await self._read(
            f"""
            MATCH (:{BASE_LABEL})-[r{_rel_pattern(kinds)}]->(:{BASE_LABEL} {{id: $id}})
            RETURN {_edge_map('r')} AS edge
            """,
            id=node_id,
        )
        return [_decode_edge(row["edge"]) for row in rows]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def execute_query(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return await self._read(query, **(params or {}))

    async def get_subgraph(
        self,
        start_id: str,
        depth: int,
        edge_kinds: Sequence[EdgeKind] | None = None,
        direction: Direction = Direction.both,
    ) -> Graph:
        depth = int(depth)
        direction = Direction(direction)
        if depth < 1 or _excludes_all(edge_kinds):
            node = await self.get_node(start_id)
            return Graph([node], []) if node else Graph.empty()

        rel = f"[{_rel_pattern(edge_kinds)}*1..{depth}]"
        match direction:
            case Direction.outgoing:
                pattern = f"(start)-{rel}->(:{BASE_LABEL})"
            case Direction.incoming:
                pattern = f"(start)<-{rel}-(:{BASE_LABEL})"
            case _:
                pattern = f"(start)-{rel}-(:{BASE_LABEL})"

        rows = await self._read(
            f"""
            MATCH (start:{BASE_LABEL} {{id: $start_id}})
            OPTIONAL MATCH path = {pattern}
            WITH start, collect(path) AS paths
            WITH start,
                 reduce(ns = [], p IN paths | ns + nodes(p)) AS path_nodes,
                 reduce(rs = [], p IN paths | rs + relationships(p)) AS path_rels
            RETURN {_node_map('start')} AS start,
                   [n IN path_nodes | {_node_map('n')}] AS nodes,
                   [r IN path_rels | {_edge_map('r')}] AS edges
            """,
            start_id=start_id,
        )
        if not rows:
            return Graph.empty()

        row = rows[0]
        nodes: dict[str, Node] = {}
        for raw in [row["start"], *row["nodes"]]:
            if raw["id"] not in nodes:
                nodes[raw["id"]] = _decode_node(raw)
        edges: dict[str, Edge] = {}
        for raw in row["edges"]:
            if raw["id"] not in edges:
                edges[raw["id"]] = _decode_edge(raw)
        return Graph(nodes.values(), edges.values())

    async def replace_graph(self, graph: Graph) -> None:
        """Clear and rewrite the graph inside one write transaction."""
        driver = self._require_driver()
        node_batches = _node_rows_by_kind(graph.nodes)
        edge_batches = _edge_rows_by_kind(graph.edges)

        async def write(tx) -> None:
            result = await tx.run(f"MATCH (n:{BASE_LABEL}) DETACH DELETE n")
            await result.consume()
            for label, rows in node_batches.items():
                result = await tx.run(
                    _UPSERT_NODES.format(base=BASE_LABEL, label=label), rows=rows
                )
                await result.consume()
            for rel_type, rows in edge_batches.items():
                result = await tx.run(
                    _UPSERT_EDGES.format(base=BASE_LABEL, rel_type=rel_type), rows=rows
                )
                record = await result.single()
                written = record["written"] if record else 0
                if written != len(rows):
                    raise GraphStoreError(
                        f"Wrote {written} of {len(rows)} {rel_type} edges; "
                        "some endpoints do not exist",
                        self.backend_name,
                    )

        try:
            async with driver.session(database=self.database) as session:
                await session.execute_write(write)
        except CONNECTION_ERRORS as e:
            raise StoreConnectionError(
                f"Lost connection to Neo4j: {e}", self.backend_name, self.settings.NEO4J_URI
            ) from e

        logger.info(
            f"Replaced code graph: {len(graph.nodes)} nodes, {len(graph.edges)} edges"
        )


_UPSERT_NODES = """
UNWIND $rows AS row
MERGE (n:{base} {{id: row.id}})
SET n:{label},
    n.kind = row.kind,
    n.name = row.name,
    n.path = row.path,
    n.properties = row.properties
"""

_UPSERT_EDGES = """
UNWIND $rows AS row
MATCH (a:{base} {{id: row.source_id}}), (b:{base} {{id: row.target_id}})
MERGE (a)-[r:{rel_type} {{id: row.id}}]->(b)
SET r.properties = row.properties
RETURN count(r) AS written
"""


def _node_row(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "kind": str(NodeKind(node.kind)),
        "name": node.name,
        "path": node.path,
        "properties": encode_properties(node.properties, node.id),
    }


def _edge_row(edge: Edge) -> dict[str, Any]:
    return {
        "id": edge.id,
        "source_id": edge.source_id,
        "target_id": edge.target_id,
        "properties": encode_properties(edge.properties, edge.id),
    }


def _node_rows_by_kind(nodes) -> dict[NodeKind, list[dict[str, Any]]]:
    batches: dict[NodeKind, list[dict[str, Any]]] = defaultdict(list)
    for node in nodes:
        batches[NodeKind(node.kind)].append(_node_row(node))
    return batches


def _edge_rows_by_kind(edges) -> dict[EdgeKind, list[dict[str, Any]]]:
    batches: dict[EdgeKind, list[dict[str, Any]]] = defaultdict(list)
    for edge in edges:
        batches[EdgeKind(edge.kind)].append(_edge_row(edge))
    return batches


def _decode_node(raw: dict[str, Any]) -> Node:
    return Node(
        id=raw["id"],
        kind=NodeKind(raw["kind"]),
        name=raw["name"],
        properties=decode_properties(raw.get("properties"), raw["id"]),
    )


def _decode_edge(raw: dict[str, Any]) -> Edge:
    return Edge(
        id=raw["id"],
        kind=EdgeKind(raw["kind"]),
        source_id=raw["source_id"],
        target_id=raw["target_id"],
        properties=decode_properties(raw.get("properties"), raw["id"]),
    )
