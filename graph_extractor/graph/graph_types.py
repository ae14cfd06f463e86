"""Type definitions for nodes and edges in the code graph."""

import dataclasses
import enum
from typing import Any, Iterable


class NodeKind(enum.StrEnum):
    """Kinds of code entities. The value doubles as the backend label."""

    repository = "Repository"
    directory = "Directory"
    file = "File"
    module = "Module"
    class_ = "Class"
    method = "Method"
    function = "Function"
    statement = "Statement"
    expression = "Expression"
    variable = "Variable"
    api_endpoint = "APIEndpoint"
    message_event = "MessageEvent"
    database_table = "DatabaseTable"
    error_definition = "ErrorDefinition"


class EdgeKind(enum.StrEnum):
    """Relationship kinds. The value doubles as the backend relationship type.

    Only ``contains`` and ``imports`` are produced by extraction; the rest
    are written by other producers and read by the query engine.
    """

    contains = "CONTAINS"
    imports = "IMPORTS"
    exports = "EXPORTS"
    calls = "CALLS"
    throws = "THROWS"
    handled_by = "HANDLED_BY"
    depends_on = "DEPENDS_ON"


class Direction(enum.StrEnum):
    """Which orientation of an edge a traversal may follow."""

    outgoing = "outgoing"
    incoming = "incoming"
    both = "both"


@dataclasses.dataclass(frozen=True)
class Node:
    """A node in the code graph

    Attributes:
        id: identifier unique within one build
        kind: the entity kind
        name: display name (file basename, class name, ...)
        properties: JSON-representable attributes, e.g. ``path`` or ``range``
    """

    id: str
    kind: NodeKind
    name: str
    properties: dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def path(self) -> str | None:
        return self.properties.get("path")


@dataclasses.dataclass(frozen=True)
class Edge:
    """A directed, typed relationship between two nodes

    Attributes:
        id: identifier unique within one build
        kind: the relationship kind
        source_id: id of the node the edge starts from
        target_id: id of the node the edge points to
        properties: JSON-representable attributes
    """

    id: str
    kind: EdgeKind
    source_id: str
    target_id: str
    properties: dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class Graph:
    """A set of nodes and edges returned by a build or a query."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    def __init__(self, nodes: Iterable[Node] = (), edges: Iterable[Edge] = ()):
        object.__setattr__(self, "nodes", tuple(nodes))
        object.__setattr__(self, "edges", tuple(edges))

    @classmethod
    def empty(cls) -> "Graph":
        return cls()

    def is_empty(self) -> bool:
        return not self.nodes and not self.edges

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def nodes_of_kind(self, kind: NodeKind) -> list[Node]:
        return [node for node in self.nodes if node.kind == kind]

    def edges_of_kind(self, kind: EdgeKind) -> list[Edge]:
        return [edge for edge in self.edges if edge.kind == kind]
