"""Code graph data model.

The assembler lives in ``graph_extractor.graph.assembler`` and is not
re-exported here, so storage backends can import the model without pulling
in the build pipeline.
"""

from .graph_types import Direction, Edge, EdgeKind, Graph, Node, NodeKind

__all__ = [
    "Direction",
    "Edge",
    "EdgeKind",
    "Graph",
    "Node",
    "NodeKind",
]
