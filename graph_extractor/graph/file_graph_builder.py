"""Building the graph for a single file.

This module turns one ExtractionRecord into the declaration nodes that hang
off the file's File node:

  * File -> Class      (CONTAINS)
  * Class -> Method    (CONTAINS)
  * File -> Function   (CONTAINS)
  * File -> Variable   (CONTAINS)

It also builds the file's export table, mapping each exported name to the
node that declares it, for the cross-file import pass.
"""

from dataclasses import dataclass, field
from typing import Callable

from graph_extractor.graph.graph_types import Edge, EdgeKind, Node, NodeKind
from graph_extractor.parser.entities import (
    ClassInfo,
    ExtractionRecord,
    FunctionInfo,
    MethodInfo,
    VariableInfo,
)

# Key under which a file's default export is recorded in its export table
DEFAULT_EXPORT = "default"


@dataclass
class FileGraph:
    """Nodes and edges created for one file, plus its export table."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    exports: dict[str, str] = field(default_factory=dict)


class FileGraphBuilder:
    """Converts an ExtractionRecord into declaration nodes under a File node.

    Identifiers come from ``new_id``, which the assembler owns so that every
    id in a build is issued from one place.
    """

    def __init__(self, new_id: Callable[[], str]):
        self.new_id = new_id

    def build_file_graph(self, file_node: Node, record: ExtractionRecord) -> FileGraph:
        result = FileGraph()
        declared: dict[str, str] = {}
        file_path = file_node.path

        for cls in record.classes:
            class_node = self._class_node(cls, file_path)
            self._add_child(result, file_node, class_node)
            declared.setdefault(cls.name, class_node.id)
            for method in cls.methods:
                self._add_child(result, class_node, self._method_node(method, cls, file_path))

        for function in record.functions:
            function_node = self._function_node(function, file_path)
            self._add_child(result, file_node, function_node)
            declared.setdefault(function.name, function_node.id)

        for variable in record.variables:
            variable_node = self._variable_node(variable, file_path)
            self._add_child(result, file_node, variable_node)
            declared.setdefault(variable.name, variable_node.id)

        for export in record.exports:
            node_id = declared.get(export.local_name) if export.local_name else None
            if node_id is None:
                continue
            result.exports.setdefault(export.name, node_id)
            if export.is_default:
                result.exports.setdefault(DEFAULT_EXPORT, node_id)

        return result

    def _add_child(self, result: FileGraph, parent: Node, child: Node) -> None:
        result.nodes.append(child)
        result.edges.append(Edge(
            id=self.new_id(),
            kind=EdgeKind.contains,
            source_id=parent.id,
            target_id=child.id,
        ))

    def _class_node(self, cls: ClassInfo, file_path: str) -> Node:
        return Node(
            id=self.new_id(),
            kind=NodeKind.class_,
            name=cls.name,
            properties={
                "filePath": file_path,
                "range": list(cls.range),
                "superClass": cls.super_class,
                "interfaces": list(cls.interfaces),
                "properties": [prop.to_dict() for prop in cls.properties],
                "isExported": cls.is_exported,
                "isAbstract": cls.is_abstract,
            },
        )

    def _method_node(self, method: MethodInfo, cls: ClassInfo, file_path: str) -> Node:
        return Node(
            id=self.new_id(),
            kind=NodeKind.method,
            name=method.name,
            properties={
                "filePath": file_path,
                "className": cls.name,
                "range": list(method.range),
                "returnType": method.return_type,
                "parameters": [p.to_dict() for p in method.parameters],
                "isAsync": method.is_async,
                "isStatic": method.is_static,
                "visibility": str(method.visibility),
            },
        )

    def _function_node(self, function: FunctionInfo, file_path: str) -> Node:
        return Node(
            id=self.new_id(),
            kind=NodeKind.function,
            name=function.name,
            properties={
                "filePath": file_path,
                "range": list(function.range),
                "returnType": function.return_type,
                "parameters": [p.to_dict() for p in function.parameters],
                "isAsync": function.is_async,
                "isExported": function.is_exported,
            },
        )

    def _variable_node(self, variable: VariableInfo, file_path: str) -> Node:
        return Node(
            id=self.new_id(),
            kind=NodeKind.variable,
            name=variable.name,
            properties={
                "filePath": file_path,
                "range": list(variable.range),
                "type": variable.type,
                "isConst": variable.is_const,
                "isExported": variable.is_exported,
            },
        )
