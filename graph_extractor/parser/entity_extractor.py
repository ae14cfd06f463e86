"""
JavaScript/TypeScript entity extractor using Tree-sitter.

This module turns one source file into an ExtractionRecord holding the
file's imports, exports, classes (with methods and fields), functions and
variables. Only module-level declarations are reported: the walk descends
through top-level statements and blocks (`if`, `try`, labels) but never into
expressions, function or class bodies, or TypeScript namespaces.

Tree-sitter node types used:
  - import_statement: `import a, { b as c } from './x'`, `import * as ns from 'x'`
  - export_statement: `export <declaration>`, `export default <expr>`,
    `export { a as b }`, `export * from './x'`, `export = x`
  - class_declaration / abstract_class_declaration with class_heritage
    (extends_clause, implements_clause) and class_body
  - method_definition, public_field_definition (TS), field_definition (JS)
  - function_declaration / generator_function_declaration
  - lexical_declaration (`const`, `let`) and variable_declaration (`var`)

JavaScript Tree-sitter grammar reference:
  https://github.com/tree-sitter/tree-sitter-javascript/blob/master/grammar.js

TypeScript Tree-sitter grammar reference:
  https://github.com/tree-sitter/tree-sitter-typescript/blob/master/common/define-grammar.js
"""

import dataclasses
from pathlib import Path
from typing import Callable

from tree_sitter import Node, Tree

from graph_extractor.parser.entities import (
    ClassInfo,
    ExportInfo,
    ExtractionRecord,
    FunctionInfo,
    ImportInfo,
    ImportKind,
    MethodInfo,
    ParameterInfo,
    PropertyInfo,
    Range,
    VariableInfo,
    Visibility,
)
from graph_extractor.parser.exceptions import ParseError
from graph_extractor.parser.tree_sitter_parser import language_for, parse_source
from graph_extractor.parser.type_context import (
    TypeContext,
    TypeResolver,
    normalize_type_text,
)
from graph_extractor.utils.logging import get_logger

logger = get_logger(__name__)

CLASS_DECLARATIONS = frozenset({"class_declaration", "abstract_class_declaration"})
FUNCTION_DECLARATIONS = frozenset({"function_declaration", "generator_function_declaration"})
VARIABLE_DECLARATIONS = frozenset({"lexical_declaration", "variable_declaration"})

# Statements that can hold module-level declarations; everything else,
# expressions and function, class or namespace bodies included, is not entered
STATEMENT_CONTAINERS = frozenset({
    "program",
    "statement_block",
    "if_statement",
    "else_clause",
    "try_statement",
    "catch_clause",
    "finally_clause",
    "labeled_statement",
})

NAMED_DECLARATIONS = frozenset({
    *CLASS_DECLARATIONS,
    *FUNCTION_DECLARATIONS,
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    "internal_module",
    "function_signature",
})

METHOD_MEMBERS = frozenset({"method_definition", "abstract_method_signature", "method_signature"})
FIELD_MEMBERS = frozenset({"public_field_definition", "field_definition"})
DEFAULT_EXPRESSIONS = frozenset({"class", "function_expression", "function", "generator_function"})


class EntityExtractor:
    """Extracts module-level entities from JavaScript and TypeScript sources.

    The extractor is stateless between files and safe to share across
    threads; every call builds its own walker and type context.

    Args:
        resolve_types: Infer types for unannotated declarations using the
            nearest project config. When False only annotations are reported.
    """

    DEFAULT_MAX_DEPTH = 500

    def __init__(self, resolve_types: bool = True, max_depth: int = DEFAULT_MAX_DEPTH):
        self.resolve_types = resolve_types
        self.max_depth = max_depth

    def extract(self, source_text: str | bytes, file_path: str | Path) -> ExtractionRecord:
        """Extract entities from ``source_text``.

        Args:
            source_text: File content, as text or raw bytes
            file_path: Path of the file; selects the grammar and the project config

        Returns:
            The file's ExtractionRecord

        Raises:
            UnsupportedLanguageError: If the extension has no grammar
            ParseError: If the source does not parse cleanly
        """
        path = Path(file_path)
        content = source_text.encode("utf-8") if isinstance(source_text, str) else source_text
        tree, language = parse_source(content, path)

        resolver = None
        if self.resolve_types:
            resolver = TypeResolver(TypeContext.for_file(path), content)

        walker = _FileWalker(path, language, content, resolver, self.max_depth)
        try:
            return walker.run(tree)
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(
                f"Failed to extract entities: {e}", language, str(path)
            ) from e

    def extract_file(self, file_path: str | Path) -> ExtractionRecord:
        """Read ``file_path`` from disk and extract it."""
        path = Path(file_path)
        language = language_for(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ParseError(f"Failed to read file: {e}", language, str(path)) from e
        return self.extract(content, path)


class _FileWalker:
    """Single-use walker holding the accumulators for one file."""

    def __init__(
        self,
        path: Path,
        language: str,
        content: bytes,
        resolver: TypeResolver | None,
        max_depth: int,
    ):
        self.path = path
        self.language = language
        self.content = content
        self.resolver = resolver
        self.max_depth = max_depth

        self.record = ExtractionRecord(file_path=str(path), language=language)
        # Names exported by `export { a }` or `export default a` elsewhere in the file
        self.locally_exported: set[str] = set()

    def run(self, tree: Tree) -> ExtractionRecord:
        self._walk(tree.root_node, depth=0)
        self._apply_local_exports()
        return self.record

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _walk(self, node: Node, depth: int) -> None:
        depth += 1
        if depth > self.max_depth:
            raise ParseError(
                f"Recursion depth exceeded: {depth} > {self.max_depth}",
                self.language,
                str(self.path),
            )

        if node.type == "import_statement":
            self._handle_import(node)
            return
        if node.type == "export_statement":
            self._handle_export(node)
            return
        if self._handle_declaration(node, exported=False):
            return
        if node.type not in STATEMENT_CONTAINERS:
            return

        for child in node.children:
            self._walk(child, depth)

    def _handle_declaration(self, node: Node, exported: bool) -> bool:
        if node.type in CLASS_DECLARATIONS:
            self.record.classes.append(self._extract_class(node, exported))
            return True
        if node.type in FUNCTION_DECLARATIONS:
            function = self._extract_function(node, exported)
            if function:
                self.record.functions.append(function)
            return True
        if node.type in VARIABLE_DECLARATIONS:
            self.record.variables.extend(self._extract_variables(node, exported))
            return True
        if node.type == "ambient_declaration":
            for child in node.named_children:
                self._handle_declaration(child, exported)
            return True
        return False

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _handle_import(self, node: Node) -> None:
        range_ = _range(node)
        require_clause = _first_child_of_type(node, "import_require_clause")
        if require_clause is not None:
            source = (
                require_clause.child_by_field_name("source")
                or _first_child_of_type(require_clause, "string")
            )
            name_node = _first_child_of_type(require_clause, "identifier")
            if source is not None and name_node is not None:
                self.record.imports.append(ImportInfo(
                    name=self._text(name_node),
                    path=self._string_value(source),
                    is_default=True,
                    range=range_,
                    kind=ImportKind.default,
                ))
            return

        source = node.child_by_field_name("source") or _first_child_of_type(node, "string")
        if source is None:
            return
        path = self._string_value(source)

        clause = _first_child_of_type(node, "import_clause")
        if clause is None:
            self.record.imports.append(ImportInfo(
                name=path,
                path=path,
                is_default=False,
                range=range_,
                kind=ImportKind.side_effect,
            ))
            return

        for child in clause.named_children:
            if child.type == "identifier":
                self.record.imports.append(ImportInfo(
                    name=self._text(child),
                    path=path,
                    is_default=True,
                    range=range_,
                    kind=ImportKind.default,
                ))
            elif child.type == "namespace_import":
                alias = _first_child_of_type(child, "identifier")
                self.record.imports.append(ImportInfo(
                    name="*",
                    path=path,
                    is_default=False,
                    range=range_,
                    kind=ImportKind.namespace,
                    alias=self._text(alias) if alias is not None else None,
                ))
            elif child.type == "named_imports":
                for specifier in child.named_children:
                    if specifier.type != "import_specifier":
                        continue
                    name_node = specifier.child_by_field_name("name")
                    alias_node = specifier.child_by_field_name("alias")
                    if name_node is None:
                        continue
                    self.record.imports.append(ImportInfo(
                        name=self._name_text(name_node),
                        path=path,
                        is_default=False,
                        range=range_,
                        kind=ImportKind.named,
                        alias=self._text(alias_node) if alias_node is not None else None,
                    ))

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def _handle_export(self, node: Node) -> None:
        range_ = _range(node)
        is_default = _has_token(node, "default")
        source_node = node.child_by_field_name("source") or _first_child_of_type(node, "string")
        source = self._string_value(source_node) if source_node is not None else None

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            names = self._declared_names(declaration)
            for name in names:
                self.record.exports.append(ExportInfo(
                    name=name, is_default=is_default, range=range_, local_name=name,
                ))
            self._handle_declaration(declaration, exported=True)
            return

        value = node.child_by_field_name("value")
        if is_default and value is not None:
            self._add_default_export(value, range_)
            return

        if _has_token(node, "="):
            # TypeScript `export = expr`
            expression = next((c for c in node.named_children if c.type != "comment"), None)
            if expression is not None:
                self._add_default_export(expression, range_)
            return

        clause = _first_child_of_type(node, "export_clause")
        if clause is not None:
            for specifier in clause.named_children:
                if specifier.type != "export_specifier":
                    continue
                name_node = specifier.child_by_field_name("name")
                alias_node = specifier.child_by_field_name("alias")
                if name_node is None:
                    continue
                local = self._name_text(name_node)
                exported = self._name_text(alias_node) if alias_node is not None else local
                self.record.exports.append(ExportInfo(
                    name=exported,
                    is_default=exported == "default",
                    range=range_,
                    local_name=None if source else local,
                    source=source,
                ))
                if source is None:
                    self.locally_exported.add(local)
            return

        namespace = _first_child_of_type(node, "namespace_export")
        if namespace is not None:
            alias = next((c for c in namespace.named_children if c.type != "comment"), None)
            self.record.exports.append(ExportInfo(
                name=self._name_text(alias) if alias is not None else "*",
                is_default=False,
                range=range_,
                source=source,
            ))
            return

        if _has_token(node, "*"):
            self.record.exports.append(ExportInfo(
                name="*", is_default=False, range=range_, source=source,
            ))

    def _add_default_export(self, value: Node, range_: Range) -> None:
        if value.type in DEFAULT_EXPRESSIONS:
            # Unnamed class and function expressions are reported as `default`
            name_node = value.child_by_field_name("name")
            name = self._text(name_node) if name_node is not None else "default"
            if value.type == "class":
                self.record.classes.append(self._extract_class(value, exported=True))
            else:
                self.record.functions.append(
                    self._extract_function(value, exported=True, default_name="default")
                )
            self.record.exports.append(ExportInfo(
                name=name, is_default=True, range=range_, local_name=name,
            ))
        elif value.type == "identifier":
            local = self._text(value)
            self.locally_exported.add(local)
            self.record.exports.append(ExportInfo(
                name=local, is_default=True, range=range_, local_name=local,
            ))
        else:
            self.record.exports.append(ExportInfo(
                name="default", is_default=True, range=range_,
            ))

    def _declared_names(self, declaration: Node) -> list[str]:
        if declaration.type in VARIABLE_DECLARATIONS:
            names: list[str] = []
            for declarator in declaration.named_children:
                if declarator.type == "variable_declarator":
                    names.extend(self._binding_names(declarator.child_by_field_name("name")))
            return names
        if declaration.type == "ambient_declaration":
            names = []
            for child in declaration.named_children:
                names.extend(self._declared_names(child))
            return names
        if declaration.type in NAMED_DECLARATIONS:
            name_node = declaration.child_by_field_name("name")
            if name_node is not None:
                return [self._text(name_node)]
        return []

    def _apply_local_exports(self) -> None:
        if not self.locally_exported:
            return
        exported = self.locally_exported
        self.record.classes = [
            dataclasses.replace(c, is_exported=True) if c.name in exported else c
            for c in self.record.classes
        ]
        self.record.functions = [
            dataclasses.replace(f, is_exported=True) if f.name in exported else f
            for f in self.record.functions
        ]
        self.record.variables = [
            dataclasses.replace(v, is_exported=True) if v.name in exported else v
            for v in self.record.variables
        ]

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    def _extract_class(self, node: Node, exported: bool) -> ClassInfo:
        name_node = node.child_by_field_name("name")
        name = self._text(name_node) if name_node is not None else "default"

        super_class: str | None = None
        interfaces: list[str] = []
        heritage = _first_child_of_type(node, "class_heritage")
        if heritage is not None:
            super_class, interfaces = self._heritage(heritage)

        methods: list[MethodInfo] = []
        properties: list[PropertyInfo] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                if member.type in METHOD_MEMBERS:
                    method = self._extract_method(member)
                    if method:
                        methods.append(method)
                elif member.type in FIELD_MEMBERS:
                    prop = self._extract_property(member)
                    if prop:
                        properties.append(prop)

        return ClassInfo(
            name=name,
            super_class=super_class,
            interfaces=interfaces,
            methods=methods,
            properties=properties,
            range=_range(node),
            is_exported=exported,
            is_abstract=node.type == "abstract_class_declaration",
        )

    def _heritage(self, heritage: Node) -> tuple[str | None, list[str]]:
        super_class: str | None = None
        interfaces: list[str] = []

        extends_clause = _first_child_of_type(heritage, "extends_clause")
        implements_clause = _first_child_of_type(heritage, "implements_clause")
        if extends_clause is None and implements_clause is None:
            # JavaScript: class_heritage is `extends <expression>`
            expression = next((c for c in heritage.named_children if c.type != "comment"), None)
            if expression is not None:
                super_class = self._text(expression)
            return super_class, interfaces

        if extends_clause is not None:
            value = extends_clause.child_by_field_name("value")
            if value is not None:
                super_class = self._text(value)
        if implements_clause is not None:
            interfaces = [
                normalize_type_text(self._text(t))
                for t in implements_clause.named_children
                if t.type != "comment"
            ]
        return super_class, interfaces

    def _extract_method(self, node: Node) -> MethodInfo | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = self._text(name_node)
        return MethodInfo(
            name=name,
            parameters=self._extract_parameters(node.child_by_field_name("parameters")),
            return_type=self._resolve(
                lambda: self.resolver.return_type(node),
                node.child_by_field_name("return_type"),
            ),
            is_async=_has_token(node, "async"),
            is_static=_has_token(node, "static"),
            visibility=self._visibility(node, name_node),
            range=_range(node),
        )

    def _extract_property(self, node: Node) -> PropertyInfo | None:
        name_node = node.child_by_field_name("name") or node.child_by_field_name("property")
        if name_node is None:
            return None
        readonly = _has_token(node, "readonly")
        return PropertyInfo(
            name=self._text(name_node),
            type=self._resolve(
                lambda: self.resolver.variable_type(node, is_const=readonly),
                node.child_by_field_name("type"),
            ),
            is_static=_has_token(node, "static"),
            visibility=self._visibility(node, name_node),
            range=_range(node),
        )

    def _visibility(self, member: Node, name_node: Node) -> Visibility:
        if name_node.type == "private_property_identifier":
            return Visibility.private
        modifier = _first_child_of_type(member, "accessibility_modifier")
        if modifier is not None:
            return Visibility(self._text(modifier))
        return Visibility.public

    # ------------------------------------------------------------------
    # Functions and parameters
    # ------------------------------------------------------------------

    def _extract_function(
        self, node: Node, exported: bool, default_name: str | None = None
    ) -> FunctionInfo | None:
        name_node = node.child_by_field_name("name")
        if name_node is None and default_name is None:
            return None
        return FunctionInfo(
            name=self._text(name_node) if name_node is not None else default_name,
            parameters=self._extract_parameters(node.child_by_field_name("parameters")),
            return_type=self._resolve(
                lambda: self.resolver.return_type(node),
                node.child_by_field_name("return_type"),
            ),
            is_async=_has_token(node, "async"),
            is_exported=exported,
            range=_range(node),
        )

    def _extract_parameters(self, parameters: Node | None) -> list[ParameterInfo]:
        if parameters is None:
            return []
        return [
            self._extract_parameter(p)
            for p in parameters.named_children
            if p.type != "comment"
        ]

    def _extract_parameter(self, node: Node) -> ParameterInfo:
        is_optional = node.type == "optional_parameter"
        type_node: Node | None = None
        value: Node | None = None
        pattern: Node | None = node

        if node.type in ("required_parameter", "optional_parameter"):
            pattern = node.child_by_field_name("pattern") or node
            type_node = node.child_by_field_name("type")
            value = node.child_by_field_name("value")

        if pattern.type == "assignment_pattern":
            value = pattern.child_by_field_name("right")
            pattern = pattern.child_by_field_name("left") or pattern

        is_rest = pattern.type == "rest_pattern"
        if is_rest:
            pattern = next((c for c in pattern.named_children if c.type != "comment"), pattern)

        default_value = self._text(value) if value is not None else None
        if value is not None:
            is_optional = True

        type_text = self._annotation(type_node)
        if type_text is None and value is not None:
            type_text = self._resolve(
                lambda: self.resolver.infer_expression(value, literal=False), None
            )

        return ParameterInfo(
            name=self._text(pattern),
            type=type_text,
            default_value=default_value,
            is_optional=is_optional,
            is_rest=is_rest,
        )

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def _extract_variables(self, node: Node, exported: bool) -> list[VariableInfo]:
        kind_node = node.child_by_field_name("kind")
        is_const = kind_node is not None and self._text(kind_node) == "const"

        variables: list[VariableInfo] = []
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue

            if name_node.type == "identifier":
                var_type = self._resolve(
                    lambda: self.resolver.variable_type(declarator, is_const),
                    declarator.child_by_field_name("type"),
                )
                names = [self._text(name_node)]
            else:
                var_type = self._annotation(declarator.child_by_field_name("type"))
                names = self._binding_names(name_node)

            for name in names:
                variables.append(VariableInfo(
                    name=name,
                    type=var_type if len(names) == 1 else None,
                    is_const=is_const,
                    is_exported=exported,
                    range=_range(declarator),
                ))
        return variables

    def _binding_names(self, pattern: Node | None) -> list[str]:
        """Identifiers bound by a declarator name, including destructuring."""
        if pattern is None:
            return []
        if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
            return [self._text(pattern)]
        if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
            return self._binding_names(pattern.child_by_field_name("left"))
        if pattern.type == "pair_pattern":
            return self._binding_names(pattern.child_by_field_name("value"))
        names: list[str] = []
        if pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
            for child in pattern.named_children:
                names.extend(self._binding_names(child))
        return names

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, resolve: Callable[[], str | None], annotation: Node | None) -> str | None:
        """Prefer the resolved type, falling back to the written annotation."""
        fallback = self._annotation(annotation)
        if self.resolver is None:
            return fallback
        try:
            return resolve() or fallback
        except Exception as e:
            logger.debug(f"Type resolution failed in {self.path}, using annotation: {e}")
            return fallback

    def _annotation(self, type_node: Node | None) -> str | None:
        if type_node is None:
            return None
        return normalize_type_text(self._text(type_node)) or None

    def _text(self, node: Node) -> str:
        return self.content[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def _string_value(self, node: Node) -> str:
        text = self._text(node)
        if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
            return text[1:-1]
        return text

    def _name_text(self, node: Node) -> str:
        if node.type == "string":
            return self._string_value(node)
        return self._text(node)


def _range(node: Node) -> Range:
    return (node.start_byte, node.end_byte)


def _first_child_of_type(node: Node, node_type: str) -> Node | None:
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _has_token(node: Node, token: str) -> bool:
    return any(child.type == token for child in node.children)
