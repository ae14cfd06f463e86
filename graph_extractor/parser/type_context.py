"""
Lightweight type resolution for declarations.

A TypeContext is built for each file on its own. It locates the nearest
``tsconfig.json`` / ``jsconfig.json`` above the file and reads the handful of
compiler options that change inference. Without a config file the default
options apply (non-strict analysis).

TypeResolver turns declarations into type strings:
  - annotations are normalized (leading ``:`` dropped, whitespace collapsed)
  - unannotated variables are inferred from their initializer, keeping
    literal types for ``const`` and widening for ``let`` / ``var``
  - unannotated functions are inferred from their return statements, wrapped
    in ``Promise<...>`` when async and ``void`` when nothing is returned

Inference is best effort. ``None`` means the type is unknown.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path

from tree_sitter import Node

from graph_extractor.utils.logging import get_logger

logger = get_logger(__name__)

PROJECT_CONFIG_NAMES = ("tsconfig.json", "jsconfig.json")

# Nodes whose bodies belong to a different function scope
FUNCTION_SCOPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
    "class_declaration",
    "class",
})

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")

_COMPARISON_OPERATORS = frozenset(
    {"==", "===", "!=", "!==", "<", ">", "<=", ">=", "instanceof", "in"}
)
_ARITHMETIC_OPERATORS = frozenset(
    {"-", "*", "/", "%", "**", "&", "|", "^", "<<", ">>", ">>>"}
)


@dataclass(frozen=True)
class CompilerOptions:
    strict: bool = False
    strict_null_checks: bool = False

    @classmethod
    def from_config(cls, config: dict) -> "CompilerOptions":
        options = config.get("compilerOptions") or {}
        if not isinstance(options, dict):
            return cls()
        strict = bool(options.get("strict", False))
        return cls(
            strict=strict,
            strict_null_checks=bool(options.get("strictNullChecks", strict)),
        )


@dataclass(frozen=True)
class TypeContext:
    """Compiler options in effect for one file.

    Attributes:
        file_path: The file this context was built for
        config_path: The project config that applied, or None for defaults
        options: The options read from it
    """

    file_path: Path
    config_path: Path | None
    options: CompilerOptions

    @classmethod
    def for_file(cls, file_path: Path) -> "TypeContext":
        config_path = find_project_config(file_path)
        if config_path is None:
            return cls(file_path, None, CompilerOptions())

        try:
            config = load_project_config(config_path)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable project config {config_path}: {e}")
            return cls(file_path, None, CompilerOptions())

        return cls(file_path, config_path, CompilerOptions.from_config(config))


def find_project_config(file_path: Path) -> Path | None:
    """Walk up from ``file_path`` to the nearest project config."""
    directory = file_path.resolve().parent
    for candidate_dir in (directory, *directory.parents):
        for name in PROJECT_CONFIG_NAMES:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate
    return None


def load_project_config(config_path: Path) -> dict:
    """Read a project config, tolerating comments and trailing commas.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a JSON object.
    """
    text = config_path.read_text(encoding="utf-8")
    data = json.loads(_TRAILING_COMMA_RE.sub(r"\1", _strip_json_comments(text)))
    if not isinstance(data, dict):
        raise ValueError("project config must be a JSON object")
    return data


def _strip_json_comments(text: str) -> str:
    out: list[str] = []
    i = 0
    in_string = False
    while i < len(text):
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < len(text):
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = len(text) if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = len(text) if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def normalize_type_text(text: str) -> str:
    text = text.strip()
    if text.startswith(":"):
        text = text[1:]
    return _WHITESPACE_RE.sub(" ", text).strip()


class TypeResolver:
    """Resolves declaration types within one file."""

    def __init__(self, context: TypeContext, source: bytes):
        self.context = context
        self.source = source

    def _text(self, node: Node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def annotation(self, type_node: Node | None) -> str | None:
        if type_node is None:
            return None
        return normalize_type_text(self._text(type_node)) or None

    def variable_type(self, declarator: Node, is_const: bool) -> str | None:
        annotated = self.annotation(declarator.child_by_field_name("type"))
        if annotated:
            return annotated
        value = declarator.child_by_field_name("value")
        if value is None:
            return None if is_const else "any"
        return self.infer_expression(value, literal=is_const)

    def return_type(self, function_node: Node) -> str | None:
        annotated = self.annotation(function_node.child_by_field_name("return_type"))
        if annotated:
            return annotated

        if any(child.type == "*" for child in function_node.children):
            return None

        is_async = any(child.type == "async" for child in function_node.children)
        body = function_node.child_by_field_name("body")
        if body is None:
            inferred = None
        elif body.type == "statement_block":
            inferred = self._infer_from_returns(body)
        else:
            inferred = self.infer_expression(body, literal=False)

        if inferred is None:
            return None
        if is_async and not inferred.startswith("Promise<"):
            return f"Promise<{inferred}>"
        return inferred

    def _infer_from_returns(self, body: Node) -> str | None:
        returns: list[Node] = []
        self._collect_returns(body, returns)

        types: list[str] = []
        for statement in returns:
            value = next((c for c in statement.named_children if c.type != "comment"), None)
            if value is None:
                inferred = "undefined"
            elif self._is_nullish(value):
                inferred = "null" if value.type == "null" else "undefined"
            else:
                inferred = self.infer_expression(value, literal=False)
            if inferred is None:
                return None
            if inferred not in types:
                types.append(inferred)

        if not types or types == ["undefined"]:
            return "void"
        if not self.context.options.strict_null_checks:
            types = [t for t in types if t not in ("null", "undefined")] or ["any"]
        return " | ".join(types)

    def _is_nullish(self, node: Node) -> bool:
        if node.type in ("null", "undefined"):
            return True
        return node.type == "identifier" and self._text(node) == "undefined"

    def _collect_returns(self, node: Node, returns: list[Node]) -> None:
        for child in node.named_children:
            if child.type == "return_statement":
                returns.append(child)
            elif child.type not in FUNCTION_SCOPES:
                self._collect_returns(child, returns)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def infer_expression(self, node: Node, literal: bool) -> str | None:
        kind = node.type
        if kind == "number":
            return self._text(node) if literal else "number"
        if kind == "string":
            return self._string_literal(node) if literal else "string"
        if kind == "template_string":
            return "string"
        if kind in ("true", "false"):
            return kind if literal else "boolean"
        if self._is_nullish(node):
            if self.context.options.strict_null_checks:
                return "null" if kind == "null" else "undefined"
            return "any"
        if kind == "regex":
            return "RegExp"
        if kind == "new_expression":
            return self._constructed_type(node)
        if kind in ("as_expression", "satisfies_expression") and node.named_child_count:
            expression = node.named_children[0]
            if kind == "as_expression":
                if any(child.type == "const" for child in node.children):
                    return self.infer_expression(expression, literal=True)
                if node.named_child_count >= 2:
                    return normalize_type_text(self._text(node.named_children[-1]))
            return self.infer_expression(expression, literal)
        if kind == "parenthesized_expression" and node.named_child_count:
            return self.infer_expression(node.named_children[0], literal)
        if kind == "array":
            return self._array_type(node)
        if kind == "object":
            return self._object_type(node)
        if kind in ("arrow_function", "function_expression", "function"):
            return self._function_signature(node)
        if kind == "await_expression" and node.named_child_count:
            inner = self.infer_expression(node.named_children[0], literal=False)
            if inner and inner.startswith("Promise<") and inner.endswith(">"):
                return inner[len("Promise<"):-1]
            return inner
        if kind == "unary_expression":
            return self._unary_type(node)
        if kind == "binary_expression":
            return self._binary_type(node)
        return None

    def _string_literal(self, node: Node) -> str:
        text = self._text(node)
        if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
            inner = text[1:-1].replace('"', '\\"')
            return f'"{inner}"'
        return text

    def _constructed_type(self, node: Node) -> str | None:
        constructor = node.child_by_field_name("constructor")
        if constructor is None or constructor.type not in ("identifier", "member_expression"):
            return None
        name = self._text(constructor)
        type_arguments = node.child_by_field_name("type_arguments")
        if type_arguments is not None:
            name += normalize_type_text(self._text(type_arguments))
        return name

    def _array_type(self, node: Node) -> str:
        element_types: list[str] = []
        for element in node.named_children:
            if element.type == "comment":
                continue
            inferred = self.infer_expression(element, literal=False)
            if inferred is None:
                return "any[]"
            if inferred not in element_types:
                element_types.append(inferred)
        if not element_types:
            return "never[]" if self.context.options.strict else "any[]"
        if len(element_types) == 1:
            return f"{element_types[0]}[]"
        return f"({' | '.join(element_types)})[]"

    def _object_type(self, node: Node) -> str:
        members: list[str] = []
        for child in node.named_children:
            if child.type == "pair":
                key = child.child_by_field_name("key")
                value = child.child_by_field_name("value")
                if key is None or value is None:
                    return "object"
                inferred = self.infer_expression(value, literal=False) or "any"
                members.append(f"{self._text(key)}: {inferred}")
            elif child.type == "comment":
                continue
            else:
                return "object"
        if not members:
            return "{}"
        return "{ " + "; ".join(members) + " }"

    def _function_signature(self, node: Node) -> str:
        parameters = node.child_by_field_name("parameters")
        if parameters is None:
            # `x => x` has a single bare parameter
            parameter = node.child_by_field_name("parameter")
            params_text = f"{self._text(parameter)}: any" if parameter is not None else ""
        else:
            params_text = ", ".join(
                self._parameter_signature(p) for p in parameters.named_children
                if p.type != "comment"
            )
        return_type = self.return_type(node) or "any"
        return f"({params_text}) => {return_type}"

    def _parameter_signature(self, parameter: Node) -> str:
        type_node = parameter.child_by_field_name("type")
        pattern = parameter.child_by_field_name("pattern") or parameter
        name = self._text(pattern)
        if parameter.type == "optional_parameter":
            name += "?"
        return f"{name}: {self.annotation(type_node) or 'any'}"

    def _unary_type(self, node: Node) -> str | None:
        operator = node.child_by_field_name("operator")
        op = self._text(operator) if operator is not None else ""
        if op == "!":
            return "boolean"
        if op == "typeof":
            return "string"
        if op in ("-", "+", "~"):
            return "number"
        if op == "void":
            return "undefined" if self.context.options.strict_null_checks else "any"
        return None

    def _binary_type(self, node: Node) -> str | None:
        operator = node.child_by_field_name("operator")
        op = self._text(operator) if operator is not None else ""
        if op in _COMPARISON_OPERATORS:
            return "boolean"
        if op in _ARITHMETIC_OPERATORS:
            return "number"
        left_node = node.child_by_field_name("left")
        right_node = node.child_by_field_name("right")
        if op == "+" and left_node is not None and right_node is not None:
            left = self.infer_expression(left_node, literal=False)
            right = self.infer_expression(right_node, literal=False)
            if "string" in (left, right):
                return "string"
            if left == right == "number":
                return "number"
        return None
