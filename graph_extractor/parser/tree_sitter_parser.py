"""
Tree-sitter-based parsing of JavaScript and TypeScript sources.

File types are detected from the path suffix and mapped to a grammar from
tree_sitter_language_pack. Parsing returns the syntax tree together with the
grammar name so callers can report it in errors.
"""

from typing import Tuple
from tree_sitter_language_pack import get_parser as get_ts_parser
from tree_sitter import Tree
from graph_extractor.parser.exceptions import ParseError, UnsupportedLanguageError
from graph_extractor.parser.file_types import FileTypes
from pathlib import Path

FILE_TYPE_TO_LANG = {
    FileTypes.TYPESCRIPT: "typescript",
    FileTypes.TSX: "tsx",
    FileTypes.JAVASCRIPT: "javascript",
}

SUPPORTED_EXTENSIONS = [".ts", ".mts", ".cts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"]


def support_file(file: Path) -> bool:
    """Check if the file has a grammar."""
    file_type = FileTypes.from_path(file)
    return file_type in FILE_TYPE_TO_LANG


def language_for(file: Path) -> str:
    """Return the grammar name for ``file``.

    Raises:
        UnsupportedLanguageError: If the extension has no grammar.
    """
    lang = FILE_TYPE_TO_LANG.get(FileTypes.from_path(file))
    if lang is None:
        raise UnsupportedLanguageError(
            file.suffix,
            file_path=str(file),
            supported_extensions=SUPPORTED_EXTENSIONS,
        )
    return lang


def parse_source(source: bytes, file: Path) -> Tuple[Tree, str]:
    """Parse in-memory source with the grammar chosen by ``file``'s suffix.

    Args:
        source: Raw source bytes.
        file: Path used for grammar selection and error reporting.

    Returns:
        Tuple of (parsed Tree-sitter Tree, language string).

    Raises:
        UnsupportedLanguageError: If the file type is not supported.
        ParseError: If parsing fails or the tree contains syntax errors.
    """
    lang = language_for(file)

    try:
        tree = get_ts_parser(lang).parse(source)
    except Exception as e:
        raise ParseError(f"Failed to parse source: {e}", lang, str(file)) from e

    if tree.root_node.has_error:
        raise ParseError(
            f"Syntax error near {_first_error_position(tree)}", lang, str(file)
        )
    return tree, lang


def _first_error_position(tree: Tree) -> str:
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            row, column = node.start_point
            return f"line {row + 1}, column {column + 1}"
        if node.has_error:
            stack.extend(reversed(node.children))
    return "unknown position"
