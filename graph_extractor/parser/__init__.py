"""
Entity extraction for JavaScript and TypeScript sources.

Public API:
  - EntityExtractor: turns one file into an ExtractionRecord
  - ExtractionRecord and the *Info dataclasses it holds
  - TypeContext / TypeResolver: per-file type resolution

Exceptions:
  - ParseError: the file could not be read or parsed
  - UnsupportedLanguageError: the file extension has no grammar

Usage:
    from graph_extractor.parser import EntityExtractor

    record = EntityExtractor().extract(source_text, "src/app.ts")
    for cls in record.classes:
        print(cls.name, [m.name for m in cls.methods])
"""

from .entities import (
    ClassInfo,
    ExportInfo,
    ExtractionRecord,
    FunctionInfo,
    ImportInfo,
    ImportKind,
    MethodInfo,
    ParameterInfo,
    PropertyInfo,
    VariableInfo,
    Visibility,
)
from .entity_extractor import EntityExtractor
from .exceptions import ParseError, UnsupportedLanguageError
from .tree_sitter_parser import SUPPORTED_EXTENSIONS, support_file
from .type_context import TypeContext, TypeResolver

__all__ = [
    "EntityExtractor",
    "TypeContext",
    "TypeResolver",
    "support_file",
    "SUPPORTED_EXTENSIONS",
    # Data classes
    "ExtractionRecord",
    "ImportInfo",
    "ImportKind",
    "ExportInfo",
    "ClassInfo",
    "MethodInfo",
    "PropertyInfo",
    "FunctionInfo",
    "ParameterInfo",
    "VariableInfo",
    "Visibility",
    # Exceptions
    "ParseError",
    "UnsupportedLanguageError",
]
