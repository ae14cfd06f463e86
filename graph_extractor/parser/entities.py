"""Per-file extraction results.

These mirror the declarations found at module and class level of one source
file. Ranges are ``(start_byte, end_byte)`` pairs into the source.
"""

from dataclasses import dataclass, field
import enum

Range = tuple[int, int]


class ImportKind(enum.StrEnum):
    default = "default"
    named = "named"
    namespace = "namespace"
    side_effect = "side_effect"


class Visibility(enum.StrEnum):
    public = "public"
    private = "private"
    protected = "protected"


@dataclass(frozen=True)
class ImportInfo:
    """One imported binding.

    Attributes:
        name: Imported name. ``*`` for namespace imports, the module path for
            side-effect imports, ``default`` is never used as a name.
        path: Module specifier exactly as written.
        is_default: True for a default import.
        range: Byte range of the whole import statement.
        kind: How the binding is brought in.
        alias: Local name when it differs from ``name``.
    """

    name: str
    path: str
    is_default: bool
    range: Range
    kind: ImportKind = ImportKind.named
    alias: str | None = None

    @property
    def local_name(self) -> str:
        return self.alias or self.name

    @property
    def is_relative(self) -> bool:
        return self.path.startswith(("./", "../", "/")) or self.path in (".", "..")


@dataclass(frozen=True)
class ExportInfo:
    name: str
    is_default: bool
    range: Range
    local_name: str | None = None
    source: str | None = None


@dataclass(frozen=True)
class ParameterInfo:
    name: str
    type: str | None = None
    default_value: str | None = None
    is_optional: bool = False
    is_rest: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "defaultValue": self.default_value,
            "isOptional": self.is_optional,
            "isRest": self.is_rest,
        }


@dataclass(frozen=True)
class PropertyInfo:
    name: str
    type: str | None
    is_static: bool
    visibility: Visibility
    range: Range

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "isStatic": self.is_static,
            "visibility": str(self.visibility),
            "range": list(self.range),
        }


@dataclass(frozen=True)
class MethodInfo:
    name: str
    parameters: list[ParameterInfo]
    return_type: str | None
    is_async: bool
    is_static: bool
    visibility: Visibility
    range: Range


@dataclass(frozen=True)
class ClassInfo:
    name: str
    super_class: str | None
    interfaces: list[str]
    methods: list[MethodInfo]
    properties: list[PropertyInfo]
    range: Range
    is_exported: bool = False
    is_abstract: bool = False


@dataclass(frozen=True)
class FunctionInfo:
    name: str
    parameters: list[ParameterInfo]
    return_type: str | None
    is_async: bool
    is_exported: bool
    range: Range


@dataclass(frozen=True)
class VariableInfo:
    name: str
    type: str | None
    is_const: bool
    is_exported: bool
    range: Range


@dataclass
class ExtractionRecord:
    """Everything extracted from one file."""

    file_path: str
    language: str
    imports: list[ImportInfo] = field(default_factory=list)
    exports: list[ExportInfo] = field(default_factory=list)
    classes: list[ClassInfo] = field(default_factory=list)
    functions: list[FunctionInfo] = field(default_factory=list)
    variables: list[VariableInfo] = field(default_factory=list)
