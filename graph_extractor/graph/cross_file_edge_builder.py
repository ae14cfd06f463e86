"""
Cross-file edge builder for IMPORTS relationships.

This module runs as a second pass after every file of a build has its File
node and declaration nodes. For each relative import it resolves the module
specifier against the importing file's directory and, when the target file
is part of the build, emits one IMPORTS edge File(importer) -> File(target).

Edge properties:
  - importName: the imported binding (``*`` for namespace imports)
  - isDefault: whether it is a default import
  - importPath: the specifier as written
  - importKind: default / named / namespace / side_effect
  - importedSymbolId: id of the declaration the name resolves to in the
    target's export table, when it resolves

Design principles:
  - Package (non-relative) imports are never resolved
  - Export tables are scoped per file and passed in explicitly
"""

from dataclasses import dataclass
from typing import Callable, Mapping

from graph_extractor.graph.build_stats import BuildStats
from graph_extractor.graph.file_graph_builder import DEFAULT_EXPORT
from graph_extractor.graph.graph_types import Edge, EdgeKind, Node
from graph_extractor.graph.paths import import_candidates
from graph_extractor.parser.entities import ImportInfo, ImportKind, ExtractionRecord
from graph_extractor.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssembledFile:
    """What the import pass needs to know about one file of the build."""

    node: Node
    record: ExtractionRecord | None


class CrossFileEdgeBuilder:
    """Resolves relative imports between the files of one build.

    Args:
        files: Assembled files keyed by normalized path
        export_tables: Export table per File node id
        new_id: Identifier source owned by the assembler
        stats: Build statistics to update
    """

    def __init__(
        self,
        files: Mapping[str, AssembledFile],
        export_tables: Mapping[str, Mapping[str, str]],
        new_id: Callable[[], str],
        stats: BuildStats,
    ):
        self.files = files
        self.export_tables = export_tables
        self.new_id = new_id
        self.stats = stats

    def build(self) -> list[Edge]:
        edges: list[Edge] = []
        for path, assembled in self.files.items():
            if assembled.record is None:
                continue
            for import_info in assembled.record.imports:
                if not import_info.is_relative:
                    continue
                edge = self._resolve_import(path, assembled.node, import_info)
                if edge is not None:
                    edges.append(edge)

        self.stats.import_edges += len(edges)
        logger.info(
            f"Built cross-file edges: {len(edges)} IMPORTS, "
            f"{self.stats.unresolved_imports} unresolved"
        )
        return edges

    def _resolve_import(
        self,
        importer_path: str,
        importer: Node,
        import_info: ImportInfo,
    ) -> Edge | None:
        target = self._find_target(importer_path, import_info.path)
        if target is None:
            self.stats.unresolved_imports += 1
            self.stats.warnings.append(
                f"Unresolved import '{import_info.path}' in {importer_path}"
            )
            logger.debug(f"Unresolved import '{import_info.path}' in {importer_path}")
            return None

        properties = {
            "importName": import_info.name,
            "isDefault": import_info.is_default,
            "importPath": import_info.path,
            "importKind": str(import_info.kind),
        }
        if import_info.alias:
            properties["alias"] = import_info.alias

        symbol_id = self._imported_symbol(target.node, import_info)
        if symbol_id is not None:
            properties["importedSymbolId"] = symbol_id

        return Edge(
            id=self.new_id(),
            kind=EdgeKind.imports,
            source_id=importer.id,
            target_id=target.node.id,
            properties=properties,
        )

    def _find_target(self, importer_path: str, specifier: str) -> AssembledFile | None:
        for candidate in import_candidates(importer_path, specifier):
            target = self.files.get(candidate)
            if target is not None:
                return target
        return None

    def _imported_symbol(self, target: Node, import_info: ImportInfo) -> str | None:
        table = self.export_tables.get(target.id, {})
        match import_info.kind:
            case ImportKind.default:
                return table.get(DEFAULT_EXPORT)
            case ImportKind.named:
                return table.get(import_info.name)
            case _:
                return None
