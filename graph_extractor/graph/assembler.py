"""Building the code graph for a set of files.

The assembler turns a list of source files into one Graph and writes it to a
GraphStore as a full rebuild:

  1. Extraction: files are read and parsed on a bounded thread pool, each
     producing an independent ExtractionRecord.
  2. Assembly: in input order and on a single task, the Repository node, one
     Directory node per distinct parent directory, the File nodes and every
     declaration node are created. All identifiers are issued here.
  3. Cross-file pass: relative imports are resolved into IMPORTS edges using
     the per-file export tables collected during assembly.
  4. Write: the store is cleared and the new graph written through
     GraphStore.replace_graph.

A file that cannot be parsed keeps its File node (marked with ``parseError``)
but contributes no declarations. The failure is logged and recorded in
``last_stats``; the build carries on. Store failures propagate.
"""

import asyncio
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, Mapping, Sequence

from graph_extractor.core.config import Settings, settings as default_settings
from graph_extractor.graph.build_stats import BuildStats
from graph_extractor.graph.cross_file_edge_builder import AssembledFile, CrossFileEdgeBuilder
from graph_extractor.graph.file_graph_builder import FileGraphBuilder
from graph_extractor.graph.graph_types import Edge, EdgeKind, Graph, Node, NodeKind
from graph_extractor.graph.paths import common_root, normalize_path, parent_directory
from graph_extractor.parser.entities import ExtractionRecord
from graph_extractor.parser.entity_extractor import EntityExtractor
from graph_extractor.parser.exceptions import ParseError, UnsupportedLanguageError
from graph_extractor.parser.tree_sitter_parser import support_file
from graph_extractor.storage.base import GraphStore
from graph_extractor.utils.logging import Logger


def _uuid() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class FileExtraction:
    """Outcome of extracting one file on a worker thread.

    Exactly one of ``record``, ``error`` and ``skip_reason`` is set.
    """

    path: str
    record: ExtractionRecord | None = None
    error: str | None = None
    skip_reason: str | None = None


class GraphAssembler:
    """Builds the code graph for a list of files and persists it.

    Attributes:
        store: Destination store; connected on demand
        settings: Worker count, file size limit and type resolution switch
        last_stats: Statistics of the most recent build
    """

    def __init__(
        self,
        store: GraphStore,
        settings: Settings | None = None,
        extractor: EntityExtractor | None = None,
        id_factory: Callable[[], str] = _uuid,
    ):
        self.store = store
        self.settings = settings or default_settings
        self.extractor = extractor or EntityExtractor(resolve_types=self.settings.RESOLVE_TYPES)
        self.id_factory = id_factory
        self.last_stats = BuildStats()
        self._write_lock = asyncio.Lock()

    async def build_graph(
        self,
        file_paths: Sequence[str | Path],
        repository_name: str,
        sources: Mapping[str, str] | None = None,
    ) -> Graph:
        """Build the graph for ``file_paths`` and replace the store's content with it.

        Args:
            file_paths: Files to include. Duplicates are ignored.
            repository_name: Name of the synthesized Repository node.
            sources: Optional in-memory contents keyed by path; files found here
                are not read from disk.

        Returns:
            The graph that was written.

        Raises:
            GraphStoreError: If connecting to or writing the store fails.
        """
        log = Logger(__name__, {"repository": repository_name})
        stats = BuildStats()
        self.last_stats = stats

        paths = self._unique_paths(file_paths, stats, log)
        source_map = {normalize_path(k): v for k, v in (sources or {}).items()}
        stats.total_files = len(paths)

        extractions = await self._extract_all(paths, source_map)
        graph = self._assemble(paths, extractions, repository_name, stats, log)

        async with self._write_lock:
            if not self.store.is_connected:
                await self.store.connect()
            await self.store.replace_graph(graph)

        log.info(
            f"Graph build complete for {repository_name}: "
            f"{len(graph.nodes)} nodes, {len(graph.edges)} edges, "
            f"{stats.indexed_files} files indexed, "
            f"{stats.total_declarations} declarations, "
            f"{stats.import_edges} imports, "
            f"{stats.skipped_files} skipped, "
            f"{stats.failed_files} failed"
        )
        return graph

    def _unique_paths(
        self, file_paths: Sequence[str | Path], stats: BuildStats, log: Logger
    ) -> list[str]:
        seen: set[str] = set()
        paths: list[str] = []
        for raw in file_paths:
            path = normalize_path(raw)
            if path in seen:
                log.warning(f"Ignoring duplicate file path: {path}")
                stats.warnings.append(f"Duplicate file path: {path}")
                continue
            seen.add(path)
            paths.append(path)
        return paths

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    async def _extract_all(
        self, paths: list[str], sources: Mapping[str, str]
    ) -> dict[str, FileExtraction]:
        if not paths:
            return {}

        loop = asyncio.get_running_loop()
        workers = max(1, min(self.settings.PARSE_WORKERS, len(paths)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="graph-extract") as executor:
            results = await asyncio.gather(*(
                loop.run_in_executor(executor, self._extract_one, path, sources.get(path))
                for path in paths
            ))
        return {result.path: result for result in results}

    def _extract_one(self, path: str, source: str | None) -> FileExtraction:
        """Extract one file. Runs on a worker thread."""
        file_path = Path(path)
        if not support_file(file_path):
            return FileExtraction(path, skip_reason=f"Unsupported file type: {file_path.suffix or '<none>'}")

        try:
            if source is None:
                size = file_path.stat().st_size
                if size > self.settings.MAX_FILE_SIZE_BYTES:
                    return FileExtraction(
                        path,
                        skip_reason=f"File too large ({size} bytes > {self.settings.MAX_FILE_SIZE_BYTES})",
                    )
                record = self.extractor.extract_file(file_path)
            else:
                record = self.extractor.extract(source, file_path)
        except UnsupportedLanguageError as e:
            return FileExtraction(path, skip_reason=str(e))
        except (ParseError, OSError) as e:
            return FileExtraction(path, error=str(e))
        return FileExtraction(path, record=record)

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def _assemble(
        self,
        paths: list[str],
        extractions: Mapping[str, FileExtraction],
        repository_name: str,
        stats: BuildStats,
        log: Logger,
    ) -> Graph:
        nodes: list[Node] = []
        edges: list[Edge] = []
        if not paths:
            return Graph()

        directories = list(dict.fromkeys(parent_directory(p) for p in paths))
        repository = Node(
            id=self.id_factory(),
            kind=NodeKind.repository,
            name=repository_name,
            properties={"path": common_root(directories)},
        )
        nodes.append(repository)

        dir_nodes: dict[str, Node] = {}
        for directory in directories:
            dir_node = Node(
                id=self.id_factory(),
                kind=NodeKind.directory,
                name=PurePosixPath(directory).name or directory,
                properties={"path": directory},
            )
            dir_nodes[directory] = dir_node
            nodes.append(dir_node)
            edges.append(self._contains(repository, dir_node))
        stats.total_directories = len(dir_nodes)

        file_builder = FileGraphBuilder(self.id_factory)
        files: dict[str, AssembledFile] = {}
        export_tables: dict[str, dict[str, str]] = {}

        for path in paths:
            extraction = extractions[path]
            file_node = self._file_node(path, extraction)
            nodes.append(file_node)
            edges.append(self._contains(dir_nodes[parent_directory(path)], file_node))

            if extraction.skip_reason:
                log.warning(f"Skipping {path}: {extraction.skip_reason}")
                stats.skipped_files += 1
                stats.warnings.append(f"Skipped {path}: {extraction.skip_reason}")
            elif extraction.error:
                log.warning(f"Failed to extract {path}: {extraction.error}")
                stats.failed_files += 1
                stats.errors.append(f"Failed to parse {path}: {extraction.error}")
            else:
                file_graph = file_builder.build_file_graph(file_node, extraction.record)
                nodes.extend(file_graph.nodes)
                edges.extend(file_graph.edges)
                export_tables[file_node.id] = file_graph.exports
                stats.indexed_files += 1
                stats.total_declarations += len(file_graph.nodes)

            files[path] = AssembledFile(node=file_node, record=extraction.record)

        edges.extend(
            CrossFileEdgeBuilder(files, export_tables, self.id_factory, stats).build()
        )
        return Graph(nodes, edges)

    def _file_node(self, path: str, extraction: FileExtraction) -> Node:
        pure = PurePosixPath(path)
        properties = {
            "path": path,
            "extension": pure.suffix,
            "language": extraction.record.language if extraction.record else None,
        }
        if extraction.error:
            properties["parseError"] = extraction.error
        if extraction.skip_reason:
            properties["skipReason"] = extraction.skip_reason
        return Node(
            id=self.id_factory(),
            kind=NodeKind.file,
            name=pure.name,
            properties=properties,
        )

    def _contains(self, parent: Node, child: Node) -> Edge:
        return Edge(
            id=self.id_factory(),
            kind=EdgeKind.contains,
            source_id=parent.id,
            target_id=child.id,
        )
