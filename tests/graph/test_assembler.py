"""
Tests for GraphAssembler.

Builds graphs from in-memory sources (and a few files on disk) into the
in-memory store and checks the hierarchy, the import edges, the build
statistics and the full-rebuild write.
"""

from collections import Counter
from unittest.mock import AsyncMock, MagicMock

import pytest

from graph_extractor.core.config import Settings
from graph_extractor.graph.assembler import GraphAssembler
from graph_extractor.graph.graph_types import EdgeKind, Graph, NodeKind
from graph_extractor.storage import GraphStoreError, InMemoryGraphStore


SCENARIO_ONE = (
    "export async function foo(bar: number): Promise<string> {\n"
    "  return String(bar);\n"
    "}\n"
    "\n"
    "class Bar {\n"
    "  baz() {}\n"
    "}\n"
)


@pytest.fixture
def assembler(memory_store, test_settings, sequential_ids) -> GraphAssembler:
    return GraphAssembler(memory_store, test_settings, id_factory=sequential_ids)


def _only(graph: Graph, kind: NodeKind, name: str):
    matches = [n for n in graph.nodes if n.kind == kind and n.name == name]
    assert len(matches) == 1, f"expected one {kind} named {name}, got {len(matches)}"
    return matches[0]


def assert_contains_forest(graph: Graph) -> None:
    """Every node except the Repository has exactly one CONTAINS parent."""
    parents = Counter(e.target_id for e in graph.edges_of_kind(EdgeKind.contains))
    for node in graph.nodes:
        expected = 0 if node.kind == NodeKind.repository else 1
        assert parents[node.id] == expected, f"{node.kind} {node.name} has {parents[node.id]} parents"


def assert_no_dangling_edges(graph: Graph) -> None:
    ids = graph.node_ids()
    for edge in graph.edges:
        assert edge.source_id in ids and edge.target_id in ids


class TestSingleFileBuild:
    """Tests for the hierarchy built from one file."""

    @pytest.mark.asyncio
    async def test_declarations_and_hierarchy(self, assembler):
        graph = await assembler.build_graph(
            ["/repo/src/foo.ts"], "demo", sources={"/repo/src/foo.ts": SCENARIO_ONE}
        )

        assert Counter(n.kind for n in graph.nodes) == {
            NodeKind.repository: 1,
            NodeKind.directory: 1,
            NodeKind.file: 1,
            NodeKind.function: 1,
            NodeKind.class_: 1,
            NodeKind.method: 1,
        }
        assert len(graph.edges) == 5
        assert all(e.kind == EdgeKind.contains for e in graph.edges)

        foo = _only(graph, NodeKind.function, "foo")
        assert foo.properties["isAsync"] is True
        assert foo.properties["isExported"] is True
        assert foo.properties["returnType"] == "Promise<string>"
        assert foo.properties["filePath"] == "/repo/src/foo.ts"

        bar = _only(graph, NodeKind.class_, "Bar")
        baz = _only(graph, NodeKind.method, "baz")
        assert bar.properties["isExported"] is False
        assert baz.properties["className"] == "Bar"
        assert any(
            e.source_id == bar.id and e.target_id == baz.id for e in graph.edges
        )
        assert_contains_forest(graph)

    @pytest.mark.asyncio
    async def test_hierarchy_node_properties(self, assembler):
        graph = await assembler.build_graph(
            ["/repo/src/foo.ts"], "demo", sources={"/repo/src/foo.ts": SCENARIO_ONE}
        )

        repository = _only(graph, NodeKind.repository, "demo")
        directory = _only(graph, NodeKind.directory, "src")
        file_node = _only(graph, NodeKind.file, "foo.ts")
        assert repository.path == "/repo/src"
        assert directory.path == "/repo/src"
        assert file_node.properties == {
            "path": "/repo/src/foo.ts",
            "extension": ".ts",
            "language": "typescript",
        }

    @pytest.mark.asyncio
    async def test_graph_is_written_to_store(self, assembler, memory_store):
        graph = await assembler.build_graph(
            ["/repo/src/foo.ts"], "demo", sources={"/repo/src/foo.ts": SCENARIO_ONE}
        )

        for node in graph.nodes:
            assert await memory_store.get_node(node.id) == node
        for edge in graph.edges:
            assert await memory_store.get_edge(edge.id) == edge

    @pytest.mark.asyncio
    async def test_empty_build_clears_store(self, assembler, memory_store):
        await assembler.build_graph(
            ["/repo/src/foo.ts"], "demo", sources={"/repo/src/foo.ts": SCENARIO_ONE}
        )

        graph = await assembler.build_graph([], "demo")

        assert graph.is_empty()
        assert await memory_store.get_nodes_by_type(NodeKind.file) == []


class TestImports:
    """Tests for cross-file IMPORTS edges."""

    @pytest.mark.asyncio
    async def test_named_import_between_files(self, assembler, scenario_sources):
        graph = await assembler.build_graph(
            list(scenario_sources), "demo", sources=scenario_sources
        )

        a = _only(graph, NodeKind.file, "a.ts")
        b = _only(graph, NodeKind.file, "b.ts")
        helper = _only(graph, NodeKind.function, "helper")

        (edge,) = graph.edges_of_kind(EdgeKind.imports)
        assert (edge.source_id, edge.target_id) == (a.id, b.id)
        assert edge.properties["importName"] == "helper"
        assert edge.properties["isDefault"] is False
        assert edge.properties["importPath"] == "./b"
        assert edge.properties["importedSymbolId"] == helper.id
        assert assembler.last_stats.import_edges == 1
        assert_no_dangling_edges(graph)

    @pytest.mark.asyncio
    async def test_default_import_resolves_default_export(self, assembler):
        sources = {
            "/repo/src/app.ts": "import Service from './service';\n",
            "/repo/src/service.ts": "export default class Service {}\n",
        }

        graph = await assembler.build_graph(list(sources), "demo", sources=sources)

        (edge,) = graph.edges_of_kind(EdgeKind.imports)
        service = _only(graph, NodeKind.class_, "Service")
        assert edge.properties["isDefault"] is True
        assert edge.properties["importKind"] == "default"
        assert edge.properties["importedSymbolId"] == service.id

    @pytest.mark.asyncio
    async def test_directory_import_resolves_to_index(self, assembler):
        sources = {
            "/repo/src/app.ts": "import { User } from './models';\n",
            "/repo/src/models/index.ts": "export class User {}\n",
        }

        graph = await assembler.build_graph(list(sources), "demo", sources=sources)

        (edge,) = graph.edges_of_kind(EdgeKind.imports)
        index = _only(graph, NodeKind.file, "index.ts")
        assert edge.target_id == index.id

    @pytest.mark.asyncio
    async def test_same_export_name_in_two_files(self, assembler):
        sources = {
            "/repo/src/app.ts": "import { config } from './server/config';\n",
            "/repo/src/server/config.ts": "export const config = { port: 1 };\n",
            "/repo/src/client/config.ts": "export const config = { url: '' };\n",
        }

        graph = await assembler.build_graph(list(sources), "demo", sources=sources)

        (edge,) = graph.edges_of_kind(EdgeKind.imports)
        server_config = next(
            n for n in graph.nodes_of_kind(NodeKind.variable)
            if n.properties["filePath"] == "/repo/src/server/config.ts"
        )
        assert edge.properties["importedSymbolId"] == server_config.id

    @pytest.mark.asyncio
    async def test_unresolved_and_package_imports(self, assembler):
        sources = {
            "/repo/src/app.ts": (
                "import express from 'express';\n"
                "import { missing } from './missing';\n"
            ),
        }

        graph = await assembler.build_graph(list(sources), "demo", sources=sources)

        assert graph.edges_of_kind(EdgeKind.imports) == []
        assert assembler.last_stats.unresolved_imports == 1
        assert any("./missing" in w for w in assembler.last_stats.warnings)


class TestPartialFailure:
    """Tests for files that cannot be extracted."""

    @pytest.mark.asyncio
    async def test_syntax_error_keeps_file_node(self, assembler, scenario_sources):
        sources = dict(scenario_sources)
        sources["/repo/src/broken.ts"] = "export function (((\n"

        graph = await assembler.build_graph(list(sources), "demo", sources=sources)

        broken = _only(graph, NodeKind.file, "broken.ts")
        assert "Syntax error" in broken.properties["parseError"]
        assert not any(e.source_id == broken.id for e in graph.edges)
        assert len(graph.edges_of_kind(EdgeKind.imports)) == 1

        stats = assembler.last_stats
        assert stats.failed_files == 1
        assert stats.indexed_files == 2
        assert stats.has_errors
        assert_contains_forest(graph)

    @pytest.mark.asyncio
    async def test_unsupported_file_is_skipped(self, assembler):
        sources = {"/repo/README.md": "# demo\n", "/repo/index.js": "const x = 1;\n"}

        graph = await assembler.build_graph(list(sources), "demo", sources=sources)

        readme = _only(graph, NodeKind.file, "README.md")
        assert "skipReason" in readme.properties
        assert readme.properties["language"] is None
        assert assembler.last_stats.skipped_files == 1
        assert assembler.last_stats.indexed_files == 1

    @pytest.mark.asyncio
    async def test_oversized_file_on_disk_is_skipped(self, memory_store, sequential_ids, tmp_path):
        big = tmp_path / "big.ts"
        big.write_text("export const data = '" + "x" * 200 + "';\n", encoding="utf-8")
        small = tmp_path / "small.ts"
        small.write_text("export const ok = 1;\n", encoding="utf-8")
        settings = Settings(STORAGE_BACKEND="memory", MAX_FILE_SIZE_BYTES=100)
        assembler = GraphAssembler(memory_store, settings, id_factory=sequential_ids)

        graph = await assembler.build_graph([big, small], "disk")

        assert "too large" in _only(graph, NodeKind.file, "big.ts").properties["skipReason"]
        assert [n.name for n in graph.nodes_of_kind(NodeKind.variable)] == ["ok"]

    @pytest.mark.asyncio
    async def test_missing_file_on_disk_is_a_failure(self, assembler, tmp_path):
        graph = await assembler.build_graph([tmp_path / "gone.ts"], "disk")

        assert "parseError" in _only(graph, NodeKind.file, "gone.ts").properties
        assert assembler.last_stats.failed_files == 1


class TestRebuild:
    """Tests for full-rebuild semantics and input handling."""

    @pytest.mark.asyncio
    async def test_rebuild_does_not_grow_the_store(self, memory_store, test_settings, scenario_sources):
        assembler = GraphAssembler(memory_store, test_settings)

        await assembler.build_graph(list(scenario_sources), "demo", sources=scenario_sources)
        first_nodes = len(await memory_store.get_nodes_by_type(NodeKind.file, limit=None))
        first_edges = len(await memory_store.get_edges_by_type(EdgeKind.contains, limit=None))

        await assembler.build_graph(list(scenario_sources), "demo", sources=scenario_sources)

        assert len(await memory_store.get_nodes_by_type(NodeKind.file, limit=None)) == first_nodes
        assert len(await memory_store.get_edges_by_type(EdgeKind.contains, limit=None)) == first_edges

    @pytest.mark.asyncio
    async def test_duplicate_paths_are_ignored(self, assembler, scenario_sources):
        paths = ["/repo/src/a.ts", "/repo/src/./a.ts", "/repo/src/b.ts"]

        graph = await assembler.build_graph(paths, "demo", sources=scenario_sources)

        assert len(graph.nodes_of_kind(NodeKind.file)) == 2
        assert assembler.last_stats.total_files == 2
        assert any("Duplicate" in w for w in assembler.last_stats.warnings)

    @pytest.mark.asyncio
    async def test_one_directory_node_per_parent(self, assembler):
        sources = {
            "/repo/src/a.ts": "export const a = 1;\n",
            "/repo/src/b.ts": "export const b = 1;\n",
            "/repo/lib/c.js": "const c = 1;\n",
        }

        graph = await assembler.build_graph(list(sources), "demo", sources=sources)

        directories = {n.path for n in graph.nodes_of_kind(NodeKind.directory)}
        assert directories == {"/repo/src", "/repo/lib"}
        assert _only(graph, NodeKind.repository, "demo").path == "/repo"
        assert_contains_forest(graph)

    @pytest.mark.asyncio
    async def test_identifiers_are_unique(self, memory_store, test_settings, scenario_sources):
        assembler = GraphAssembler(memory_store, test_settings)

        graph = await assembler.build_graph(list(scenario_sources), "demo", sources=scenario_sources)

        ids = [n.id for n in graph.nodes] + [e.id for e in graph.edges]
        assert len(ids) == len(set(ids))

    @pytest.mark.asyncio
    async def test_store_is_connected_on_demand(self, test_settings, scenario_sources):
        store = InMemoryGraphStore()
        assembler = GraphAssembler(store, test_settings)

        await assembler.build_graph(list(scenario_sources), "demo", sources=scenario_sources)

        assert store.is_connected

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, test_settings, scenario_sources):
        store = MagicMock()
        store.is_connected = True
        store.replace_graph = AsyncMock(side_effect=GraphStoreError("disk full", "memory"))
        assembler = GraphAssembler(store, test_settings)

        with pytest.raises(GraphStoreError):
            await assembler.build_graph(list(scenario_sources), "demo", sources=scenario_sources)
