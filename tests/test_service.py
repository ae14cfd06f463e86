"""
End-to-end tests for CodeGraphService on the in-memory backend.
"""

import pytest

from graph_extractor.core.config import Settings
from graph_extractor.graph.graph_types import Direction, EdgeKind, NodeKind
from graph_extractor.service import CodeGraphService
from graph_extractor.storage import InMemoryGraphStore


@pytest.mark.asyncio
async def test_build_then_query(test_settings, scenario_sources):
    async with CodeGraphService.from_settings(test_settings) as service:
        assert isinstance(service.store, InMemoryGraphStore)

        built = await service.build_graph(list(scenario_sources), "demo", sources=scenario_sources)
        assert service.last_build_stats.indexed_files == 2
        assert len(built.edges_of_kind(EdgeKind.imports)) == 1

        structure = await service.query_structure(function_name="helper", depth=1)
        assert {n.kind for n in structure.nodes} == {NodeKind.function, NodeKind.file}

        dependencies = await service.trace_dependencies(
            "/repo/src/a.ts", direction=Direction.outgoing
        )
        assert {n.path for n in dependencies.nodes} == {"/repo/src/a.ts", "/repo/src/b.ts"}

        assert (await service.find_error_paths()).is_empty()

    assert not service.store.is_connected


@pytest.mark.asyncio
async def test_projects_on_disk(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (tmp_path / "tsconfig.json").write_text('{"compilerOptions": {"strict": true}}', encoding="utf-8")
    (src / "index.ts").write_text(
        "import { load } from './loader';\nexport const ready = load();\n", encoding="utf-8"
    )
    (src / "loader.ts").write_text(
        "export function load() {\n  return null;\n}\n", encoding="utf-8"
    )
    service = CodeGraphService(InMemoryGraphStore(), Settings(STORAGE_BACKEND="memory"))

    async with service:
        await service.build_graph(sorted(src.glob("*.ts")), "disk-project")
        (load,) = await service.store.find_nodes(NodeKind.function, name="load")

    assert load.properties["returnType"] == "null"
    assert load.properties["isExported"] is True
