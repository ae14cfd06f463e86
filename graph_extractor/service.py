"""The four operations the code graph exposes to its callers.

CodeGraphService wires one GraphStore to a GraphAssembler and a QueryEngine.
Callers that own a transport (a CLI, a tool server) build it once and call
the operations below; it is also an async context manager that disconnects
the store on exit.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

from graph_extractor.core.config import Settings, settings as default_settings
from graph_extractor.graph.assembler import GraphAssembler
from graph_extractor.graph.build_stats import BuildStats
from graph_extractor.graph.graph_types import Direction, EdgeKind, Graph
from graph_extractor.query.query_engine import (
    DEFAULT_STRUCTURE_DEPTH,
    DEFAULT_TRACE_DEPTH,
    QueryEngine,
)
from graph_extractor.query.resolution import AmbiguityPolicy
from graph_extractor.storage.base import GraphStore
from graph_extractor.storage.factory import create_graph_store


class CodeGraphService:
    """Build and query a code graph held in one store."""

    def __init__(self, store: GraphStore, settings: Settings | None = None):
        self.settings = settings or default_settings
        self.store = store
        self.assembler = GraphAssembler(store, self.settings)
        self.queries = QueryEngine(store)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CodeGraphService":
        settings = settings or default_settings
        return cls(create_graph_store(settings), settings)

    async def __aenter__(self) -> "CodeGraphService":
        await self.store.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.store.disconnect()

    @property
    def last_build_stats(self) -> BuildStats:
        return self.assembler.last_stats

    async def build_graph(
        self,
        file_paths: Sequence[str | Path],
        repository_name: str,
        sources: Mapping[str, str] | None = None,
    ) -> Graph:
        return await self.assembler.build_graph(file_paths, repository_name, sources)

    async def query_structure(
        self,
        file_path: str | None = None,
        function_name: str | None = None,
        class_name: str | None = None,
        depth: int = DEFAULT_STRUCTURE_DEPTH,
        ambiguity: AmbiguityPolicy = AmbiguityPolicy.FIRST,
    ) -> Graph:
        return await self.queries.query_structure(
            file_path, function_name, class_name, depth, ambiguity
        )

    async def trace_dependencies(
        self,
        source_path: str,
        direction: Direction = Direction.both,
        edge_kinds: Sequence[EdgeKind] | None = None,
        max_depth: int = DEFAULT_TRACE_DEPTH,
    ) -> Graph:
        return await self.queries.trace_dependencies(
            source_path, direction, edge_kinds, max_depth
        )

    async def find_error_paths(
        self,
        error_message: str | None = None,
        function_name: str | None = None,
        repository_name: str | None = None,
    ) -> Graph:
        return await self.queries.find_error_paths(error_message, function_name, repository_name)
