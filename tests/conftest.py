"""
Global test configuration and fixtures for the code graph tests.

Provides settings, stores and small source trees shared across test modules.
"""

import itertools
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio

from graph_extractor.core.config import Settings
from graph_extractor.storage.memory_store import InMemoryGraphStore


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an in-memory build with a small worker pool."""
    return Settings(
        STORAGE_BACKEND="memory",
        PARSE_WORKERS=2,
        RESOLVE_TYPES=True,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    """Deterministic id factory: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest_asyncio.fixture
async def memory_store() -> AsyncGenerator[InMemoryGraphStore, None]:
    """A connected, empty in-memory store."""
    store = InMemoryGraphStore()
    await store.connect()
    yield store
    await store.disconnect()


@pytest.fixture
def scenario_sources() -> dict[str, str]:
    """Two files where a.ts imports a function exported by b.ts."""
    return {
        "/repo/src/a.ts": "import { helper } from './b';\n\nexport const value = helper();\n",
        "/repo/src/b.ts": "export function helper() {\n  return 1;\n}\n",
    }
