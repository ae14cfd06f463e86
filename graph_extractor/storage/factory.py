import enum

from graph_extractor.core.config import Settings, settings as default_settings
from graph_extractor.storage.base import GraphStore
from graph_extractor.storage.memory_store import InMemoryGraphStore
from graph_extractor.storage.neo4j_store import Neo4jGraphStore


class StorageBackend(enum.StrEnum):
    NEO4J = "neo4j"
    MEMORY = "memory"


def create_graph_store(settings: Settings | None = None) -> GraphStore:
    """Build the store selected by ``settings.STORAGE_BACKEND``.

    Raises:
        ValueError: If the backend name is unknown.
    """
    settings = settings or default_settings
    try:
        backend = StorageBackend(settings.STORAGE_BACKEND.lower())
    except ValueError:
        supported = ", ".join(b.value for b in StorageBackend)
        raise ValueError(
            f"Unsupported storage backend '{settings.STORAGE_BACKEND}'. Supported: {supported}"
        ) from None

    match backend:
        case StorageBackend.NEO4J:
            return Neo4jGraphStore(settings)
        case StorageBackend.MEMORY:
            return InMemoryGraphStore()
