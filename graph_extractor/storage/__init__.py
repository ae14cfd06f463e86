"""
Graph persistence.

Public API:
  - GraphStore: the storage contract
  - Neo4jGraphStore: reference backend
  - InMemoryGraphStore: dict-backed backend
  - create_graph_store(settings): pick a backend from configuration
  - encode_properties / decode_properties: property map codec
"""

from .base import GraphStore
from .codec import decode_properties, encode_properties
from .exceptions import (
    GraphStoreError,
    NotConnectedError,
    PropertySerializationError,
    StoreConnectionError,
)
from .factory import StorageBackend, create_graph_store
from .memory_store import InMemoryGraphStore
from .neo4j_store import Neo4jGraphStore

__all__ = [
    "GraphStore",
    "Neo4jGraphStore",
    "InMemoryGraphStore",
    "StorageBackend",
    "create_graph_store",
    "encode_properties",
    "decode_properties",
    "GraphStoreError",
    "NotConnectedError",
    "StoreConnectionError",
    "PropertySerializationError",
]
