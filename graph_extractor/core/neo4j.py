"""Neo4j driver construction.

Driver settings live here so the store and any ad-hoc tooling open
connections the same way.
"""

from __future__ import annotations

from neo4j import AsyncDriver, AsyncGraphDatabase

from graph_extractor.core.config import Settings


def create_driver(settings: Settings) -> AsyncDriver:
    """Build an AsyncDriver from ``settings``.

    Raises:
        ValueError: If the URI or credentials are not configured.
    """
    if not settings.NEO4J_URI:
        raise ValueError("NEO4J_URI is not configured")
    if not settings.NEO4J_USERNAME:
        raise ValueError("NEO4J_USERNAME is not configured")
    if not settings.NEO4J_PASSWORD:
        raise ValueError("NEO4J_PASSWORD is not configured")

    return AsyncGraphDatabase.driver(
        settings.NEO4J_URI,
        auth=(settings.NEO4J_USERNAME, settings.NEO4J_PASSWORD),
        connection_timeout=settings.NEO4J_CONNECTION_TIMEOUT,
        max_transaction_retry_time=60,
        keep_alive=True,
    )
