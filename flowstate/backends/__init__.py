"""Backend factory and initialization."""

from __future__ import annotations

from typing import Optional

from ..config import FlowstateConfig, StorageConfig, load_config
from .base import INDEXES, Index, KeyValueBackend
from .inmemory import InMemoryBackend
from .sqlite import SQLiteBackend

_backend_instance: KeyValueBackend | None = None


def _backend_from_url(url: str) -> KeyValueBackend:
    if url.startswith(("memory://", "inmemory://")):
        return InMemoryBackend()
    if url.startswith("sqlite://"):
        return SQLiteBackend(url.replace("sqlite://", "", 1))
    if url.startswith(("postgres://", "postgresql://")):
        from .postgres import PostgresBackend

        return PostgresBackend(url)
    if url.startswith("dynamodb://"):
        from .dynamodb import DynamoDBBackend

        return DynamoDBBackend(url.replace("dynamodb://", "", 1))
    raise ValueError(f"Unsupported storage backend: {url}")


def _backend_from_config(storage: StorageConfig) -> KeyValueBackend:
    backend = storage.backend
    if backend == "inmemory":
        return InMemoryBackend()
    if backend == "sqlite":
        return SQLiteBackend(storage.sqlite_path)
    if backend == "postgres":
        raise ValueError("Postgres backend requires storage.database_url")
    if backend == "dynamodb":
        from .dynamodb import DynamoDBBackend

        dynamo = storage.dynamodb
        if not dynamo.table_name:
            raise ValueError("DynamoDB backend requires a table name (WORKFLOW_TABLE_NAME)")
        return DynamoDBBackend(
            dynamo.table_name, region=dynamo.region, endpoint_url=dynamo.endpoint_url
        )
    raise ValueError(f"Unsupported storage backend: {backend}")


def get_backend(
    url: Optional[str] = None, config: Optional[FlowstateConfig] = None
) -> KeyValueBackend:
    """Factory function to obtain the configured storage backend.

    The backend is selected from ``url`` when given, otherwise from
    ``storage.database_url`` or ``storage.backend`` of the loaded
    configuration. When nothing is configured an in-memory backend is
    returned. The instance is cached for subsequent argument-less calls.
    """

    global _backend_instance
    if _backend_instance is not None and url is None and config is None:
        return _backend_instance

    config = config or load_config()
    url = url or config.storage.database_url
    if url:
        _backend_instance = _backend_from_url(url)
    else:
        _backend_instance = _backend_from_config(config.storage)
    return _backend_instance


__all__ = [
    "INDEXES",
    "Index",
    "InMemoryBackend",
    "KeyValueBackend",
    "SQLiteBackend",
    "get_backend",
]
