"""
Dependency wiring for the FastAPI app and the import scripts.
"""

from __future__ import annotations

from backend.config import Settings, get_settings
from backend.db import DbClient, InMemoryDbClient, PostgresDbClient
from backend.search import InMemorySearchIndex, SearchIndex, TypesenseSearchIndex
from backend.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_search_index: SearchIndex | None = None


def build_db_client(settings: Settings, create_schema: bool = True) -> DbClient:
    """
    Build a fresh DB client for the given settings.

    create_schema=False connects without issuing any DDL (used by dry runs).
    """
    if settings.use_in_memory_backends or not settings.database_url:
        return InMemoryDbClient()
    return PostgresDbClient(settings.database_url, create_schema=create_schema)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so catalog state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    _db_client = build_db_client(get_settings())
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_endpoint:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint,
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            addressing_style=settings.storage_addressing_style,
        )
    return _storage_client


def get_search_index() -> SearchIndex:
    global _search_index
    if _search_index:
        return _search_index

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.typesense_host:
        _search_index = InMemorySearchIndex()
    else:
        _search_index = TypesenseSearchIndex(
            host=settings.typesense_host,
            api_key=settings.typesense_api_key or "",
            port=settings.typesense_port,
            protocol=settings.typesense_protocol,
            collection=settings.typesense_collection,
            timeout_seconds=settings.typesense_timeout_seconds,
        )
    return _search_index


def uses_in_memory_backends() -> bool:
    """True when any backend fell back to its in-memory stand-in."""
    return any(
        isinstance(client, (InMemoryDbClient, InMemoryStorageClient, InMemorySearchIndex))
        for client in (get_db_client(), get_storage_client(), get_search_index())
    )
