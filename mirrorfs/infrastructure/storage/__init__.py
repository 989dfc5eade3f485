"""
Object storage integration for mirrored files.

Supports R2 (Cloudflare), S3 (AWS) and MinIO via the S3-compatible API.
Includes mock mode for local development without credentials.
"""

from .client import (
    InMemoryObjectStoreClient,
    ObjectNotFoundError,
    ObjectStoreClient,
    ObjectStoreConfig,
    S3ObjectStoreClient,
    StorageError,
    create_object_store_client,
    parse_connection_string,
)

__all__ = [
    "InMemoryObjectStoreClient",
    "ObjectNotFoundError",
    "ObjectStoreClient",
    "ObjectStoreConfig",
    "S3ObjectStoreClient",
    "StorageError",
    "create_object_store_client",
    "parse_connection_string",
]
