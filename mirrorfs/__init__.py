"""
mirrorfs - a file system that mirrors local writes to object storage.

This package contains:
- core: path translation, domain models and the mirrored file system
- infrastructure: object storage clients (S3/R2 and in-memory)
- config: settings loaded from the environment
- dependencies: explicit construction of a file system from settings
"""

__version__ = "0.1.0"

from .core import (
    ConfigurationError,
    ContentTypeMap,
    FileAlreadyExistsError,
    MirrorError,
    MirrorFileSystemError,
    MirrorMode,
    MirrorResult,
    MirroredFileSystem,
    RemoteFailurePolicy,
    RemoteObjectKey,
    StorageRoot,
    UnsafeRemotePrefixError,
)
from .dependencies import create_file_system

__all__ = [
    "ConfigurationError",
    "ContentTypeMap",
    "FileAlreadyExistsError",
    "MirrorError",
    "MirrorFileSystemError",
    "MirrorMode",
    "MirrorResult",
    "MirroredFileSystem",
    "RemoteFailurePolicy",
    "RemoteObjectKey",
    "StorageRoot",
    "UnsafeRemotePrefixError",
    "create_file_system",
]
