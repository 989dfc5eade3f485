"""
Core file system logic.

Nothing here imports boto3 or reads settings. The mirrored file system only
knows the ObjectStoreClient protocol, so it can be tested against the
in-memory backend and the local disk alone.
"""

from .content_types import ContentTypeMap, DEFAULT_CONTENT_TYPES
from .errors import (
    ConfigurationError,
    FileAlreadyExistsError,
    MirrorError,
    MirrorFileSystemError,
    UnsafeRemotePrefixError,
)
from .filesystem import MirroredFileSystem
from .models import (
    MirrorMode,
    MirrorResult,
    RemoteFailurePolicy,
    RemoteObjectKey,
    StorageRoot,
)
from .paths import PathTranslator, to_remote_object_key

__all__ = [
    "ConfigurationError",
    "ContentTypeMap",
    "DEFAULT_CONTENT_TYPES",
    "FileAlreadyExistsError",
    "MirrorError",
    "MirrorFileSystemError",
    "MirrorMode",
    "MirrorResult",
    "MirroredFileSystem",
    "PathTranslator",
    "RemoteFailurePolicy",
    "RemoteObjectKey",
    "StorageRoot",
    "UnsafeRemotePrefixError",
    "to_remote_object_key",
]
