"""
Construction of mirrored file systems from settings.

Each storage area gets its own file system with its own object store client,
built here and handed to whoever needs it. There is no module-level client
shared across the process.
"""

import logging
from typing import Optional

from .config.settings import Settings, get_settings
from .core.content_types import ContentTypeMap
from .core.errors import ConfigurationError
from .core.filesystem import MirroredFileSystem, ObjectStoreClient
from .core.models import RemoteFailurePolicy, StorageRoot
from .infrastructure.storage.client import create_object_store_client

logger = logging.getLogger(__name__)


def build_storage_root(settings: Settings) -> StorageRoot:
    """Resolve the storage root, preferring an explicit path and URL."""
    if settings.uses_direct_root:
        return StorageRoot(
            local_root=settings.media_root_path,
            url_prefix=settings.media_root_url,
        )

    return StorageRoot.from_virtual_root(
        settings.media_virtual_root,
        settings.app_root_path,
        settings.public_base_url,
    )


def build_object_store_client(
    settings: Settings,
    content_types: Optional[ContentTypeMap] = None,
) -> Optional[ObjectStoreClient]:
    """
    Object store client for the settings, or None if none is configured.

    A malformed connection string raises ConfigurationError here, at
    construction time.
    """
    if not settings.object_store_configured:
        return None

    return create_object_store_client(
        connection_string=settings.object_store_connection_string,
        mock_mode=settings.object_store_mock_mode,
        content_types=content_types,
    )


def create_file_system(
    settings: Optional[Settings] = None,
    object_store: Optional[ObjectStoreClient] = None,
    content_types: Optional[ContentTypeMap] = None,
) -> MirroredFileSystem:
    """
    Build a MirroredFileSystem for one storage area.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        object_store: Client to mirror to; built from settings when omitted
        content_types: Extension table for uploads built from settings

    Raises:
        ConfigurationError: If the root or connection string is invalid
    """
    settings = settings or get_settings()

    missing = settings.validate_required_fields()
    if missing:
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(missing)}"
        )

    root = build_storage_root(settings)

    if object_store is None:
        object_store = build_object_store_client(settings, content_types)

    file_system = MirroredFileSystem(
        root,
        object_store=object_store,
        mirror_enabled=settings.mirror_to_object_store,
        strip_for_container=settings.strip_from_path_for_container,
        strip_for_key=settings.strip_from_path_for_key,
        failure_policy=RemoteFailurePolicy(settings.remote_failure_policy),
    )

    logger.debug(
        "Created mirrored file system",
        extra={"mirror_mode": file_system.mode.value},
    )

    return file_system
