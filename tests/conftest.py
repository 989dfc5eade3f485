"""
Shared fixtures for the mirrorfs test suite.

The local side runs against pytest's tmp_path; the remote side against a
recording in-memory object store that doubles as a spy.
"""

import pytest

from mirrorfs.core.filesystem import MirroredFileSystem
from mirrorfs.core.models import RemoteFailurePolicy, StorageRoot
from mirrorfs.infrastructure.storage.client import (
    InMemoryObjectStoreClient,
    StorageError,
)

CDN_URL = "https://cdn.example/media"


class RecordingObjectStoreClient(InMemoryObjectStoreClient):
    """In-memory object store that records every call and can fail on demand."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple] = []
        self.failing_operations: set[str] = set()

    def _record(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if operation in self.failing_operations:
            raise StorageError(f"{operation} failed (simulated outage)")

    def exists(self, container, key):
        self._record("exists", container, key)
        return super().exists(container, key)

    def upload(self, stream, container, key, content_type=None):
        self._record("upload", container, key)
        super().upload(stream, container, key, content_type)

    def delete(self, container, key):
        self._record("delete", container, key)
        super().delete(container, key)

    def delete_by_prefix(self, container, prefix):
        self._record("delete_by_prefix", container, prefix)
        return super().delete_by_prefix(container, prefix)

    def download(self, container, key):
        self._record("download", container, key)
        return super().download(container, key)

    def set_content_type_for_container(self, container, content_type):
        self._record("set_content_type_for_container", container, content_type)
        return super().set_content_type_for_container(container, content_type)

    def object_data(self, container: str, key: str) -> bytes:
        return self.containers[container][key].data


@pytest.fixture
def media_root(tmp_path) -> StorageRoot:
    """Storage root under a fresh temporary directory."""
    return StorageRoot(local_root=str(tmp_path / "media"), url_prefix=CDN_URL)


@pytest.fixture
def remote() -> RecordingObjectStoreClient:
    return RecordingObjectStoreClient()


@pytest.fixture
def mirrored_fs(media_root, remote) -> MirroredFileSystem:
    """File system with mirroring enabled against the recording store."""
    return MirroredFileSystem(media_root, object_store=remote, mirror_enabled=True)


@pytest.fixture
def strict_fs(media_root, remote) -> MirroredFileSystem:
    """Mirroring file system that raises on remote failures."""
    return MirroredFileSystem(
        media_root,
        object_store=remote,
        mirror_enabled=True,
        failure_policy=RemoteFailurePolicy.RAISE,
    )
