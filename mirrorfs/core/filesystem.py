"""
A file system that keeps local storage and an object store in step.

Local storage is the source of truth: every read comes from disk, and every
write or delete lands on disk first. When mirroring is on, the same change
is then replicated to the object store on a best-effort basis. A failed
remote step never undoes the local one; the stores may drift apart and
nothing here repairs that.

There is no locking. Two concurrent writes to the same path race on both
stores and the last writer wins.
"""

import fnmatch
import io
import logging
import os
import shutil
from datetime import datetime, timezone
from typing import BinaryIO, Callable, Optional, Protocol

from .errors import FileAlreadyExistsError, MirrorError, UnsafeRemotePrefixError
from .models import (
    MirrorMode,
    MirrorResult,
    RemoteFailurePolicy,
    RemoteObjectKey,
    StorageRoot,
)
from .paths import PathTranslator

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ObjectStoreClient(Protocol):
    """
    Interface for container-based object storage.

    The file system doesn't know or care whether this is S3, R2 or the
    in-memory client; each call may fail independently and none retry.
    """

    def exists(self, container: str, key: str) -> bool:
        """True if the object can be fetched. Any failure reads as False."""
        ...

    def upload(
        self,
        stream: BinaryIO,
        container: str,
        key: str,
        content_type: Optional[str] = None,
    ) -> None:
        """Create or overwrite an object from the stream's remaining content."""
        ...

    def delete(self, container: str, key: str) -> None:
        """Delete one object. Raises if the object does not exist."""
        ...

    def delete_by_prefix(self, container: str, prefix: str) -> int:
        """Delete every object whose key starts with prefix. Returns count."""
        ...

    def download(self, container: str, key: str) -> Optional[io.BytesIO]:
        """Object content, or None if the object does not exist."""
        ...

    def set_content_type_for_container(self, container: str, content_type: str) -> int:
        """Rewrite the content type of every object in a container. Returns count."""
        ...


# ---------------------------------------------------------------------------
# Mirrored File System
# ---------------------------------------------------------------------------

class MirroredFileSystem:
    """
    Unified file system over a local directory and an optional object store.

    Built once per storage area (for example "media") and shared for the
    life of the process. Holds no per-request state.
    """

    def __init__(
        self,
        root: StorageRoot,
        object_store: Optional[ObjectStoreClient] = None,
        mirror_enabled: bool = False,
        strip_for_container: str = "",
        strip_for_key: str = "",
        failure_policy: RemoteFailurePolicy = RemoteFailurePolicy.LOG,
    ) -> None:
        self._translator = PathTranslator(
            root,
            strip_for_container=strip_for_container,
            strip_for_key=strip_for_key,
        )
        self._object_store = object_store
        self._mode = MirrorMode.resolve(
            remote_configured=object_store is not None,
            mirror_enabled=mirror_enabled,
        )
        self._failure_policy = failure_policy

        logger.info(
            "Initialized mirrored file system",
            extra={
                "local_root": root.local_root,
                "url_prefix": root.url_prefix,
                "mirror_mode": self._mode.value,
                "failure_policy": failure_policy.value,
            },
        )

    @property
    def mode(self) -> MirrorMode:
        return self._mode

    @property
    def translator(self) -> PathTranslator:
        return self._translator

    @property
    def root(self) -> StorageRoot:
        return self._translator.root

    # -----------------------------------------------------------------------
    # Writes and deletes
    # -----------------------------------------------------------------------

    def add_file(
        self,
        path: str,
        stream: BinaryIO,
        overwrite: bool = True,
    ) -> Optional[MirrorResult]:
        """
        Write a file locally, then mirror it to the object store.

        Raises FileAlreadyExistsError if the file exists and overwrite is
        off; nothing is written in that case. Local write errors propagate.

        A seekable stream is rewound before each read. A non-seekable stream
        can only be read once, so the upload reads back the local copy.

        Returns the mirror result, or None when mirroring is off.
        """
        full_path = self.get_full_path(path)

        if not overwrite and os.path.isfile(full_path):
            raise FileAlreadyExistsError(path)

        parent = os.path.dirname(full_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        self._rewind(stream)
        with open(full_path, "wb") as destination:
            shutil.copyfileobj(stream, destination, COPY_BUFFER_SIZE)

        logger.debug("Wrote local file", extra={"path": full_path})

        if not self._is_mirroring:
            return None

        target = self._translator.remote_key_for_file(path)

        def upload() -> None:
            if self._rewind(stream):
                self._object_store.upload(stream, target.container, target.key)
            else:
                with open(full_path, "rb") as local_copy:
                    self._object_store.upload(local_copy, target.container, target.key)

        return self._mirror("upload", target, upload)

    def delete_file(self, path: str) -> Optional[MirrorResult]:
        """
        Delete a file locally, then remove the mirrored object.

        A missing file is a no-op. Returns the mirror result, or None when
        nothing was mirrored.
        """
        full_path = self.get_full_path(path)

        if not os.path.isfile(full_path):
            return None

        try:
            os.remove(full_path)
        except FileNotFoundError as e:
            logger.info(
                "File disappeared before delete",
                extra={"path": full_path, "error": str(e)},
            )
            return None

        if not self._is_mirroring:
            return None

        target = self._translator.remote_key_for_file(path)
        return self._mirror(
            "delete",
            target,
            lambda: self._object_store.delete(target.container, target.key),
        )

    def delete_directory(self, path: str, recursive: bool = False) -> Optional[MirrorResult]:
        """
        Delete a directory locally, then every object under its prefix.

        A missing directory is a no-op. Without recursive, deleting a
        non-empty directory raises OSError and nothing is mirrored.
        """
        full_path = self.get_full_path(path)

        if not os.path.isdir(full_path):
            return None

        try:
            if recursive:
                shutil.rmtree(full_path)
            else:
                os.rmdir(full_path)
        except FileNotFoundError as e:
            logger.error(
                "Directory not found",
                extra={"path": full_path, "error": str(e)},
            )
            return None

        if not self._is_mirroring:
            return None

        try:
            target = self._translator.remote_prefix_for_directory(path)
        except UnsafeRemotePrefixError as e:
            result = MirrorResult(operation="delete_by_prefix", target=e.target, error=e)
            self._handle_mirror_result(result)
            return result

        return self._mirror(
            "delete_by_prefix",
            target,
            lambda: self._object_store.delete_by_prefix(target.container, target.key),
        )

    # -----------------------------------------------------------------------
    # Reads (local only)
    # -----------------------------------------------------------------------

    def get_directories(self, path: str) -> list[str]:
        """Virtual paths of the subdirectories of path; empty on any lookup error."""
        return self._enumerate(path, lambda entry: entry.is_dir(), "directories")

    def get_files(self, path: str, pattern: str = "*") -> list[str]:
        """Virtual paths of the files in path matching a glob filter."""
        return self._enumerate(
            path,
            lambda entry: entry.is_file() and fnmatch.fnmatch(entry.name, pattern),
            "files",
        )

    def open_file(self, path: str) -> BinaryIO:
        """Open a local file for reading. Raises FileNotFoundError if absent."""
        return open(self.get_full_path(path), "rb")

    def file_exists(self, path: str) -> bool:
        return os.path.isfile(self.get_full_path(path))

    def directory_exists(self, path: str) -> bool:
        return os.path.isdir(self.get_full_path(path))

    def get_last_modified(self, path: str) -> datetime:
        """Last write time (UTC)."""
        return datetime.fromtimestamp(self._stat(path).st_mtime, tz=timezone.utc)

    def get_created(self, path: str) -> datetime:
        """Creation time (UTC), falling back to ctime where birth time is unknown."""
        stat = self._stat(path)
        created = getattr(stat, "st_birthtime", None)
        if created is None:
            created = stat.st_ctime
        return datetime.fromtimestamp(created, tz=timezone.utc)

    # -----------------------------------------------------------------------
    # Path translation
    # -----------------------------------------------------------------------

    def get_relative_path(self, full_path_or_url: str) -> str:
        return self._translator.to_relative_path(full_path_or_url)

    def get_full_path(self, path: str) -> str:
        return self._translator.to_full_path(path)

    def get_url(self, path: str) -> str:
        return self._translator.to_url(path)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    @property
    def _is_mirroring(self) -> bool:
        return self._mode is MirrorMode.LOCAL_AND_REMOTE

    def _stat(self, path: str) -> os.stat_result:
        """
        Stat a path for its timestamps, checking for a directory first.

        Raises FileNotFoundError when neither a directory nor a file exists.
        """
        full_path = self.get_full_path(path)
        if os.path.isdir(full_path) or os.path.isfile(full_path):
            return os.stat(full_path)
        raise FileNotFoundError(full_path)

    @staticmethod
    def _rewind(stream: BinaryIO) -> bool:
        """Seek to the start if possible. Returns whether the stream is seekable."""
        seekable = getattr(stream, "seekable", None)
        if seekable is not None and seekable():
            stream.seek(0)
            return True
        return False

    def _enumerate(
        self,
        path: str,
        predicate: Callable[[os.DirEntry], bool],
        kind: str,
    ) -> list[str]:
        full_path = self.get_full_path(path)

        try:
            with os.scandir(full_path) as entries:
                return sorted(
                    self.get_relative_path(entry.path)
                    for entry in entries
                    if predicate(entry)
                )
        except PermissionError as e:
            logger.error(
                f"Not authorized to get {kind}",
                extra={"path": full_path, "error": str(e)},
            )
        except (FileNotFoundError, NotADirectoryError) as e:
            logger.error(
                "Directory not found",
                extra={"path": full_path, "error": str(e)},
            )

        return []

    def _mirror(
        self,
        operation: str,
        target: RemoteObjectKey,
        action: Callable[[], object],
    ) -> MirrorResult:
        """Run one remote step and turn its outcome into a MirrorResult."""
        try:
            action()
        except Exception as e:
            result = MirrorResult(operation=operation, target=target, error=e)
        else:
            result = MirrorResult(operation=operation, target=target)

        self._handle_mirror_result(result)
        return result

    def _handle_mirror_result(self, result: MirrorResult) -> None:
        if result.succeeded:
            logger.debug(
                "Mirrored to object store",
                extra={"operation": result.operation, "target": result.target.address},
            )
            return

        logger.warning(
            "Object store mirror failed; local change kept",
            extra={
                "operation": result.operation,
                "target": result.target.address,
                "error": str(result.error),
            },
        )

        if self._failure_policy is RemoteFailurePolicy.RAISE:
            raise MirrorError(result) from result.error
