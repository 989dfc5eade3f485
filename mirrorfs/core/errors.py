"""
Exception taxonomy for the mirrored file system.

Callers only ever see local outcomes, configuration problems and the
add-without-overwrite conflict. Remote failures stay in the logs unless the
file system is configured with RemoteFailurePolicy.RAISE.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import MirrorResult, RemoteObjectKey


class MirrorFileSystemError(Exception):
    """Base class for errors raised by mirrorfs."""
    pass


class ConfigurationError(MirrorFileSystemError, ValueError):
    """Raised at construction time for a missing root or bad connection string."""
    pass


class FileAlreadyExistsError(MirrorFileSystemError, FileExistsError):
    """Raised when adding a file that exists and overwrite is off."""

    def __init__(self, path: str) -> None:
        super().__init__(f"A file at path '{path}' already exists")
        self.path = path


class UnsafeRemotePrefixError(MirrorFileSystemError):
    """
    Raised when key strip prefixes would turn a directory into a whole container.

    Deleting by the stripped prefix would remove objects that belong to
    sibling directories, so the remote delete is refused instead.
    """

    def __init__(self, directory: str, target: "RemoteObjectKey") -> None:
        super().__init__(
            f"Key strip prefixes reduce directory '{directory}' to the whole "
            f"container '{target.container}'; remote prefix delete refused"
        )
        self.directory = directory
        self.target = target


class MirrorError(MirrorFileSystemError):
    """
    Raised for a failed remote mirror step under RemoteFailurePolicy.RAISE.

    The local half of the operation has already been committed when this
    is raised; the attached result says which remote step failed.
    """

    def __init__(self, result: "MirrorResult") -> None:
        super().__init__(
            f"Remote {result.operation} failed for {result.target.address}: {result.error}"
        )
        self.result = result
