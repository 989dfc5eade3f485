"""
Value objects for the mirrored file system.

These have no dependencies on boto3 or the local disk. StorageRoot is
validated on construction so a bad root fails at startup, not on the first
file write.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ConfigurationError

VIRTUAL_ROOT_MARKER = "~/"


class MirrorMode(Enum):
    """Whether, and where, writes are replicated."""
    DISABLED = "disabled"                  # no remote store configured
    LOCAL_ONLY = "local_only"              # remote configured, mirroring off
    LOCAL_AND_REMOTE = "local_and_remote"

    @classmethod
    def resolve(cls, remote_configured: bool, mirror_enabled: bool) -> "MirrorMode":
        if not remote_configured:
            return cls.DISABLED
        if not mirror_enabled:
            return cls.LOCAL_ONLY
        return cls.LOCAL_AND_REMOTE


class RemoteFailurePolicy(Enum):
    """What to do with a failed remote mirror step."""
    LOG = "log"      # log a warning, report the local result
    RAISE = "raise"  # raise MirrorError after the local write


@dataclass(frozen=True)
class StorageRoot:
    """
    Where a storage area lives on disk and where it is served from.

    Set once when the file system is built and never changed afterwards.
    """
    local_root: str
    url_prefix: str

    def __post_init__(self) -> None:
        if not self.local_root:
            raise ConfigurationError("The local root path cannot be empty")
        if not self.url_prefix:
            raise ConfigurationError("The root URL cannot be empty")
        if self.local_root.startswith(VIRTUAL_ROOT_MARKER):
            raise ConfigurationError(
                f"The local root cannot be a virtual path starting with '{VIRTUAL_ROOT_MARKER}'"
            )
        if not os.path.isabs(self.local_root):
            raise ConfigurationError(
                f"The local root must be an absolute path, got '{self.local_root}'"
            )

    @classmethod
    def from_virtual_root(
        cls,
        virtual_root: str,
        app_root_path: str,
        base_url: str = "",
    ) -> "StorageRoot":
        """
        Map a virtual root such as "~/media" onto the application root.

        "~/media" with app root "/data" and base URL "https://cdn.example"
        becomes local root "/data/media" and URL prefix
        "https://cdn.example/media".
        """
        if not virtual_root:
            raise ConfigurationError("The virtual root cannot be empty")
        if not virtual_root.startswith(VIRTUAL_ROOT_MARKER):
            raise ConfigurationError(
                f"The virtual root must be a virtual path and start with '{VIRTUAL_ROOT_MARKER}'"
            )
        if not app_root_path:
            raise ConfigurationError("The application root path cannot be empty")

        relative = virtual_root[len(VIRTUAL_ROOT_MARKER):].strip("/")
        local_root = os.path.join(
            os.path.abspath(app_root_path),
            *[part for part in relative.split("/") if part],
        )
        url_prefix = base_url.rstrip("/") + "/" + relative

        return cls(local_root=local_root, url_prefix=url_prefix)


@dataclass(frozen=True)
class RemoteObjectKey:
    """A container plus the key of one object (or key prefix) inside it."""
    container: str
    key: str

    @property
    def address(self) -> str:
        """Flat "container/key" form, as listed by the object store."""
        if not self.key:
            return f"{self.container}/"
        return f"{self.container}/{self.key}"


@dataclass(frozen=True)
class MirrorResult:
    """
    Outcome of one remote mirroring step.

    Returned by the mutating file system operations so tests and callers
    can see what was replicated without parsing logs.
    """
    operation: str
    target: RemoteObjectKey
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
