"""
Translation between virtual paths, local paths, public URLs and object keys.

Everything in this module is pure: no disk or network access, no state beyond
the configured root and strip prefixes. All separator handling for the
mirrored file system happens here so the edge cases live in one place.

Remote layout: the first segment of a file's folder is the container and the
rest of the folder plus the file name is the key. "images/2024/pic.jpg" maps
to container "images", key "2024/pic.jpg". A path without a separator is
treated as its own container, so "logo.png" maps to container "logo.png",
key "logo.png".
"""

import os
from typing import Optional

from .errors import UnsafeRemotePrefixError
from .models import RemoteObjectKey, StorageRoot

KEY_STRIP_DELIMITER = "|"

_SEPARATORS = ("/", "\\")


def _to_forward_slashes(path: str) -> str:
    return path.replace("\\", "/")


def to_remote_object_key(
    virtual_path: str,
    file_name: str,
    strip_for_container: str = "",
    strip_for_key: str = "",
) -> RemoteObjectKey:
    """
    Derive the (container, key) pair for a file.

    Args:
        virtual_path: Folder holding the file, forward or back slashes.
        file_name: Name of the file, appended to the key.
        strip_for_container: Substring removed from the path before the
            container is taken from its first segment.
        strip_for_key: Substring(s) removed from the remainder before the
            key is built. Several substrings may be joined with "|"; each
            is removed in turn.
    """
    path = _to_forward_slashes(virtual_path)

    if strip_for_container:
        path = path.replace(strip_for_container, "")
    path = path.lstrip("/")

    if "/" in path:
        container, remainder = path.split("/", 1)
    else:
        container, remainder = path, ""

    if strip_for_key:
        for part in strip_for_key.split(KEY_STRIP_DELIMITER):
            if part:
                remainder = remainder.replace(part, "")

    remainder = remainder.lstrip("/")
    if remainder and not remainder.endswith("/"):
        remainder += "/"

    return RemoteObjectKey(container=container, key=remainder + file_name)


class PathTranslator:
    """
    Path arithmetic for one storage root.

    Local paths use the platform separator; URLs and object keys always use
    forward slashes.
    """

    def __init__(
        self,
        root: StorageRoot,
        strip_for_container: str = "",
        strip_for_key: str = "",
    ) -> None:
        self._root = root
        self._strip_for_container = strip_for_container
        self._strip_for_key = strip_for_key

    @property
    def root(self) -> StorageRoot:
        return self._root

    def normalize(self, virtual_path: str) -> str:
        """Canonical separators, no leading separator."""
        return self._to_local_separators(virtual_path).lstrip(os.sep)

    def to_full_path(self, virtual_path: str) -> str:
        """Absolute local path; already-absolute paths under the root pass through."""
        if virtual_path.startswith(self._root.local_root):
            return virtual_path
        return os.path.join(self._root.local_root, self.normalize(virtual_path))

    def to_relative_path(self, full_path_or_url: str) -> str:
        """
        Virtual path for a full local path or public URL.

        The local root is matched first, so a site-relative URL prefix that
        happens to be a prefix of the local root never eats into it.
        """
        path = self._to_local_separators(full_path_or_url)
        if path.startswith(self._root.local_root):
            return path[len(self._root.local_root):].lstrip(os.sep)

        path = full_path_or_url
        if path.startswith(self._root.url_prefix):
            path = path[len(self._root.url_prefix):]

        return self._to_local_separators(path).lstrip(os.sep)

    def to_url(self, virtual_path: str) -> str:
        """Public URL for a virtual path."""
        path = _to_forward_slashes(virtual_path.lstrip("/\\"))
        return self._root.url_prefix.rstrip("/") + "/" + path.rstrip("/")

    def to_remote_object_key(
        self,
        virtual_path: str,
        file_name: str,
        strip_for_container: Optional[str] = None,
        strip_for_key: Optional[str] = None,
    ) -> RemoteObjectKey:
        """Same as the module function, defaulting to the configured strips."""
        return to_remote_object_key(
            virtual_path,
            file_name,
            self._strip_for_container if strip_for_container is None else strip_for_container,
            self._strip_for_key if strip_for_key is None else strip_for_key,
        )

    def remote_key_for_file(self, virtual_path: str) -> RemoteObjectKey:
        """(container, key) for the file at a virtual path."""
        path = _to_forward_slashes(self.to_relative_path(virtual_path)).strip("/")
        if "/" in path:
            folder, file_name = path.rsplit("/", 1)
        else:
            folder, file_name = path, path
        return self.to_remote_object_key(folder + "/", file_name)

    def remote_prefix_for_directory(self, virtual_path: str) -> RemoteObjectKey:
        """
        (container, key prefix) covering everything under a directory.

        "media/2024" gives container "media", prefix "2024/"; a single
        segment such as "media" gives the whole container (empty prefix).

        Raises UnsafeRemotePrefixError when the key strip prefixes empty the
        prefix of a nested directory, since deleting by it would take the
        sibling directories' objects with it.
        """
        path = _to_forward_slashes(self.to_relative_path(virtual_path)).strip("/")
        target = self.to_remote_object_key(path + "/", "")

        if not target.key:
            unstripped = self.to_remote_object_key(path + "/", "", strip_for_key="")
            if unstripped.key:
                raise UnsafeRemotePrefixError(path, target)

        return target

    @staticmethod
    def _to_local_separators(path: str) -> str:
        for sep in _SEPARATORS:
            if sep != os.sep:
                path = path.replace(sep, os.sep)
        return path
