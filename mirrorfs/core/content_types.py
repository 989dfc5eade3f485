"""
Extension to content-type lookup used when uploading objects.

The table is plain data and injectable, so tests and deployments can
override it without touching the host's MIME registry.
"""

import posixpath
from typing import Mapping, Optional

DEFAULT_CONTENT_TYPES: dict[str, str] = {
    # images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    # documents
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".htm": "text/html",
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".zip": "application/zip",
    # audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
    # fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
}


class ContentTypeMap:
    """Case-insensitive extension -> content type table."""

    def __init__(self, mapping: Optional[Mapping[str, str]] = None) -> None:
        source = DEFAULT_CONTENT_TYPES if mapping is None else mapping
        self._mapping = {
            self._normalize_extension(ext): content_type
            for ext, content_type in source.items()
        }

    def resolve(self, file_name: str) -> Optional[str]:
        """Return the content type for a file or key name, or None if unknown."""
        _, ext = posixpath.splitext(file_name.replace("\\", "/"))
        if not ext:
            return None
        return self._mapping.get(ext.lower())

    @staticmethod
    def _normalize_extension(ext: str) -> str:
        ext = ext.lower()
        return ext if ext.startswith(".") else f".{ext}"
