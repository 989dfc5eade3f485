"""
Configuration using Pydantic settings.

Configuration is loaded from environment variables (or a .env file) once,
when a file system is built, and is not re-read afterwards. Pydantic gives
type validation at startup, so a malformed flag fails before any file is
touched.

Mock mode swaps the object store for an in-memory one, enabling local
development without credentials.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    File system settings loaded from environment variables.

    The storage root is either a virtual root mapped onto the application
    root (MEDIA_VIRTUAL_ROOT + APP_ROOT_PATH + PUBLIC_BASE_URL) or given
    directly (MEDIA_ROOT_PATH + MEDIA_ROOT_URL). The direct form wins when
    both are set.
    """

    # Storage root
    media_virtual_root: str = Field(
        default="~/media",
        description="Virtual root of the storage area. Must start with '~/'."
    )
    app_root_path: str = Field(
        default=".",
        description="Physical application root the virtual root is mapped onto."
    )
    public_base_url: str = Field(
        default="",
        description="Base URL files are served from, e.g. https://cdn.example.com"
    )
    media_root_path: Optional[str] = Field(
        default=None,
        description="Absolute local root. Overrides the virtual root when set with MEDIA_ROOT_URL."
    )
    media_root_url: Optional[str] = Field(
        default=None,
        description="Public URL prefix for MEDIA_ROOT_PATH."
    )

    # Object store mirroring
    object_store_connection_string: str = Field(
        default="",
        description="AccessKeyId=...;SecretAccessKey=...;EndpointUrl=...;Region=... Empty disables the object store."
    )
    mirror_to_object_store: bool = Field(
        default=False,
        description="Replicate writes and deletes to the object store."
    )
    object_store_mock_mode: bool = Field(
        default=False,
        description="Use the in-memory object store instead of S3/R2."
    )
    strip_from_path_for_container: str = Field(
        default="",
        description="Substring removed from a path before its container is derived."
    )
    strip_from_path_for_key: str = Field(
        default="",
        description="Substring(s) removed before the object key is built. Separate several with '|'."
    )
    remote_failure_policy: Literal["log", "raise"] = Field(
        default="log",
        description="'log' keeps local success on a failed mirror step; 'raise' surfaces it."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def uses_direct_root(self) -> bool:
        return bool(self.media_root_path and self.media_root_url)

    @property
    def object_store_configured(self) -> bool:
        """True if a remote store (real or mock) is available."""
        return self.object_store_mock_mode or bool(self.object_store_connection_string.strip())

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields. Kept separate from Pydantic
        validation because what is required depends on the other flags.
        """
        missing = []

        if not self.uses_direct_root:
            if not self.media_virtual_root:
                missing.append("MEDIA_VIRTUAL_ROOT")
            if not self.app_root_path:
                missing.append("APP_ROOT_PATH")

        # The connection string is only required when mirroring to a real store
        if self.mirror_to_object_store and not self.object_store_mock_mode:
            if not self.object_store_connection_string.strip():
                missing.append("OBJECT_STORE_CONNECTION_STRING")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
