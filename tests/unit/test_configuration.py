"""
Unit tests for storage roots, settings and file system construction.

Settings are built with _env_file=None so a developer's .env file can't
leak into the results.
"""

import io
import os

import pytest

from mirrorfs.config.settings import Settings, get_settings
from mirrorfs.core.errors import ConfigurationError
from mirrorfs.core.models import MirrorMode, RemoteFailurePolicy, StorageRoot
from mirrorfs.dependencies import build_object_store_client, create_file_system
from mirrorfs.infrastructure.storage.client import (
    InMemoryObjectStoreClient,
    S3ObjectStoreClient,
)

CONNECTION_STRING = "AccessKeyId=AKIA;SecretAccessKey=secret;EndpointUrl=http://localhost:9000"


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


# ---------------------------------------------------------------------------
# Storage roots
# ---------------------------------------------------------------------------

class TestStorageRoot:
    """Tests for StorageRoot validation and virtual root mapping."""

    def test_direct_root(self):
        root = StorageRoot(local_root="/data/media", url_prefix="https://cdn.example/media")
        assert root.local_root == "/data/media"

    @pytest.mark.parametrize(
        "local_root, url_prefix, message",
        [
            ("", "/media", "local root"),
            ("/data/media", "", "root URL"),
            ("~/media", "/media", "virtual path"),
            ("media", "/media", "absolute path"),
        ],
    )
    def test_direct_root_rejects_bad_values(self, local_root, url_prefix, message):
        with pytest.raises(ConfigurationError, match=message):
            StorageRoot(local_root=local_root, url_prefix=url_prefix)

    def test_virtual_root_maps_onto_app_root(self, tmp_path):
        root = StorageRoot.from_virtual_root("~/media", str(tmp_path), "https://cdn.example/")

        assert root.local_root == os.path.join(str(tmp_path), "media")
        assert root.url_prefix == "https://cdn.example/media"

    def test_virtual_root_without_base_url_is_site_relative(self, tmp_path):
        root = StorageRoot.from_virtual_root("~/media/uploads/", str(tmp_path))

        assert root.local_root == os.path.join(str(tmp_path), "media", "uploads")
        assert root.url_prefix == "/media/uploads"

    @pytest.mark.parametrize("virtual_root", ["", "media", "/media"])
    def test_virtual_root_must_start_with_marker(self, virtual_root, tmp_path):
        with pytest.raises(ConfigurationError):
            StorageRoot.from_virtual_root(virtual_root, str(tmp_path))

    def test_configuration_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            StorageRoot(local_root="", url_prefix="")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestSettings:
    """Tests for Settings parsing and validation."""

    def test_defaults_mirror_nothing(self):
        settings = make_settings()

        assert settings.media_virtual_root == "~/media"
        assert not settings.mirror_to_object_store
        assert not settings.object_store_configured
        assert settings.validate_required_fields() == []

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MIRROR_TO_OBJECT_STORE", "true")
        monkeypatch.setenv("OBJECT_STORE_CONNECTION_STRING", CONNECTION_STRING)
        monkeypatch.setenv("REMOTE_FAILURE_POLICY", "raise")

        settings = make_settings()

        assert settings.mirror_to_object_store
        assert settings.object_store_configured
        assert settings.remote_failure_policy == "raise"

    def test_rejects_unknown_failure_policy(self):
        with pytest.raises(ValueError):
            make_settings(remote_failure_policy="retry")

    def test_mirroring_without_connection_string_is_missing_config(self):
        settings = make_settings(mirror_to_object_store=True)
        assert settings.validate_required_fields() == ["OBJECT_STORE_CONNECTION_STRING"]

    def test_mock_mode_needs_no_connection_string(self):
        settings = make_settings(mirror_to_object_store=True, object_store_mock_mode=True)

        assert settings.validate_required_fields() == []
        assert settings.object_store_configured

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


# ---------------------------------------------------------------------------
# File system construction
# ---------------------------------------------------------------------------

class TestCreateFileSystem:
    """Tests for building a MirroredFileSystem from settings."""

    def test_no_object_store_means_disabled(self, tmp_path):
        fs = create_file_system(make_settings(app_root_path=str(tmp_path)))

        assert fs.mode is MirrorMode.DISABLED
        assert fs.root.local_root == os.path.join(str(tmp_path), "media")

    def test_direct_root_wins_over_virtual_root(self, tmp_path):
        settings = make_settings(
            media_root_path=str(tmp_path / "data" / "media"),
            media_root_url="https://cdn.example/media",
        )

        fs = create_file_system(settings)

        assert fs.root == StorageRoot(str(tmp_path / "data" / "media"), "https://cdn.example/media")

    def test_connection_string_without_flag_is_local_only(self, tmp_path):
        settings = make_settings(
            app_root_path=str(tmp_path),
            object_store_connection_string=CONNECTION_STRING,
        )

        assert create_file_system(settings).mode is MirrorMode.LOCAL_ONLY

    def test_mock_store_with_flag_mirrors(self, tmp_path):
        settings = make_settings(
            app_root_path=str(tmp_path),
            mirror_to_object_store=True,
            object_store_mock_mode=True,
            strip_from_path_for_key="originals/",
        )

        fs = create_file_system(settings)

        assert fs.mode is MirrorMode.LOCAL_AND_REMOTE
        assert fs.translator.remote_key_for_file("images/originals/a.jpg").key == "a.jpg"

    def test_injected_object_store_is_used(self, tmp_path, remote):
        settings = make_settings(
            app_root_path=str(tmp_path),
            mirror_to_object_store=True,
            object_store_mock_mode=True,
            remote_failure_policy="raise",
        )

        fs = create_file_system(settings, object_store=remote)
        fs.add_file("sub/a.txt", io.BytesIO(b"data"))

        assert remote.calls == [("upload", "sub", "a.txt")]

    def test_malformed_connection_string_fails_at_construction(self, tmp_path):
        settings = make_settings(
            app_root_path=str(tmp_path),
            mirror_to_object_store=True,
            object_store_connection_string="not-a-connection-string",
        )

        with pytest.raises(ConfigurationError, match="Malformed"):
            create_file_system(settings)

    def test_missing_required_fields_fail_at_construction(self, tmp_path):
        settings = make_settings(app_root_path=str(tmp_path), mirror_to_object_store=True)

        with pytest.raises(ConfigurationError, match="OBJECT_STORE_CONNECTION_STRING"):
            create_file_system(settings)

    def test_bad_virtual_root_fails_at_construction(self, tmp_path):
        settings = make_settings(app_root_path=str(tmp_path), media_virtual_root="media")

        with pytest.raises(ConfigurationError, match="virtual path"):
            create_file_system(settings)


class TestBuildObjectStoreClient:
    """Tests for choosing the object store client from settings."""

    def test_none_when_unconfigured(self):
        assert build_object_store_client(make_settings()) is None

    def test_mock_mode(self):
        client = build_object_store_client(make_settings(object_store_mock_mode=True))
        assert isinstance(client, InMemoryObjectStoreClient)

    def test_connection_string(self):
        client = build_object_store_client(
            make_settings(object_store_connection_string=CONNECTION_STRING)
        )
        assert isinstance(client, S3ObjectStoreClient)


def test_failure_policy_values_match_settings():
    """Every accepted settings value maps onto a policy."""
    assert {policy.value for policy in RemoteFailurePolicy} == {"log", "raise"}


def test_package_exposes_public_api(tmp_path):
    """Hosts can build and use a file system from the top-level package alone."""
    import mirrorfs

    fs = mirrorfs.create_file_system(make_settings(app_root_path=str(tmp_path)))

    assert isinstance(fs, mirrorfs.MirroredFileSystem)
    assert issubclass(mirrorfs.MirrorError, mirrorfs.MirrorFileSystemError)
