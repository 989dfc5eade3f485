"""
Object storage client for mirrored files.

Supports any S3-compatible store (Cloudflare R2, AWS S3, MinIO) with a mock
mode for local development. A container maps to a bucket and a key to an
object key inside it.

Mock mode keeps objects in memory, enabling file system testing without
provisioning actual object storage.

None of these clients retry. Callers decide whether a failure is fatal or
best-effort.
"""

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional

from ...core.content_types import ContentTypeMap
from ...core.errors import ConfigurationError
from ...core.filesystem import ObjectStoreClient

logger = logging.getLogger(__name__)

# S3 accepts at most this many keys per delete_objects call
DELETE_BATCH_SIZE = 1000

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


class ObjectNotFoundError(StorageError):
    """Raised when an operation needs an object that does not exist."""

    def __init__(self, container: str, key: str) -> None:
        super().__init__(f"Object not found: {container}/{key}")
        self.container = container
        self.key = key


@dataclass
class ObjectStoreConfig:
    """
    Configuration for S3-compatible storage.

    Built from a connection string by parse_connection_string, or directly
    in tests.
    """
    access_key_id: str
    secret_access_key: str
    endpoint_url: Optional[str] = None  # None means AWS S3
    region: str = "auto"  # R2 uses 'auto' for region


_CONNECTION_STRING_FIELDS = {
    "accesskeyid": "access_key_id",
    "secretaccesskey": "secret_access_key",
    "endpointurl": "endpoint_url",
    "region": "region",
}


def parse_connection_string(connection_string: str) -> ObjectStoreConfig:
    """
    Parse "AccessKeyId=...;SecretAccessKey=...;EndpointUrl=...;Region=...".

    Names are case-insensitive and empty segments are ignored. Raises
    ConfigurationError for unknown names, segments without "=", or missing
    credentials.
    """
    if not connection_string or not connection_string.strip():
        raise ConfigurationError("The object store connection string cannot be empty")

    values: dict[str, str] = {}
    for segment in connection_string.split(";"):
        segment = segment.strip()
        if not segment:
            continue

        name, sep, value = segment.partition("=")
        if not sep:
            raise ConfigurationError(
                f"Malformed connection string segment: '{name}' (expected Name=Value)"
            )

        field_name = _CONNECTION_STRING_FIELDS.get(name.strip().lower())
        if field_name is None:
            raise ConfigurationError(f"Unknown connection string setting: '{name.strip()}'")

        values[field_name] = value.strip()

    missing = [
        name for name in ("access_key_id", "secret_access_key")
        if not values.get(name)
    ]
    if missing:
        raise ConfigurationError(
            f"Connection string is missing required settings: {', '.join(missing)}"
        )

    if not values.get("region"):
        values.pop("region", None)
    if not values.get("endpoint_url"):
        values.pop("endpoint_url", None)

    return ObjectStoreConfig(**values)


def _error_code(error: Exception) -> str:
    response = getattr(error, "response", None) or {}
    return str(response.get("Error", {}).get("Code", ""))


class S3ObjectStoreClient:
    """
    S3-compatible object storage client.

    Uses boto3 because R2, S3 and MinIO all speak the S3 API. Buckets are
    created on first upload if they don't exist yet; buckets seen to exist
    are remembered for the lifetime of the client.
    """

    def __init__(
        self,
        config: ObjectStoreConfig,
        content_types: Optional[ContentTypeMap] = None,
        s3_client=None,
    ) -> None:
        """
        Initialize the client with boto3.

        An already-built boto3 client can be passed in (tests use this with
        botocore's Stubber); otherwise one is created from config.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for S3 storage. Install with: pip install boto3"
            )

        self._config = config
        self._content_types = content_types or ContentTypeMap()
        self._known_containers: set[str] = set()

        if s3_client is None:
            # R2 requires v4 signatures and path-style addressing
            boto_config = Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'},
            )

            s3_client = boto3.client(
                's3',
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
                config=boto_config,
            )

        self._s3_client = s3_client

        logger.info(
            "Initialized S3 object store client",
            extra={"endpoint": config.endpoint_url, "region": config.region},
        )

    def exists(self, container: str, key: str) -> bool:
        """
        Check whether an object exists by fetching its metadata.

        Not found, auth failures and network errors all read as "does not
        exist"; there is no distinction between missing and unreachable.
        """
        try:
            self._s3_client.head_object(Bucket=container, Key=key)
            return True
        except Exception as e:
            logger.debug(
                "Object metadata fetch failed",
                extra={"container": container, "key": key, "error": str(e)},
            )
            return False

    def upload(
        self,
        stream: BinaryIO,
        container: str,
        key: str,
        content_type: Optional[str] = None,
    ) -> None:
        """
        Upload a stream, overwriting any object at the same key.

        The content type is looked up from the key's extension unless one is
        given; when neither resolves, no ContentType is sent.
        """
        self._ensure_container(container)

        extra_args = {}
        resolved_type = content_type or self._content_types.resolve(key)
        if resolved_type:
            extra_args['ContentType'] = resolved_type

        try:
            self._s3_client.put_object(
                Bucket=container,
                Key=key,
                Body=stream.read(),
                **extra_args,
            )
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"container": container, "key": key, "error": str(e)},
            )
            raise StorageError(f"Upload failed: {e}")

        logger.debug(
            "Uploaded object",
            extra={"container": container, "key": key, "content_type": resolved_type},
        )

    def delete(self, container: str, key: str) -> None:
        """
        Delete a single object.

        S3 deletes are idempotent, so existence is checked first to report
        a missing object as ObjectNotFoundError.
        """
        try:
            self._s3_client.head_object(Bucket=container, Key=key)
        except Exception as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(container, key)
            logger.error(
                "Failed to check object before delete",
                extra={"container": container, "key": key, "error": str(e)},
            )
            raise StorageError(f"Delete failed: {e}")

        try:
            self._s3_client.delete_object(Bucket=container, Key=key)
        except Exception as e:
            logger.error(
                "Failed to delete object",
                extra={"container": container, "key": key, "error": str(e)},
            )
            raise StorageError(f"Delete failed: {e}")

        logger.debug("Deleted object", extra={"container": container, "key": key})

    def delete_by_prefix(self, container: str, prefix: str) -> int:
        """
        Delete every object whose key starts with prefix.

        Emulates deleting a directory in a flat key space. Keys are listed
        page by page and deleted in batches.
        """
        count = 0
        failed_keys: list[str] = []

        try:
            paginator = self._s3_client.get_paginator('list_objects_v2')
            batch: list[dict] = []

            for page in paginator.paginate(Bucket=container, Prefix=prefix):
                for obj in page.get('Contents', []):
                    batch.append({'Key': obj['Key']})
                    if len(batch) == DELETE_BATCH_SIZE:
                        failed_keys.extend(self._delete_batch(container, batch))
                        count += len(batch)
                        batch = []

            if batch:
                failed_keys.extend(self._delete_batch(container, batch))
                count += len(batch)

        except Exception as e:
            logger.error(
                "Failed to delete objects by prefix",
                extra={"container": container, "prefix": prefix, "error": str(e)},
            )
            raise StorageError(f"Prefix delete failed: {e}")

        if failed_keys:
            logger.error(
                "Some objects could not be deleted by prefix",
                extra={
                    "container": container,
                    "prefix": prefix,
                    "failed_keys": failed_keys,
                    "count": count - len(failed_keys),
                },
            )
            raise StorageError(
                f"Prefix delete failed for {len(failed_keys)} of {count} objects: "
                f"{', '.join(failed_keys)}"
            )

        logger.info(
            "Deleted objects by prefix",
            extra={"container": container, "prefix": prefix, "count": count},
        )

        return count

    def download(self, container: str, key: str) -> Optional[io.BytesIO]:
        """Download an object into memory; None if it does not exist."""
        try:
            response = self._s3_client.get_object(Bucket=container, Key=key)
        except Exception as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return None
            logger.error(
                "Failed to download object",
                extra={"container": container, "key": key, "error": str(e)},
            )
            raise StorageError(f"Download failed: {e}")

        return io.BytesIO(response['Body'].read())

    def set_content_type_for_container(self, container: str, content_type: str) -> int:
        """
        Rewrite the content type of every object in a container.

        An administrative correction, not part of the normal write path.
        Each object is copied onto itself with replaced metadata; user
        metadata is carried over.
        """
        count = 0

        try:
            paginator = self._s3_client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=container):
                for obj in page.get('Contents', []):
                    key = obj['Key']
                    head = self._s3_client.head_object(Bucket=container, Key=key)
                    self._s3_client.copy_object(
                        Bucket=container,
                        Key=key,
                        CopySource={'Bucket': container, 'Key': key},
                        ContentType=content_type,
                        Metadata=head.get('Metadata', {}),
                        MetadataDirective='REPLACE',
                    )
                    count += 1

        except Exception as e:
            logger.error(
                "Failed to set content type for container",
                extra={"container": container, "error": str(e)},
            )
            raise StorageError(f"Content type update failed: {e}")

        logger.info(
            "Updated content type for container",
            extra={"container": container, "content_type": content_type, "count": count},
        )

        return count

    def _delete_batch(self, container: str, batch: list[dict]) -> list[str]:
        """Delete one batch of keys. Returns the keys S3 reported as not deleted."""
        # Quiet mode only reports failures, and does so with HTTP 200
        response = self._s3_client.delete_objects(
            Bucket=container,
            Delete={'Objects': batch, 'Quiet': True},
        )
        return [error['Key'] for error in response.get('Errors', [])]

    def _ensure_container(self, container: str) -> None:
        """Create the bucket if it doesn't exist yet."""
        if container in self._known_containers:
            return

        try:
            self._s3_client.head_bucket(Bucket=container)
        except Exception as e:
            if _error_code(e) not in _NOT_FOUND_CODES:
                raise StorageError(f"Container check failed: {e}")

            create_args = {}
            if self._config.region not in ("auto", "us-east-1"):
                create_args['CreateBucketConfiguration'] = {
                    'LocationConstraint': self._config.region,
                }

            try:
                self._s3_client.create_bucket(Bucket=container, **create_args)
            except Exception as create_error:
                if _error_code(create_error) != "BucketAlreadyOwnedByYou":
                    raise StorageError(f"Container create failed: {create_error}")

            logger.info("Created container", extra={"container": container})

        self._known_containers.add(container)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class StoredObject:
    """An object held by the in-memory client."""
    data: bytes
    content_type: Optional[str] = None


class InMemoryObjectStoreClient:
    """
    In-memory object storage for local development and tests.

    Objects live in a dict per container. Follows the same contract as the
    S3 client, including ObjectNotFoundError on deleting a missing object.

    Not suitable for production.
    """

    def __init__(self, content_types: Optional[ContentTypeMap] = None) -> None:
        # {container: {key: StoredObject}}
        self.containers: dict[str, dict[str, StoredObject]] = {}
        self._content_types = content_types or ContentTypeMap()
        logger.info("Initialized mock object store client (in-memory)")

    def exists(self, container: str, key: str) -> bool:
        return key in self.containers.get(container, {})

    def upload(
        self,
        stream: BinaryIO,
        container: str,
        key: str,
        content_type: Optional[str] = None,
    ) -> None:
        data = stream.read()
        objects = self.containers.setdefault(container, {})
        objects[key] = StoredObject(
            data=data,
            content_type=content_type or self._content_types.resolve(key),
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"container": container, "key": key, "size_bytes": len(data)},
        )

    def delete(self, container: str, key: str) -> None:
        objects = self.containers.get(container, {})
        if key not in objects:
            raise ObjectNotFoundError(container, key)
        del objects[key]

    def delete_by_prefix(self, container: str, prefix: str) -> int:
        objects = self.containers.get(container, {})
        keys_to_delete = [key for key in objects if key.startswith(prefix)]

        for key in keys_to_delete:
            del objects[key]

        logger.debug(
            "Deleted objects from mock storage",
            extra={"container": container, "prefix": prefix, "count": len(keys_to_delete)},
        )

        return len(keys_to_delete)

    def download(self, container: str, key: str) -> Optional[io.BytesIO]:
        stored = self.containers.get(container, {}).get(key)
        if stored is None:
            return None
        return io.BytesIO(stored.data)

    def set_content_type_for_container(self, container: str, content_type: str) -> int:
        objects = self.containers.get(container, {})
        for stored in objects.values():
            stored.content_type = content_type
        return len(objects)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_object_store_client(
    connection_string: Optional[str] = None,
    mock_mode: bool = False,
    content_types: Optional[ContentTypeMap] = None,
) -> ObjectStoreClient:
    """
    Create an object store client based on configuration.

    Args:
        connection_string: S3 connection string (required if not mock_mode)
        mock_mode: If True, return the in-memory client
        content_types: Extension table used to label uploads

    Returns:
        ObjectStoreClient implementation (S3 or in-memory)

    Raises:
        ConfigurationError: If the connection string is missing or malformed
    """
    if mock_mode:
        return InMemoryObjectStoreClient(content_types=content_types)

    config = parse_connection_string(connection_string or "")
    return S3ObjectStoreClient(config, content_types=content_types)
