"""
Object storage client for proxied reads.

Supports AWS S3 and S3-compatible stores (MinIO, R2) via boto3, with a
mock mode for local development.

boto3 is synchronous, so the get-object call and every chunk read run in
a worker thread (asyncio.to_thread). The event loop keeps serving other
requests while a slow backend is being read.

Mock mode stores objects in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, Optional

from ...core.relay.models import (
    AccessDenied,
    BackendError,
    BackendOutcome,
    Found,
    NotFound,
)
from ...core.relay.relay import BackendClient

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

# botocore error codes that mean "this object isn't there"
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NoSuchBucket", "NotFound"})
ACCESS_DENIED_CODES = frozenset({"403", "AccessDenied", "Forbidden"})


class StorageError(Exception):
    """Raised when the storage client cannot be constructed."""
    pass


@dataclass(frozen=True)
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    Credentials are optional: when unset, boto3's default chain
    (environment, shared profile, instance role) resolves and refreshes them.
    """
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    max_attempts: int = 3


# ---------------------------------------------------------------------------
# Body Streams
# ---------------------------------------------------------------------------

class S3ObjectBody:
    """
    Async view of a botocore StreamingBody.

    Reads one chunk per thread hop. aclose() closes the underlying
    connection without awaiting, so it completes even inside a cancelled
    task (client disconnect).
    """

    def __init__(self, stream, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._stream = stream
        self._chunk_size = chunk_size

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await asyncio.to_thread(self._stream.read, self._chunk_size)
            if not chunk:
                break
            yield chunk

    async def aclose(self) -> None:
        self._stream.close()


class MemoryObjectBody:
    """Body backed by bytes already in memory, served in fixed-size chunks."""

    def __init__(self, data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._data = data
        self._chunk_size = chunk_size
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for start in range(0, len(self._data), self._chunk_size):
            yield self._data[start:start + self._chunk_size]

    async def aclose(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# S3 Client
# ---------------------------------------------------------------------------

class S3BackendClient:
    """
    Read-only S3 client shared by all requests.

    Uses boto3 because every S3-compatible store speaks its API. The
    underlying boto3 client is thread-safe and never mutated after
    construction, so one instance serves all concurrent requests.

    Every backend failure is turned into a BackendOutcome; get_object
    does not raise.
    """

    def __init__(self, config: StorageConfig, s3_client=None) -> None:
        """
        Initialize the client with boto3.

        Args:
            config: Storage configuration
            s3_client: Pre-built boto3 S3 client (tests inject a stubbed one)
        """
        self._config = config

        if s3_client is None:
            s3_client = self._build_client(config)
        self._s3_client = s3_client

        logger.info(
            "Initialized S3 storage client",
            extra={
                "region": config.region,
                "endpoint": config.endpoint_url or "aws",
            }
        )

    @staticmethod
    def _build_client(config: StorageConfig):
        import boto3
        from botocore.config import Config
        from botocore.exceptions import BotoCoreError

        boto_config = Config(
            signature_version="s3v4",
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            retries={"max_attempts": config.max_attempts},
        )

        try:
            return boto3.client(
                "s3",
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
                config=boto_config,
            )
        except (BotoCoreError, ValueError) as e:
            raise StorageError(f"Cannot create S3 client: {e}") from e

    async def get_object(
        self,
        bucket: str,
        key: str,
        byte_range: Optional[str] = None,
    ) -> BackendOutcome:
        """
        Fetch an object and map the result to a BackendOutcome.

        The Range header, if any, is passed through verbatim.
        """
        from botocore.exceptions import BotoCoreError, ClientError

        params = {"Bucket": bucket, "Key": key}
        if byte_range:
            params["Range"] = byte_range

        try:
            response = await asyncio.to_thread(self._s3_client.get_object, **params)
        except ClientError as e:
            return self._from_client_error(e, bucket, key)
        except BotoCoreError as e:
            logger.error(
                "Transport failure talking to storage",
                extra={"bucket": bucket, "key": key, "error": str(e)}
            )
            return BackendError(detail=f"transport failure: {e}")

        return Found(
            body=S3ObjectBody(response["Body"], self._config.chunk_size),
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength"),
            e_tag=response.get("ETag"),
            last_modified=response.get("LastModified"),
            content_range=response.get("ContentRange"),
            accept_ranges=response.get("AcceptRanges"),
        )

    @staticmethod
    def _from_client_error(error, bucket: str, key: str) -> BackendOutcome:
        """Map a botocore ClientError onto a BackendOutcome."""
        code = str(error.response.get("Error", {}).get("Code", ""))
        status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

        if code in NOT_FOUND_CODES or status_code == 404:
            logger.debug(
                "Object not found",
                extra={"bucket": bucket, "key": key, "code": code}
            )
            return NotFound()

        if code in ACCESS_DENIED_CODES or status_code == 403:
            logger.warning(
                "Access denied by storage",
                extra={"bucket": bucket, "key": key, "code": code}
            )
            return AccessDenied()

        logger.error(
            "Unexpected storage error",
            extra={
                "bucket": bucket,
                "key": key,
                "code": code,
                "status": status_code,
                "error": str(error),
            }
        )
        return BackendError(detail=f"{code or 'error'} (HTTP {status_code}): {error}")


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class StoredObject:
    data: bytes
    content_type: Optional[str] = None
    last_modified: Optional[datetime] = None


class MockStorageClient:
    """
    In-memory storage for local development.

    This mock enables testing the full proxy flow without provisioning
    real object storage. Objects are stored in a dictionary keyed by
    (bucket, key). Range requests are not interpreted: the whole object
    is always returned.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(
        self,
        objects: Optional[Iterable[tuple[str, str, bytes]]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        denied_buckets: Iterable[str] = (),
    ) -> None:
        self._objects: dict[tuple[str, str], StoredObject] = {}
        self._chunk_size = chunk_size
        self._denied_buckets = set(denied_buckets)
        # Every get_object call, in order, for assertions in tests
        self.calls: list[tuple[str, str, Optional[str]]] = []

        for bucket, key, data in objects or ():
            self.put_object(bucket, key, data)

        logger.info("Initialized mock storage client (in-memory)")

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> None:
        """Store an object in memory."""
        self._objects[(bucket, key)] = StoredObject(
            data=data,
            content_type=content_type,
            last_modified=datetime.now(timezone.utc),
        )

    async def get_object(
        self,
        bucket: str,
        key: str,
        byte_range: Optional[str] = None,
    ) -> BackendOutcome:
        """Retrieve an object from memory."""
        self.calls.append((bucket, key, byte_range))

        if bucket in self._denied_buckets:
            return AccessDenied()

        stored = self._objects.get((bucket, key))
        if stored is None:
            return NotFound()

        return Found(
            body=MemoryObjectBody(stored.data, self._chunk_size),
            content_type=stored.content_type or "binary/octet-stream",
            content_length=len(stored.data),
            last_modified=stored.last_modified,
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> BackendClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        BackendClient implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient(
            chunk_size=config.chunk_size if config else DEFAULT_CHUNK_SIZE,
        )

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3BackendClient(config)
