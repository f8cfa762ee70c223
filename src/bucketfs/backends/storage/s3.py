"""AWS S3 object storage backend.

Works with any S3-compatible service (Cloudflare R2, MinIO...) through
``endpoint_url``. Retries, signing and TLS are left to botocore.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, BinaryIO

from aiobotocore.config import AioConfig
from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError

from bucketfs.exceptions import StorageBackendError
from bucketfs.observability import get_logger
from bucketfs.protocols.object_storage import (
    ERROR_NOT_FOUND,
    ListObjectsPage,
    ObjectMetadata,
    ObjectResponse,
    ObjectSummary,
)

logger = get_logger(__name__)


def _succeeded(response: dict[str, Any]) -> bool:
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
    return 200 <= status < 300


def _metadata(key: str, response: dict[str, Any]) -> ObjectMetadata:
    return ObjectMetadata(
        key=key,
        content_length=response.get("ContentLength", 0),
        last_modified=response["LastModified"],
        content_type=response.get("ContentType"),
        etag=response.get("ETag"),
    )


class S3ObjectStorage:
    """Object storage backed by S3 through aiobotocore.

    The client is created on first use and kept until ``close()``.
    Use as an async context manager to scope it.
    """

    def __init__(
        self,
        endpoint_url: str | None = None,
        region: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        session_token: str | None = None,
        addressing_style: str = "auto",
        max_pool_connections: int = 10,
        client: Any | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize S3 object storage.

        Args:
            endpoint_url: Custom endpoint for S3-compatible services
            region: AWS region name
            access_key_id: Access key; falls back to the default credential chain
            secret_access_key: Secret key
            session_token: Optional session token for temporary credentials
            addressing_style: "auto", "path" or "virtual"
            max_pool_connections: HTTP connection pool size
            client: Pre-built aiobotocore S3 client (the caller owns its lifecycle)
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.endpoint_url = endpoint_url
        self.region = region
        self._credentials = {
            "aws_access_key_id": access_key_id,
            "aws_secret_access_key": secret_access_key,
            "aws_session_token": session_token,
        }
        self._config = AioConfig(
            s3={"addressing_style": addressing_style},
            max_pool_connections=max_pool_connections,
        )
        self._client = client
        self._exit_stack: AsyncExitStack | None = None
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        async with self._client_lock:
            if self._client is None:
                self._exit_stack = AsyncExitStack()
                session = get_session()
                self._client = await self._exit_stack.enter_async_context(
                    session.create_client(
                        "s3",
                        endpoint_url=self.endpoint_url,
                        region_name=self.region,
                        config=self._config,
                        **{k: v for k, v in self._credentials.items() if v},
                    )
                )
                logger.debug(
                    "S3 client created",
                    context={"endpoint_url": self.endpoint_url, "region": self.region},
                )
        return self._client

    async def close(self) -> None:
        """Close the client if this backend created it."""
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None
            self._client = None

    async def __aenter__(self) -> "S3ObjectStorage":
        await self._get_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def _translate_errors(self, key: str | None = None) -> AsyncIterator[None]:
        """Convert botocore failures into StorageBackendError."""
        try:
            yield
        except ClientError as e:
            error = e.response.get("Error", {})
            code = str(error.get("Code") or "") or None
            # HEAD responses carry no body, botocore reports the bare status
            if code == "404":
                code = ERROR_NOT_FOUND
            raise StorageBackendError(
                error.get("Message") or str(e), code=code, key=key, cause=e
            ) from e
        except BotoCoreError as e:
            raise StorageBackendError(str(e), key=key, cause=e) from e

    async def get_object(self, bucket: str, key: str) -> ObjectResponse:
        """Fetch an object's metadata and content."""
        client = await self._get_client()
        async with self._translate_errors(key):
            response = await client.get_object(Bucket=bucket, Key=key)
        return ObjectResponse(metadata=_metadata(key, response), body=response["Body"])

    async def head_object(self, bucket: str, key: str) -> ObjectMetadata:
        """Fetch an object's metadata only."""
        client = await self._get_client()
        async with self._translate_errors(key):
            response = await client.head_object(Bucket=bucket, Key=key)
        return _metadata(key, response)

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes | BinaryIO,
        content_type: str | None = None,
    ) -> bool:
        """Store an object, replacing any existing one."""
        params: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type

        client = await self._get_client()
        async with self._translate_errors(key):
            response = await client.put_object(**params)
        return _succeeded(response)

    async def delete_object(self, bucket: str, key: str) -> bool:
        """Delete one object. Deleting a missing key succeeds."""
        client = await self._get_client()
        async with self._translate_errors(key):
            response = await client.delete_object(Bucket=bucket, Key=key)
        return _succeeded(response)

    async def delete_objects(self, bucket: str, keys: list[str]) -> bool:
        """Delete a batch of objects in one request.

        S3 answers 200 even when individual keys fail, so per-key errors
        also count as failure.
        """
        client = await self._get_client()
        async with self._translate_errors():
            response = await client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
            )

        errors = response.get("Errors") or []
        if errors:
            logger.warning(
                "Batch delete reported per-key errors",
                context={
                    "bucket": bucket,
                    "failed": len(errors),
                    "first_code": errors[0].get("Code"),
                    "first_key": errors[0].get("Key"),
                },
            )
        return _succeeded(response) and not errors

    async def copy_object(
        self,
        source_bucket: str,
        source_key: str,
        destination_bucket: str,
        destination_key: str,
    ) -> bool:
        """Copy an object server-side."""
        client = await self._get_client()
        async with self._translate_errors(source_key):
            response = await client.copy_object(
                Bucket=destination_bucket,
                Key=destination_key,
                CopySource={"Bucket": source_bucket, "Key": source_key},
            )
        return _succeeded(response)

    async def list_objects_v2(
        self,
        bucket: str,
        prefix: str,
        delimiter: str | None = None,
        continuation_token: str | None = None,
        max_keys: int | None = None,
    ) -> ListObjectsPage:
        """List one page of objects under a prefix."""
        params: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if delimiter:
            params["Delimiter"] = delimiter
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        if max_keys:
            params["MaxKeys"] = max_keys

        client = await self._get_client()
        async with self._translate_errors(prefix):
            response = await client.list_objects_v2(**params)

        return ListObjectsPage(
            objects=[
                ObjectSummary(
                    key=item["Key"],
                    size=item.get("Size", 0),
                    last_modified=item["LastModified"],
                    etag=item.get("ETag"),
                )
                for item in response.get("Contents", [])
            ],
            common_prefixes=[item["Prefix"] for item in response.get("CommonPrefixes", [])],
            next_continuation_token=response.get("NextContinuationToken"),
        )
