"""S3 (and S3-compatible) object store gateway.

ObjectStore is the three-call capability the resizer needs. S3ObjectStore
implements it on a boto3 client; the blocking SDK calls run in a thread so
they are the only places a request waits on the event loop.

No retries happen here: botocore is configured with a single attempt.
"""

import asyncio
import logging
from typing import Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from resizer_py.config import Config
from resizer_py.errors import NotFound, StoreError
from resizer_py.s3_url import ObjectRef

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_MISSING_SOURCE_CODES = _MISSING_CODES | {"NoSuchBucket"}


class ObjectStore(Protocol):
    async def exists(self, ref: ObjectRef) -> bool: ...

    async def fetch(self, ref: ObjectRef) -> bytes: ...

    async def store(self, ref: ObjectRef, body: bytes, content_type: str) -> None: ...


def create_s3_client(config: Config):
    """Create a boto3 S3 client from config. Credentials fall back to boto3's default chain."""
    kwargs = {
        "region_name": config.aws_region,
        "config": BotoConfig(
            retries={"total_max_attempts": 1, "mode": "standard"},
            max_pool_connections=max(10, config.resize_workers * 2),
        ),
    }
    if config.s3_endpoint_url:
        kwargs["endpoint_url"] = config.s3_endpoint_url
    if config.aws_access_key_id and config.aws_secret_access_key:
        kwargs["aws_access_key_id"] = config.aws_access_key_id
        kwargs["aws_secret_access_key"] = config.aws_secret_access_key
    return boto3.client("s3", **kwargs)


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3ObjectStore:
    def __init__(self, client):
        self._client = client

    def _head(self, ref: ObjectRef) -> bool:
        try:
            self._client.head_object(Bucket=ref.bucket, Key=ref.key)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise StoreError(f"Failed to check {ref.url}: {_error_code(e) or 'unknown error'}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to check {ref.url}") from e
        return True

    def _get(self, ref: ObjectRef) -> bytes:
        try:
            response = self._client.get_object(Bucket=ref.bucket, Key=ref.key)
            return response["Body"].read()
        except ClientError as e:
            if _error_code(e) in _MISSING_SOURCE_CODES:
                raise NotFound(f"Source image not found: {ref.url}") from e
            raise StoreError(f"Failed to download {ref.url}: {_error_code(e) or 'unknown error'}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to download {ref.url}") from e

    def _put(self, ref: ObjectRef, body: bytes, content_type: str) -> None:
        try:
            self._client.put_object(Bucket=ref.bucket, Key=ref.key, Body=body, ContentType=content_type)
        except ClientError as e:
            raise StoreError(f"Failed to upload {ref.url}: {_error_code(e) or 'unknown error'}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to upload {ref.url}") from e

    async def exists(self, ref: ObjectRef) -> bool:
        logger.info(f"Checking if object exists: bucket={ref.bucket}, key={ref.key}")
        found = await asyncio.to_thread(self._head, ref)
        logger.info(f"Object {'exists' if found else 'does not exist'}: {ref.url}")
        return found

    async def fetch(self, ref: ObjectRef) -> bytes:
        logger.info(f"Downloading from S3: bucket={ref.bucket}, key={ref.key}")
        return await asyncio.to_thread(self._get, ref)

    async def store(self, ref: ObjectRef, body: bytes, content_type: str) -> None:
        logger.info(f"Uploading to S3: bucket={ref.bucket}, key={ref.key} ({len(body)} bytes)")
        await asyncio.to_thread(self._put, ref, body, content_type)
