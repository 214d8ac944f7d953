from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from app.config.settings import Settings
from app.logging.logger import Log
from app.storage.base import BaseObjectStorage
from app.storage.exceptions import (
    StorageError,
    StorageObjectNotFoundError,
    StorageUnavailableError,
)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_UNAVAILABLE_CODES = frozenset({"SlowDown", "RequestTimeout", "ServiceUnavailable", "503"})


class S3ObjectStorage(BaseObjectStorage):
    """Object storage adapter for AWS S3 and S3-compatible services (MinIO, LocalStack)."""

    def __init__(self, client: Any, health_bucket: str) -> None:
        self._client = client
        self._health_bucket = health_bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStorage":
        client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url or None,
            region_name=settings.s3_region or None,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            config=Config(s3={"addressing_style": "path"}),
        )
        return cls(client, health_bucket=settings.s3_documents_bucket)

    def issue_upload_url(
        self, bucket: str, key: str, content_type: str, expires_in: int
    ) -> str:
        try:
            url = self._client.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": bucket,
                    "Key": key,
                    "ContentType": content_type or "application/octet-stream",
                },
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise _map_error(exc, key=key, action="presign-upload") from exc
        Log.debug(f"Generated presigned upload URL for key: {key}")
        return str(url)

    def issue_download_url(self, bucket: str, key: str, expires_in: int) -> str:
        try:
            url = self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise _map_error(exc, key=key, action="presign-download") from exc
        Log.debug(f"Generated presigned download URL for key: {key}")
        return str(url)

    def object_exists(self, bucket: str, key: str) -> bool:
        try:
            self._client.head_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            mapped = _map_error(exc, key=key, action="head")
            if isinstance(mapped, StorageObjectNotFoundError):
                return False
            raise mapped from exc
        return True

    def read_object(self, bucket: str, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            body = response["Body"]
            try:
                return body.read()
            finally:
                body.close()
        except (BotoCoreError, ClientError) as exc:
            raise _map_error(exc, key=key, action="read") from exc

    def health_check(self) -> bool:
        try:
            self._client.head_bucket(Bucket=self._health_bucket)
        except (BotoCoreError, ClientError) as exc:
            Log.error(f"S3 health check failed: {exc}")
            return False
        return True


def _map_error(exc: Exception, *, key: str, action: str) -> StorageError:
    """Translate botocore errors into storage errors."""
    if isinstance(exc, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        Log.warning(f"Storage unavailable during {action} of {key}: {exc}")
        return StorageUnavailableError(f"Storage unavailable ({action}): {exc}")
    if isinstance(exc, ClientError):
        code = str((exc.response.get("Error") or {}).get("Code") or "")
        if code in _NOT_FOUND_CODES:
            return StorageObjectNotFoundError(f"Object not found: {key}")
        if code in _UNAVAILABLE_CODES:
            return StorageUnavailableError(f"Storage temporarily unavailable ({action}): {code}")
        Log.error(f"Storage error during {action} of {key}: code={code}")
        return StorageError(f"Storage failure ({action}): code={code}")
    Log.error(f"Storage error during {action} of {key}: {exc}")
    return StorageError(f"Storage failure ({action}): {exc}")
