# college_notes/storage/object_store.py
from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from college_notes.core.config import Settings
from college_notes.core.errors import StoreError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(frozen=True)
class PutResult:
    key: str
    bucket: str
    location: str
    etag: Optional[str]


class ObjectStore(abc.ABC):
    """
    Blob store keyed by hierarchical path strings.

    put/copy/delete/presigned_get_url raise StoreError. Callers decide which
    failures are fatal: the moderation paths treat copy/delete as best-effort.
    """

    bucket: str

    @abc.abstractmethod
    def put(self, key: str, data: bytes, content_type: str, metadata: Optional[Dict[str, str]] = None) -> PutResult:
        ...

    @abc.abstractmethod
    def get(self, key: str) -> bytes:
        ...

    @abc.abstractmethod
    def copy(self, source_key: str, dest_key: str) -> None:
        ...

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abc.abstractmethod
    def presigned_get_url(self, key: str, ttl_seconds: int) -> str:
        ...

    @abc.abstractmethod
    def list_keys(self, prefix: str) -> List[str]:
        ...

    def try_presigned_get_url(self, key: str, ttl_seconds: int) -> Optional[str]:
        """Read-path variant: logs and returns None instead of raising."""
        try:
            return self.presigned_get_url(key, ttl_seconds)
        except StoreError:
            logger.warning("presign failed", extra={"key": key})
            return None

    def delete_quietly(self, key: str) -> bool:
        """Best-effort delete. Never raises; returns False on failure."""
        try:
            self.delete(key)
            return True
        except StoreError:
            logger.exception("best-effort delete failed", extra={"key": key})
            return False


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


class S3ObjectStore(ObjectStore):
    def __init__(self, bucket: str, client=None, region: str = "us-east-1", endpoint_url: Optional[str] = None):
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self._client = client or boto3.client("s3", region_name=region, endpoint_url=endpoint_url)

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStore":
        client = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
        )
        return cls(
            settings.s3_bucket_name,
            client=client,
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
        )

    def _location(self, key: str) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{quote(key)}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quote(key)}"

    def put(self, key: str, data: bytes, content_type: str, metadata: Optional[Dict[str, str]] = None) -> PutResult:
        try:
            resp = self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata=metadata or {},
                StorageClass="STANDARD",
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to upload file to object store: {e}") from e

        logger.info("object stored", extra={"key": key, "size": len(data)})
        return PutResult(key=key, bucket=self.bucket, location=self._location(key), etag=resp.get("ETag"))

    def get(self, key: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to read {key}: {e}") from e

    def copy(self, source_key: str, dest_key: str) -> None:
        try:
            self._client.copy_object(
                Bucket=self.bucket,
                Key=dest_key,
                CopySource={"Bucket": self.bucket, "Key": source_key},
                MetadataDirective="COPY",
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to copy {source_key} to {dest_key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return
            raise StoreError(f"Failed to delete {key}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to delete {key}: {e}") from e
        logger.info("object deleted", extra={"key": key})

    def presigned_get_url(self, key: str, ttl_seconds: int) -> str:
        if not key:
            raise StoreError("Object key is required")
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": key,
                    "ResponseContentDisposition": "attachment",
                },
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to generate download URL: {e}") from e

    def list_keys(self, prefix: str) -> List[str]:
        keys: List[str] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to list {prefix}: {e}") from e
        return keys
