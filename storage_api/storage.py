from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import boto3
from botocore.config import Config

from storage_api.config import S3Config
from storage_api.db import now_ms
from storage_api.types import UrlMetadata


class StorageBackend(ABC):
    """Object-store operations the storage API needs."""

    provider: str = "Unknown"

    @abstractmethod
    def url_metadata(self, key: str) -> UrlMetadata:
        """Return a permanent public URL or a time-limited signed URL for ``key``."""

    @abstractmethod
    def upload_url(self, key: str, content_type: str) -> str: ...

    @abstractmethod
    def download_url(self, key: str) -> str: ...

    @abstractmethod
    def list_objects(self, prefix: str = "") -> list[dict[str, Any]]: ...

    @abstractmethod
    def delete_object(self, key: str) -> None: ...

    @abstractmethod
    def rename_object(self, key: str, new_key: str) -> None: ...

    @abstractmethod
    def put_object(self, key: str, body: bytes, content_type: str) -> None: ...

    @abstractmethod
    def test_connection(self) -> None:
        """Raise if the object store cannot be reached with the current config."""


def public_url(endpoint: str, key: str) -> str:
    if endpoint.endswith("/"):
        return f"{endpoint}{key}"
    return f"{endpoint}/{key}"


def build_s3_client(config: S3Config):
    client_config = None
    if config.force_path_style:
        client_config = Config(s3={"addressing_style": "path"})
    return boto3.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        config=client_config,
    )


class S3StorageBackend(StorageBackend):
    """S3-compatible backend (AWS, R2, B2, MinIO, ...)."""

    def __init__(self, config: S3Config, client=None, clock: Callable[[], int] = now_ms):
        if not config.bucket:
            raise ValueError("S3Config.bucket is required")
        self.config = config
        self.bucket = config.bucket
        self.provider = config.provider
        self.client = client or build_s3_client(config)
        self.clock = clock

    def _presign(self, method: str, expires_in: int, **params: Any) -> str:
        return self.client.generate_presigned_url(
            method,
            Params={"Bucket": self.bucket, **params},
            ExpiresIn=expires_in,
        )

    def url_metadata(self, key: str) -> UrlMetadata:
        if self.config.public_endpoint:
            return UrlMetadata(url=public_url(self.config.public_endpoint, key), is_permanent=True)
        ttl_s = self.config.signed_url_ttl_s
        issued_at = self.clock()
        url = self._presign("get_object", ttl_s, Key=key)
        return UrlMetadata(url=url, is_permanent=False, expires_at=issued_at + ttl_s * 1000)

    def upload_url(self, key: str, content_type: str) -> str:
        return self._presign(
            "put_object", self.config.transfer_url_ttl_s, Key=key, ContentType=content_type
        )

    def download_url(self, key: str) -> str:
        return self._presign("get_object", self.config.transfer_url_ttl_s, Key=key)

    def list_objects(self, prefix: str = "") -> list[dict[str, Any]]:
        files: list[dict[str, Any]] = []
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                modified = obj.get("LastModified")
                files.append(
                    {
                        "key": obj["Key"],
                        "size": obj.get("Size"),
                        "lastModified": modified.isoformat() if modified else None,
                    }
                )
        return files

    def delete_object(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)

    def rename_object(self, key: str, new_key: str) -> None:
        self.client.copy_object(
            Bucket=self.bucket,
            CopySource={"Bucket": self.bucket, "Key": key},
            Key=new_key,
        )
        self.client.delete_object(Bucket=self.bucket, Key=key)

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        self.client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType=content_type)

    def test_connection(self) -> None:
        self.client.list_objects_v2(Bucket=self.bucket, MaxKeys=1)
