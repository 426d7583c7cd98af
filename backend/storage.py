"""
Storage abstraction for Supabase Storage (S3-compatible) and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError


class StorageClient(Protocol):
    """Defines the operations the importer and API need from object storage."""

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict] = None,
    ) -> None:
        ...

    def upload_file(self, src_path: str, dest_path: str, content_type: str) -> None:
        ...

    def get_bytes(self, path: str) -> bytes:
        ...

    def exists(self, path: str) -> bool:
        ...

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    metadata: dict = field(default_factory=dict)


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict] = None,
    ) -> None:
        self.stored_objects[path] = StoredObject(
            data=bytes(data), content_type=content_type, metadata=dict(metadata or {})
        )

    def upload_file(self, src_path: str, dest_path: str, content_type: str) -> None:
        with open(src_path, "rb") as f:
            self.upload_bytes(dest_path, f.read(), content_type)

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored.data

    def exists(self, path: str) -> bool:
        return path in self.stored_objects

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client. Supabase Storage exposes its buckets through
    an S3 endpoint that needs path-style addressing.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    addressing_style: str = "path"

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": self.addressing_style},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: Optional[dict] = None,
    ) -> None:
        # put_object replaces any existing object, so re-uploads are idempotent.
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
            Metadata={k: str(v) for k, v in (metadata or {}).items()},
        )

    def upload_file(self, src_path: str, dest_path: str, content_type: str) -> None:
        self._client.upload_file(
            src_path,
            self.bucket,
            dest_path,
            ExtraArgs={"ContentType": content_type},
        )

    def get_bytes(self, path: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                raise FileNotFoundError(path) from exc
            raise
        return response["Body"].read()

    def exists(self, path: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise
        return True

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=expires_in,
        )
