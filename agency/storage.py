"""
File storage abstraction for S3-compatible buckets and in-memory testing.

Files are addressed by opaque ids; public URLs come from Settings.file_url.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from agency.config import Settings


class StorageError(Exception):
    pass


class FileNotFoundInStorageError(StorageError):
    pass


@dataclass
class FileRecord:
    id: str
    name: str
    mime_type: str
    size: int
    created_at: float

    def as_dict(self) -> dict:
        return asdict(self)


class StorageClient(Protocol):
    """Defines the operations the API needs from file storage."""

    def list_files(self, limit: int = 100) -> list[FileRecord]:
        ...

    def create_file(
        self, file_id: str, name: str, content: bytes, mime_type: str
    ) -> FileRecord:
        ...

    def delete_file(self, file_id: str) -> None:
        ...

    def view_url(self, file_id: str) -> str:
        ...

    def preview_url(
        self, file_id: str, width: Optional[int] = None, height: Optional[int] = None
    ) -> str:
        ...


class _UrlTemplateMixin:
    settings: Settings

    def view_url(self, file_id: str) -> str:
        return self.settings.file_url(file_id)

    def preview_url(
        self, file_id: str, width: Optional[int] = None, height: Optional[int] = None
    ) -> str:
        return self.settings.file_url(file_id, preview=True, width=width, height=height)


@dataclass
class InMemoryStorageClient(_UrlTemplateMixin):
    """Test double for storage interactions."""

    settings: Settings
    files: dict = None
    contents: dict = None

    def __post_init__(self):
        if self.files is None:
            self.files = {}
        if self.contents is None:
            self.contents = {}

    def reset(self) -> None:
        self.files.clear()
        self.contents.clear()

    def list_files(self, limit: int = 100) -> list[FileRecord]:
        records = sorted(self.files.values(), key=lambda record: record.created_at)
        return list(reversed(records))[:limit]

    def create_file(
        self, file_id: str, name: str, content: bytes, mime_type: str
    ) -> FileRecord:
        if file_id in self.files:
            raise StorageError(f"File {file_id} already exists")
        record = FileRecord(
            id=file_id,
            name=name,
            mime_type=mime_type,
            size=len(content),
            created_at=time.time(),
        )
        self.files[file_id] = record
        self.contents[file_id] = content
        return record

    def delete_file(self, file_id: str) -> None:
        if self.files.pop(file_id, None) is None:
            raise FileNotFoundInStorageError(file_id)
        self.contents.pop(file_id, None)


@dataclass
class S3StorageClient(_UrlTemplateMixin):
    """
    S3-compatible storage client. Objects are keyed by file id; the original
    name travels as object metadata.
    """

    settings: Settings
    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def list_files(self, limit: int = 100) -> list[FileRecord]:
        try:
            response = self._client.list_objects_v2(Bucket=self.bucket, MaxKeys=limit)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc
        records = []
        for item in response.get("Contents", []):
            records.append(
                FileRecord(
                    id=item["Key"],
                    name=item["Key"],
                    mime_type="",
                    size=item.get("Size", 0),
                    created_at=item["LastModified"].timestamp(),
                )
            )
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    def create_file(
        self, file_id: str, name: str, content: bytes, mime_type: str
    ) -> FileRecord:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=file_id,
                Body=content,
                ContentType=mime_type,
                Metadata={"filename": name},
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc
        return FileRecord(
            id=file_id,
            name=name,
            mime_type=mime_type,
            size=len(content),
            created_at=time.time(),
        )

    def delete_file(self, file_id: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=file_id)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc
