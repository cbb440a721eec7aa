from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import mimetypes
import os
import secrets
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Final
from urllib.parse import quote, urlencode

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from photo_ingest.core.config import Settings, get_settings
from photo_ingest.core.errors import StoreRejected, StoreUnavailable
from photo_ingest.services.keys import original_name_from_key

logger = logging.getLogger(__name__)

LOCAL_DOWNLOAD_SCHEME: Final[str] = "local://download/"

_UNAVAILABLE_CODES = frozenset(
    {"SlowDown", "Throttling", "ThrottlingException", "RequestTimeout", "ServiceUnavailable", "InternalError"}
)


@dataclass(frozen=True)
class StoredObject:
    key: str
    content_type: str | None
    size: int
    uploaded_at: datetime | None
    original_filename: str


@dataclass(frozen=True)
class ObjectPage:
    items: list[StoredObject]
    next_cursor: str | None = None


def guess_content_type(key: str) -> str:
    return mimetypes.guess_type(key)[0] or "application/octet-stream"


class ObjectStore(ABC):
    """Blob backend used by the upload and listing handlers."""

    scheme: str = ""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str, metadata: dict[str, str]) -> None:
        """Write the whole object or nothing."""

    @abstractmethod
    def presign_read(self, key: str, content_type: str | None, ttl_seconds: int) -> str:
        """Return a time-boxed read URL; does not check that the key exists.

        When ``content_type`` is None the stored Content-Type is served as is.
        """

    @abstractmethod
    async def list(
        self,
        prefix: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ObjectPage:
        """Return one page of objects under ``prefix`` in no guaranteed order."""


def _client_error_is_transient(exc: ClientError) -> bool:
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0
    code = exc.response.get("Error", {}).get("Code", "")
    return status >= 500 or code in _UNAVAILABLE_CODES


class S3ObjectStore(ObjectStore):
    """S3-compatible storage backend."""

    scheme: Final[str] = "s3"

    def __init__(self, settings: Settings | None = None, client: Any | None = None) -> None:
        self.settings = settings or get_settings()
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=str(self.settings.s3_endpoint) if self.settings.s3_endpoint else None,
                aws_access_key_id=self.settings.s3_access_key,
                aws_secret_access_key=self.settings.s3_secret_key,
                region_name=self.settings.region,
                config=Config(signature_version="s3v4"),
            )
        self.client = client
        self.bucket = self.settings.bucket_name

    async def put(self, key: str, data: bytes, content_type: str, metadata: dict[str, str]) -> None:
        def _put() -> None:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL="private",
                Metadata=metadata,
            )

        try:
            await asyncio.to_thread(_put)
        except ClientError as exc:
            if _client_error_is_transient(exc):
                raise StoreUnavailable(f"put {key}: {exc}") from exc
            raise StoreRejected(f"put {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreUnavailable(f"put {key}: {exc}") from exc

    def presign_read(self, key: str, content_type: str | None, ttl_seconds: int) -> str:
        params = {"Bucket": self.bucket, "Key": key}
        if content_type:
            params["ResponseContentType"] = content_type
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params=params,
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreUnavailable(f"presign {key}: {exc}") from exc

    async def list(
        self,
        prefix: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ObjectPage:
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "MaxKeys": limit or self.settings.list_page_size,
        }
        if prefix:
            params["Prefix"] = prefix
        if cursor:
            params["ContinuationToken"] = cursor

        try:
            response = await asyncio.to_thread(self.client.list_objects_v2, **params)
        except (BotoCoreError, ClientError) as exc:
            raise StoreUnavailable(f"list {prefix or '*'}: {exc}") from exc

        # ListObjectsV2 carries no Content-Type.
        items = [
            StoredObject(
                key=entry["Key"],
                content_type=None,
                size=int(entry.get("Size", 0)),
                uploaded_at=entry.get("LastModified"),
                original_filename=original_name_from_key(entry["Key"]),
            )
            for entry in response.get("Contents", [])
        ]
        next_cursor = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ObjectPage(items=items, next_cursor=next_cursor)


class LocalObjectStore(ObjectStore):
    """Local filesystem storage intended for development use."""

    scheme: Final[str] = "local"

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        root = Path(self.settings.local_storage_dir) / (self.settings.bucket_name or "")
        self.base_path = root.resolve()
        self.objects_path = self.base_path / "objects"
        self.meta_path = self.base_path / "meta"
        self.tmp_path = self.base_path / "tmp"
        for path in (self.objects_path, self.meta_path, self.tmp_path):
            path.mkdir(parents=True, exist_ok=True)
        signing_key = self.settings.local_signing_key
        self._signing_key = signing_key.encode("utf-8") if signing_key else secrets.token_bytes(32)

    def _resolve(self, root: Path, key: str, suffix: str = "") -> Path:
        # Prevent directory traversal by resolving inside the root
        parts = Path(key).parts
        if not parts:
            raise ValueError("Invalid storage key")
        candidate = root.joinpath(*parts[:-1], parts[-1] + suffix).resolve()
        if not candidate.is_relative_to(root):
            raise ValueError("Invalid storage key")
        return candidate

    def _key_path(self, key: str) -> Path:
        return self._resolve(self.objects_path, key)

    def _meta_file(self, key: str) -> Path:
        return self._resolve(self.meta_path, key, ".json")

    async def put(self, key: str, data: bytes, content_type: str, metadata: dict[str, str]) -> None:
        try:
            target = self._key_path(key)
            meta_target = self._meta_file(key)
        except ValueError as exc:
            raise StoreRejected(f"put {key}: {exc}") from exc

        record = {
            "content_type": content_type,
            "size": len(data),
            "metadata": metadata,
            "uploaded_at": metadata.get("uploadedat") or datetime.now(timezone.utc).isoformat(),
        }

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            meta_target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=self.tmp_path, delete=False) as tmp:
                tmp.write(data)
            try:
                meta_target.write_text(json.dumps(record), encoding="utf-8")
                os.replace(tmp.name, target)
            except OSError:
                Path(tmp.name).unlink(missing_ok=True)
                raise

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StoreUnavailable(f"put {key}: {exc}") from exc

    def _sign(self, key: str, expires: int) -> str:
        message = f"{key}\n{expires}".encode("utf-8")
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    def presign_read(self, key: str, content_type: str | None, ttl_seconds: int) -> str:
        # Returns a local scheme that routers translate into real URLs.
        expires = int(time.time()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._sign(key, expires)})
        return f"{LOCAL_DOWNLOAD_SCHEME}{quote(key)}?{query}"

    def verify_link(self, key: str, expires: int | None, signature: str | None) -> bool:
        """Check a download link minted by ``presign_read`` (signature only)."""
        if expires is None or not signature:
            return False
        return hmac.compare_digest(self._sign(key, expires), signature)

    def _read_meta(self, key: str) -> dict[str, Any]:
        try:
            return json.loads(self._meta_file(key).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}

    def _describe(self, key: str, path: Path) -> StoredObject:
        meta = self._read_meta(key)
        uploaded_at = meta.get("uploaded_at")
        return StoredObject(
            key=key,
            content_type=meta.get("content_type"),
            size=path.stat().st_size,
            uploaded_at=datetime.fromisoformat(uploaded_at) if uploaded_at else None,
            original_filename=meta.get("metadata", {}).get("originalfilename")
            or original_name_from_key(key),
        )

    async def list(
        self,
        prefix: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ObjectPage:
        page_size = limit or self.settings.list_page_size

        def _scan() -> ObjectPage:
            keys = sorted(
                path.relative_to(self.objects_path).as_posix()
                for path in self.objects_path.rglob("*")
                if path.is_file()
            )
            if prefix:
                keys = [key for key in keys if key.startswith(prefix)]
            if cursor:
                keys = [key for key in keys if key > cursor]
            selected = keys[:page_size]
            items = [self._describe(key, self.objects_path / key) for key in selected]
            next_cursor = selected[-1] if len(keys) > page_size else None
            return ObjectPage(items=items, next_cursor=next_cursor)

        try:
            return await asyncio.to_thread(_scan)
        except OSError as exc:
            raise StoreUnavailable(f"list {prefix or '*'}: {exc}") from exc

    def open_for_download(self, key: str) -> tuple[Path, str]:
        path = self._key_path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        meta = self._read_meta(key)
        return path, meta.get("content_type") or guess_content_type(key)


_object_store: ObjectStore | None = None


def create_object_store(settings: Settings) -> ObjectStore:
    if settings.storage_backend == "local":
        return LocalObjectStore(settings)
    return S3ObjectStore(settings)


def get_object_store() -> ObjectStore:
    global _object_store
    if _object_store is None:
        _object_store = create_object_store(get_settings())
    return _object_store


def reset_object_store() -> None:
    global _object_store
    _object_store = None
