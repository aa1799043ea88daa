"""
Blob storage for original resume files.
S3 when AWS credentials are configured (objects under {blob_key_prefix}/{blob_id}),
local filesystem fallback under upload_dir otherwise.

Blobs are immutable: store() always creates a new id; nothing overwrites in place.
"""
from __future__ import annotations

import asyncio
import json
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from roman.app.core.config import Settings, settings as default_settings
from roman.app.core.errors import AcquisitionError, BlobStorageError, ConfigurationError
from roman.app.core.logging_config import get_logger
from roman.app.schemas.resume import StoredBlob

logger = get_logger("services.blob_storage")

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_BLOB_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def _new_blob_id() -> str:
    return uuid.uuid4().hex


def _clean_metadata(metadata: dict[str, Any] | None) -> dict[str, str]:
    """Drop empty values and stringify the rest (S3 user metadata is str -> str)."""
    return {k: str(v) for k, v in (metadata or {}).items() if v is not None and v != ""}


class BlobStore:
    """Interface: store / retrieve / delete / describe by opaque id."""

    async def store(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        metadata: dict[str, Any] | None = None,
    ) -> StoredBlob:
        raise NotImplementedError

    async def retrieve(self, blob_id: str) -> bytes:
        raise NotImplementedError

    async def delete(self, blob_id: str) -> None:
        raise NotImplementedError

    async def describe(self, blob_id: str) -> StoredBlob | None:
        raise NotImplementedError


class S3BlobStore(BlobStore):
    def __init__(self, cfg: Settings | None = None, client: Any = None):
        self.cfg = cfg or default_settings
        self._client = client

    def _get_s3_client(self):
        """Get configured S3 client (created once, reused)."""
        if self._client is None:
            if not self.cfg.aws_access_key_id or not self.cfg.aws_secret_access_key:
                raise ConfigurationError(
                    "AWS credentials not configured (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)"
                )
            self._client = boto3.client(
                "s3",
                aws_access_key_id=self.cfg.aws_access_key_id,
                aws_secret_access_key=self.cfg.aws_secret_access_key,
                region_name=self.cfg.aws_region,
            )
        return self._client

    def _key(self, blob_id: str) -> str:
        return f"{self.cfg.blob_key_prefix}/{blob_id}"

    def _store_sync(self, data: bytes, filename: str, content_type: str, metadata: dict[str, str]) -> StoredBlob:
        blob_id = _new_blob_id()
        key = self._key(blob_id)
        uploaded_at = datetime.now(timezone.utc)
        logger.info(
            "S3 upload started bucket=%s key=%s filename=%s size_bytes=%d",
            self.cfg.aws_bucket_name,
            key,
            filename,
            len(data),
        )
        try:
            self._get_s3_client().put_object(
                Bucket=self.cfg.aws_bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata={**metadata, "filename": filename, "uploaded_at": uploaded_at.isoformat()},
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            msg = e.response.get("Error", {}).get("Message", str(e))
            logger.error(
                "S3 upload failed bucket=%s key=%s error_code=%s error_message=%s",
                self.cfg.aws_bucket_name,
                key,
                code,
                msg,
            )
            raise BlobStorageError(f"S3 upload failed - {code}: {msg}") from e
        except BotoCoreError as e:
            logger.error("S3 upload failed bucket=%s key=%s error=%s", self.cfg.aws_bucket_name, key, e)
            raise BlobStorageError(f"S3 upload failed: {e}") from e
        logger.info("S3 upload success bucket=%s key=%s", self.cfg.aws_bucket_name, key)
        return StoredBlob(
            id=blob_id,
            filename=filename,
            content_type=content_type,
            size=len(data),
            upload_date=uploaded_at,
            metadata=metadata,
        )

    def _retrieve_sync(self, blob_id: str) -> bytes:
        key = self._key(blob_id)
        try:
            resp = self._get_s3_client().get_object(Bucket=self.cfg.aws_bucket_name, Key=key)
            data = resp["Body"].read()
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 retrieve failed key=%s error=%s", key, e)
            raise AcquisitionError(f"Failed to retrieve blob {blob_id}: {e}") from e
        logger.info("S3 retrieve success key=%s size_bytes=%d", key, len(data))
        return data

    def _delete_sync(self, blob_id: str) -> None:
        key = self._key(blob_id)
        self._get_s3_client().delete_object(Bucket=self.cfg.aws_bucket_name, Key=key)
        logger.info("S3 delete success bucket=%s key=%s", self.cfg.aws_bucket_name, key)

    def _describe_sync(self, blob_id: str) -> StoredBlob | None:
        key = self._key(blob_id)
        try:
            head = self._get_s3_client().head_object(Bucket=self.cfg.aws_bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code", "") in _NOT_FOUND_CODES:
                return None
            raise
        meta = dict(head.get("Metadata") or {})
        filename = meta.pop("filename", blob_id)
        meta.pop("uploaded_at", None)
        return StoredBlob(
            id=blob_id,
            filename=filename,
            content_type=head.get("ContentType") or "application/octet-stream",
            size=head.get("ContentLength", 0),
            upload_date=head.get("LastModified") or datetime.now(timezone.utc),
            metadata=meta,
        )

    async def store(self, data, filename, content_type, metadata=None) -> StoredBlob:
        return await asyncio.to_thread(self._store_sync, data, filename, content_type, _clean_metadata(metadata))

    async def retrieve(self, blob_id: str) -> bytes:
        return await asyncio.to_thread(self._retrieve_sync, blob_id)

    async def delete(self, blob_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, blob_id)

    async def describe(self, blob_id: str) -> StoredBlob | None:
        return await asyncio.to_thread(self._describe_sync, blob_id)


class LocalBlobStore(BlobStore):
    """Filesystem store: {root}/{blob_id} plus a {blob_id}.json sidecar with metadata."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or default_settings.upload_dir)

    def _paths(self, blob_id: str) -> tuple[Path, Path]:
        if not _BLOB_ID_RE.match(blob_id or ""):
            raise AcquisitionError(f"Invalid blob id: {blob_id!r}")
        return self.root / blob_id, self.root / f"{blob_id}.json"

    def _store_sync(self, data: bytes, filename: str, content_type: str, metadata: dict[str, str]) -> StoredBlob:
        blob = StoredBlob(
            id=_new_blob_id(),
            filename=filename,
            content_type=content_type,
            size=len(data),
            upload_date=datetime.now(timezone.utc),
            metadata=metadata,
        )
        data_path, meta_path = self._paths(blob.id)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            data_path.write_bytes(data)
            meta_path.write_text(blob.model_dump_json(), encoding="utf-8")
        except OSError as e:
            logger.error("Local blob write failed id=%s error=%s", blob.id, e)
            raise BlobStorageError(f"Failed to store blob {blob.id}: {e}") from e
        logger.info("Stored local blob id=%s filename=%s size_bytes=%d", blob.id, filename, len(data))
        return blob

    def _retrieve_sync(self, blob_id: str) -> bytes:
        data_path, _ = self._paths(blob_id)
        try:
            return data_path.read_bytes()
        except OSError as e:
            logger.error("Local blob read failed id=%s error=%s", blob_id, e)
            raise AcquisitionError(f"Failed to retrieve blob {blob_id}: {e}") from e

    def _delete_sync(self, blob_id: str) -> None:
        data_path, meta_path = self._paths(blob_id)
        data_path.unlink(missing_ok=True)
        meta_path.unlink(missing_ok=True)
        logger.info("Deleted local blob id=%s", blob_id)

    def _describe_sync(self, blob_id: str) -> StoredBlob | None:
        try:
            _, meta_path = self._paths(blob_id)
        except AcquisitionError:
            return None
        if not meta_path.exists():
            return None
        return StoredBlob.model_validate(json.loads(meta_path.read_text(encoding="utf-8")))

    async def store(self, data, filename, content_type, metadata=None) -> StoredBlob:
        return await asyncio.to_thread(self._store_sync, data, filename, content_type, _clean_metadata(metadata))

    async def retrieve(self, blob_id: str) -> bytes:
        return await asyncio.to_thread(self._retrieve_sync, blob_id)

    async def delete(self, blob_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, blob_id)

    async def describe(self, blob_id: str) -> StoredBlob | None:
        return await asyncio.to_thread(self._describe_sync, blob_id)


def build_blob_store(cfg: Settings | None = None) -> BlobStore:
    """S3 when AWS is configured, local storage otherwise."""
    cfg = cfg or default_settings
    if cfg.aws_access_key_id and cfg.aws_secret_access_key:
        return S3BlobStore(cfg)
    logger.warning("AWS not configured, using local blob storage at %s", cfg.upload_dir)
    return LocalBlobStore(cfg.upload_dir)
