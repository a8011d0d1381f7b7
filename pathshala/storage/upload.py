from __future__ import annotations

import asyncio
import inspect
import logging
import mimetypes
import re
import time
from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

from pathshala.auth.schemas import Identity
from pathshala.common.errors import UploadError
from pathshala.common.files import is_image
from pathshala.db.records import FileAttachment

logger = logging.getLogger("storage.upload")

# Folders used by the UI; the image folders only take images
IMAGE_FOLDERS = frozenset({"topic-thumbnails", "community-images", "challenge-images", "avatars"})
FILE_FOLDERS = frozenset({"video-files", "community-files", "challenge-files"})
FOLDERS = IMAGE_FOLDERS | FILE_FOLDERS

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


async def _maybe_await(val):
    return await val if inspect.isawaitable(val) else val


def object_key(folder: str, filename: str, now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    safe = _UNSAFE.sub("_", filename).strip("_") or "file"
    return f"{folder}/{stamp}_{safe}"


def classify_storage_error(exc: BaseException) -> str:
    """Map a storage client failure onto an ``UploadError`` kind."""
    parts = [str(exc)]
    for attr in ("status", "statusCode", "status_code", "message", "error"):
        value = getattr(exc, attr, None)
        if value:
            parts.append(str(value))
    for arg in getattr(exc, "args", ()) or ():
        if isinstance(arg, dict):
            parts.extend(str(v) for v in arg.values() if v)
    text = " ".join(parts).lower()
    if "bucket not found" in text or ("bucket" in text and "404" in text):
        return "bucket_not_found"
    if "413" in text or "exceeded" in text or "too large" in text or "quota" in text:
        return "quota_exceeded"
    if "401" in text or "403" in text or "unauthorized" in text or "jwt" in text:
        return "unauthenticated"
    if "mime" in text or ("invalid" in text and "type" in text):
        return "invalid_format"
    return "unknown"


class StorageUploader:
    """Uploads bytes to a Supabase Storage bucket and returns the public URL."""

    def __init__(
        self,
        client_factory: Callable[[], Awaitable[Any]],
        *,
        bucket: str,
        timeout: float = 60.0,
    ) -> None:
        self._client_factory = client_factory
        self.bucket = bucket
        self.timeout = timeout

    async def upload(
        self,
        data: bytes,
        filename: str,
        folder: str,
        identity: Optional[Identity],
        content_type: Optional[str] = None,
    ) -> str:
        if identity is None:
            raise UploadError("unauthenticated")
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        if folder not in FOLDERS:
            raise UploadError("invalid_format", "অজানা ফোল্ডার!")
        if folder in IMAGE_FOLDERS and not is_image(content_type):
            raise UploadError("invalid_format")

        key = object_key(folder, filename)
        client = await self._client_factory()
        bucket = client.storage.from_(self.bucket)
        t0 = time.perf_counter()
        try:
            res = await asyncio.wait_for(
                _maybe_await(bucket.upload(path=key, file=data, file_options={"content-type": content_type})),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("upload.timeout key=%s", key)
            raise UploadError("unknown") from exc
        except Exception as exc:  # noqa: BLE001
            kind = classify_storage_error(exc)
            logger.warning("upload.failed key=%s kind=%s error=%s", key, kind, exc)
            raise UploadError(kind) from exc
        if isinstance(res, dict) and res.get("error"):
            kind = classify_storage_error(Exception(res.get("error")))
            logger.warning("upload.failed key=%s kind=%s error=%s", key, kind, res.get("error"))
            raise UploadError(kind)

        url = await _maybe_await(bucket.get_public_url(key))
        ms = int((time.perf_counter() - t0) * 1000)
        logger.info("upload.ok key=%s bytes=%d ms=%d user_id=%s", key, len(data), ms, identity.id)
        return url

    async def upload_attachment(
        self,
        data: bytes,
        filename: str,
        folder: str,
        identity: Optional[Identity],
        content_type: Optional[str] = None,
    ) -> FileAttachment:
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        url = await self.upload(data, filename, folder, identity, content_type)
        return FileAttachment(id=uuid4().hex, name=filename, url=url, size=len(data), type=content_type)

    def key_from_url(self, url: str) -> Optional[str]:
        marker = f"/object/public/{self.bucket}/"
        if marker not in url:
            return None
        return url.split(marker, 1)[1].split("?", 1)[0]

    async def delete(self, url: str) -> bool:
        """Best-effort removal of an uploaded object."""
        key = self.key_from_url(url)
        if not key:
            return False
        try:
            client = await self._client_factory()
            await _maybe_await(client.storage.from_(self.bucket).remove([key]))
        except Exception as exc:  # noqa: BLE001
            logger.warning("upload.delete_failed key=%s error=%s", key, exc)
            return False
        return True


__all__ = ["FOLDERS", "IMAGE_FOLDERS", "StorageUploader", "classify_storage_error", "object_key"]
