"""Storage backends that persist uploaded images and hand back a fetchable URL."""

from __future__ import annotations

import io
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Callable
from urllib.parse import urlparse

from minio import Minio

from .config import Settings, StorageSettings, UploadSettings
from .schemas import UploadedImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredImage:
    name: str
    url: str


def _millis() -> int:
    return int(time.time() * 1000)


class ImageStorage(ABC):
    """Base class: store uploaded bytes, return a retrievable URL."""

    def __init__(self, clock: Callable[[], int] = _millis) -> None:
        self._clock = clock

    def stored_name(self, upload: UploadedImage) -> str:
        ext = Path(upload.filename).suffix
        return f"{upload.field_name}_{self._clock()}{ext}"

    @abstractmethod
    def store(self, upload: UploadedImage) -> StoredImage:
        """Persist ``upload`` and return where the vision API can fetch it."""


class LocalImageStorage(ImageStorage):
    """Writes uploads to a directory the app serves as static files."""

    def __init__(self, settings: UploadSettings, clock: Callable[[], int] = _millis) -> None:
        super().__init__(clock)
        self._directory = Path(settings.directory)
        self._base = settings.public_base_url.rstrip("/") + "/" + settings.mount_path.strip("/")

    @property
    def directory(self) -> Path:
        return self._directory

    def store(self, upload: UploadedImage) -> StoredImage:
        self._directory.mkdir(parents=True, exist_ok=True)
        name = self.stored_name(upload)
        (self._directory / name).write_bytes(upload.content)
        logger.debug("Stored upload %s (%d bytes) in %s", name, upload.size, self._directory)
        return StoredImage(name=name, url=f"{self._base}/{name}")


class MinioImageStorage(ImageStorage):
    """Puts uploads into a MinIO bucket and answers with a download URL.

    A presigned URL is returned when ``presign_expiry_sec`` is positive,
    otherwise a static ``<endpoint>/<bucket>/<key>`` URL.
    """

    prefix = "uploads"

    def __init__(self, settings: StorageSettings, client: Minio | None = None, clock: Callable[[], int] = _millis) -> None:
        super().__init__(clock)
        self._settings = settings
        self._client = client or _build_minio_client(settings)

    def _ensure_bucket(self) -> str:
        bucket = self._settings.bucket
        if not self._client.bucket_exists(bucket):
            self._client.make_bucket(bucket)
        return bucket

    def _download_url(self, bucket: str, object_key: str) -> str:
        expiry = self._settings.presign_expiry_sec
        if expiry and expiry > 0:
            return self._client.presigned_get_object(bucket, object_key, expires=timedelta(seconds=expiry))
        base_endpoint = str(self._settings.public_endpoint or self._settings.endpoint).rstrip("/")
        return f"{base_endpoint}/{bucket}/{object_key}"

    def store(self, upload: UploadedImage) -> StoredImage:
        bucket = self._ensure_bucket()
        name = self.stored_name(upload)
        object_key = f"{self.prefix}/{name}"
        self._client.put_object(
            bucket,
            object_key,
            io.BytesIO(upload.content),
            length=upload.size,
            content_type=upload.content_type or "application/octet-stream",
        )
        logger.debug("Stored upload %s in bucket %s", object_key, bucket)
        return StoredImage(name=name, url=self._download_url(bucket, object_key))


def _build_minio_client(settings: StorageSettings) -> Minio:
    parsed = urlparse(settings.endpoint)
    secure = parsed.scheme == "https"
    netloc = parsed.netloc or parsed.path
    return Minio(netloc, access_key=settings.access_key, secret_key=settings.secret_key, secure=secure)


def build_storage(settings: Settings) -> ImageStorage:
    if settings.uploads.backend == "minio":
        return MinioImageStorage(settings.minio)
    return LocalImageStorage(settings.uploads)
