"""
Subida de imágenes: la validación (extensión y tamaño) se hace aquí; el almacenamiento es un
``BlobStore`` intercambiable (S3 compatible o marcador de posición en desarrollo).
"""
from __future__ import annotations
import io
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import settings
from ..errors import PayloadTooLarge, UpstreamFailure, ValidationFailed
from ..schemas import UploadResponse

logger = logging.getLogger("yummio.uploads")

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


def content_type_for(ext: str) -> str:
    return CONTENT_TYPES.get(ext, "application/octet-stream")


class BlobStore(Protocol):
    def put_bytes(self, *, key: str, content_type: str, data: bytes) -> str: ...


class S3BlobStore:
    def __init__(
        self,
        bucket: str,
        region_name: str,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        self.bucket = bucket
        if public_base_url:
            self.public_base_url = public_base_url.rstrip("/")
        else:
            self.public_base_url = f"https://{bucket}.s3.{region_name}.amazonaws.com"
        self.s3 = boto3.client(
            service_name="s3",
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
            region_name=region_name,
        )

    def put_bytes(self, *, key: str, content_type: str, data: bytes) -> str:
        self.s3.put_object(Bucket=self.bucket, Key=key, Body=io.BytesIO(data), ContentType=content_type)
        return f"{self.public_base_url}/{key}"


class PlaceholderBlobStore:
    """Desarrollo sin bucket: no guarda nada y devuelve una imagen de relleno."""

    def put_bytes(self, *, key: str, content_type: str, data: bytes) -> str:
        return f"https://picsum.photos/800/600?random={uuid.uuid4()}"


def get_blob_store() -> BlobStore:
    if not settings.s3_bucket:
        return PlaceholderBlobStore()
    return S3BlobStore(
        bucket=settings.s3_bucket,
        region_name=settings.s3_region,
        endpoint_url=settings.s3_endpoint,
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        public_base_url=settings.s3_public_base_url,
    )


def object_key(ext: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(tz=timezone.utc)
    return f"recipes/{now:%Y/%m/%d}/{uuid.uuid4()}.{ext}"


class UploadService:
    def __init__(self, store: BlobStore):
        self.store = store

    def upload_image(self, filename: str, data: bytes) -> UploadResponse:
        ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
        if ext not in settings.parsed_allowed_image_types():
            logger.info("Upload rejected, invalid file type: %r", ext)
            raise ValidationFailed(f"invalid file type: {ext or 'unknown'}")
        if len(data) > settings.max_upload_bytes:
            logger.info("Upload rejected, %d bytes", len(data))
            raise PayloadTooLarge(
                f"file too large: {len(data)} bytes", meta={"max": settings.max_upload_bytes}
            )

        key = object_key(ext)
        try:
            url = self.store.put_bytes(key=key, content_type=content_type_for(ext), data=data)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Blob store failure for %s: %s", key, exc)
            raise UpstreamFailure("image upload failed") from exc
        logger.info("Image uploaded: %s (%d bytes)", key, len(data))
        return UploadResponse(url=url, filename=key, size=len(data))
