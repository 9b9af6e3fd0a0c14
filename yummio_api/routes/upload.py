from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..errors import ErrorResponse, PayloadTooLarge
from ..schemas import UploadResponse
from ..security import get_current_user
from ..services.uploads import BlobStore, UploadService, get_blob_store

router = APIRouter(prefix="/upload", tags=["upload"])

CHUNK_BYTES = 64 * 1024


async def read_bounded(image: UploadFile, limit: int) -> bytes:
    """Lee el fichero por trozos y corta en cuanto supera ``limit`` (peticiones chunked sin Content-Length)."""
    buf = bytearray()
    while True:
        chunk = await image.read(CHUNK_BYTES)
        if not chunk:
            return bytes(buf)
        buf.extend(chunk)
        if len(buf) > limit:
            raise PayloadTooLarge(f"file too large: more than {limit} bytes", meta={"max": limit})


@router.post(
    "/image",
    response_model=UploadResponse,
    summary="Subir imagen (jpg, jpeg, png, webp)",
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def upload_image(
    image: UploadFile = File(...),
    store: BlobStore = Depends(get_blob_store),
    user_id: str = Depends(get_current_user),
):
    data = await read_bounded(image, settings.max_upload_bytes)
    # put_object es bloqueante
    return await run_in_threadpool(UploadService(store).upload_image, image.filename or "", data)
