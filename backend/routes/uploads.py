from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from backend.auth import Identity, require_identity
from backend.errors import ValidationError
from backend.schemas import UploadResponse
from backend.services import upload_service
from backend.settings import get_settings

router = APIRouter()

UPLOAD_CHUNK_BYTES = 64 * 1024


async def _read_limited(file: UploadFile, limit: int) -> bytes:
    chunks = []
    size = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise ValidationError("Uploaded file is too large", field="file")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/v1/uploads", response_model=UploadResponse)
async def upload_file(file: UploadFile = File(...), identity: Identity = Depends(require_identity)):
    content = await _read_limited(file, get_settings().max_upload_bytes)
    return {"file_url": upload_service.upload(file.filename or "", content)}


@router.get("/uploads/{name}")
async def download_file(name: str):
    path = upload_service.resolve(name)
    if path is None:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path)
