# services/api/routers/files.py
from __future__ import annotations

import mimetypes

from fastapi import APIRouter
from fastapi.responses import FileResponse

from core.blob_store import LocalBlobStore
from core.errors import NotFoundError
from dependencies import Blobs

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{bucket}/{path:path}")
async def get_file(bucket: str, path: str, blobs: Blobs):
    """Serve an object published by the local bucket store."""
    if not isinstance(blobs, LocalBlobStore):
        raise NotFoundError("File not found")
    try:
        target = blobs.resolve_path(bucket, path)
    except ValueError:
        raise NotFoundError("File not found")
    if not target.is_file():
        raise NotFoundError("File not found")

    media_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
    return FileResponse(target, media_type=media_type, filename=target.name)
