import time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse

from photo_ingest.api.deps import get_store
from photo_ingest.services.storage import LocalObjectStore, ObjectStore

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{object_path:path}", name="download_file")
async def download_file(
    object_path: str,
    expires: int | None = Query(None),
    signature: str | None = Query(None),
    store: ObjectStore = Depends(get_store),
):
    if not isinstance(store, LocalObjectStore):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if not store.verify_link(object_path, expires, signature):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid link")
    if expires < time.time():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Link expired")

    try:
        path, content_type = store.open_for_download(object_path)
    except (FileNotFoundError, ValueError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from None
    return FileResponse(path, media_type=content_type)
