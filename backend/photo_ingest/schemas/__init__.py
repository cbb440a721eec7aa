from photo_ingest.schemas.photos import (
    GroupRead,
    StoredObjectRead,
    UploadRequest,
    UploadResponse,
)

__all__ = [
    "UploadRequest",
    "UploadResponse",
    "StoredObjectRead",
    "GroupRead",
]
