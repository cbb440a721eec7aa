import secrets

from fastapi import Header, HTTPException, Request, status

from photo_ingest.core.config import Settings
from photo_ingest.services.listing import ListingHandler
from photo_ingest.services.storage import ObjectStore
from photo_ingest.services.uploads import UploadHandler


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ObjectStore:
    return request.app.state.store


def get_upload_handler(request: Request) -> UploadHandler:
    return request.app.state.upload_handler


def get_listing_handler(request: Request) -> ListingHandler:
    return request.app.state.listing_handler


def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None),
) -> None:
    """Gateway-style shared secret check; disabled when API_KEY is unset."""
    expected = get_app_settings(request).api_key
    if not expected:
        return
    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
