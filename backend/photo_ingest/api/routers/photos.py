from typing import Any
from urllib.parse import unquote, urlsplit

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from photo_ingest.api.deps import get_listing_handler, get_upload_handler, require_api_key
from photo_ingest.services.listing import ListingHandler
from photo_ingest.services.responses import HandlerResponse
from photo_ingest.services.storage import LOCAL_DOWNLOAD_SCHEME
from photo_ingest.services.uploads import UploadHandler

router = APIRouter(tags=["photos"])


def localize_url(url: str | None, request: Request) -> str | None:
    """Turn a ``local://download/`` link into a URL served by this app."""
    if not url or not url.startswith(LOCAL_DOWNLOAD_SCHEME):
        return url
    query = urlsplit(url).query
    local_key = unquote(url.removeprefix(LOCAL_DOWNLOAD_SCHEME).split("?", 1)[0])
    download_url = str(request.url_for("download_file", object_path=local_key))
    return f"{download_url}?{query}" if query else download_url


def _localize(item: Any, request: Request) -> Any:
    if not isinstance(item, dict):
        return item
    if "url" in item:
        item = {**item, "url": localize_url(item["url"], request)}
    if "photos" in item:
        item = {**item, "photos": [_localize(photo, request) for photo in item["photos"]]}
    return item


def render(result: HandlerResponse, request: Request) -> Response:
    if result.body is None:
        return Response(status_code=result.status_code, headers=result.headers)
    if isinstance(result.body, list):
        body = [_localize(item, request) for item in result.body]
    else:
        body = _localize(result.body, request)
    return JSONResponse(status_code=result.status_code, content=body, headers=result.headers)


@router.options("/photos")
@router.options("/upload-photo")
@router.options("/list-photos")
@router.options("/photos/groups")
async def photos_preflight(
    request: Request,
    handler: UploadHandler = Depends(get_upload_handler),
) -> Response:
    return render(await handler.handle("OPTIONS", None), request)


@router.post("/photos", dependencies=[Depends(require_api_key)])
@router.post("/upload-photo", dependencies=[Depends(require_api_key)])
async def upload_photo(
    request: Request,
    handler: UploadHandler = Depends(get_upload_handler),
) -> Response:
    body = await request.body()
    return render(await handler.handle("POST", body), request)


@router.get("/photos", dependencies=[Depends(require_api_key)])
@router.get("/list-photos", dependencies=[Depends(require_api_key)])
async def list_photos(
    request: Request,
    prefix: str | None = Query(None),
    cursor: str | None = Query(None),
    limit: str | None = Query(None),
    handler: ListingHandler = Depends(get_listing_handler),
) -> Response:
    result = await handler.handle("GET", prefix=prefix, cursor=cursor, limit=limit)
    return render(result, request)


@router.get("/photos/groups", dependencies=[Depends(require_api_key)])
async def list_photo_groups(
    request: Request,
    prefix: str | None = Query(None),
    depth: str | None = Query(None),
    sort: str = Query("name"),
    order: str = Query("asc"),
    handler: ListingHandler = Depends(get_listing_handler),
) -> Response:
    result = await handler.handle_groups(prefix=prefix, depth=depth, sort=sort, order=order)
    return render(result, request)
