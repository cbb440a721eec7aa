from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from photo_ingest.api.routers import files as files_router
from photo_ingest.api.routers import photos as photos_router
from photo_ingest.core.config import Settings, get_settings
from photo_ingest.core.logging import configure_logging
from photo_ingest.services.listing import ListingHandler
from photo_ingest.services.storage import ObjectStore, create_object_store
from photo_ingest.services.uploads import UploadHandler


def create_app(settings: Settings | None = None, store: ObjectStore | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    if store is None:
        store = create_object_store(settings)

    app = FastAPI(
        debug=settings.debug,
        title="Photo Ingest API",
    )
    app.state.settings = settings
    app.state.store = store
    app.state.upload_handler = UploadHandler(settings, store)
    app.state.listing_handler = ListingHandler(settings, store)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=settings.cors_headers,
        )

    @app.get("/health")
    async def health():
        return {"ok": True}

    app.include_router(photos_router.router)
    app.include_router(files_router.router)

    return app


app = create_app()
