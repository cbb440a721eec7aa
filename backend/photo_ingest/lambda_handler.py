"""API-gateway proxy entry points wrapping the upload and listing handlers."""

import asyncio
import base64
import logging
from functools import lru_cache
from typing import Any

from photo_ingest.core.config import get_settings
from photo_ingest.core.logging import configure_logging
from photo_ingest.services.listing import ListingHandler
from photo_ingest.services.storage import get_object_store
from photo_ingest.services.uploads import UploadHandler

logger = logging.getLogger(__name__)


@lru_cache
def get_upload_handler() -> UploadHandler:
    settings = get_settings()
    configure_logging(settings.log_level)
    return UploadHandler(settings, get_object_store())


@lru_cache
def get_listing_handler() -> ListingHandler:
    settings = get_settings()
    configure_logging(settings.log_level)
    return ListingHandler(settings, get_object_store())


def _event_body(event: dict[str, Any]) -> Any:
    body = event.get("body")
    if body and event.get("isBase64Encoded") and isinstance(body, str):
        try:
            return base64.b64decode(body)
        except ValueError:
            logger.warning("Proxy body flagged as base64 but failed to decode")
    return body


def upload_handler(event: dict[str, Any] | None, context: Any = None) -> dict[str, Any]:
    event = event or {}
    method = event.get("httpMethod") or "POST"
    result = asyncio.run(get_upload_handler().handle(method, _event_body(event)))
    return result.to_proxy()


def list_handler(event: dict[str, Any] | None, context: Any = None) -> dict[str, Any]:
    event = event or {}
    method = event.get("httpMethod") or "GET"
    params = event.get("queryStringParameters") or {}
    result = asyncio.run(
        get_listing_handler().handle(
            method,
            prefix=params.get("prefix"),
            cursor=params.get("cursor"),
            limit=params.get("limit"),
        )
    )
    return result.to_proxy()
