"""Enumerate stored objects for the gallery."""

import logging
from typing import Any

from photo_ingest.core.config import Settings
from photo_ingest.core.errors import BackendError, ClientInputError, ConfigurationError
from photo_ingest.schemas import StoredObjectRead
from photo_ingest.services.grouping import group_objects, sort_groups
from photo_ingest.services.keys import sanitize_prefix
from photo_ingest.services.responses import (
    NEXT_CURSOR_HEADER,
    HandlerResponse,
    error_response,
    json_response,
    preflight_response,
)
from photo_ingest.services.storage import ObjectStore, StoredObject

logger = logging.getLogger(__name__)

LISTING_FAILED = "Listing failed"


def _parse_limit(raw: Any, ceiling: int) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise ClientInputError("limit must be a positive integer") from None
    if limit <= 0:
        raise ClientInputError("limit must be a positive integer")
    return min(limit, ceiling)


def _parse_depth(raw: Any) -> int:
    if raw is None or raw == "":
        return 1
    if str(raw) not in ("1", "2"):
        raise ClientInputError("depth must be 1 or 2")
    return int(raw)


class ListingHandler:
    def __init__(self, settings: Settings, store: ObjectStore) -> None:
        self.settings = settings
        self.store = store

    def _store_prefix(self, prefix: str | None) -> str | None:
        safe = sanitize_prefix(prefix)
        return f"{safe}/" if safe else None

    def _to_record(self, obj: StoredObject) -> StoredObjectRead:
        url = None
        if self.settings.list_presign:
            url = self.store.presign_read(obj.key, obj.content_type, self.settings.url_expires_seconds)
        return StoredObjectRead(
            key=obj.key,
            content_type=obj.content_type,
            size=obj.size,
            last_modified=obj.uploaded_at,
            original_filename=obj.original_filename,
            url=url,
        )

    async def collect(self, prefix: str | None = None) -> list[StoredObjectRead]:
        """Walk every page under ``prefix``."""
        records: list[StoredObjectRead] = []
        cursor = None
        while True:
            page = await self.store.list(prefix=prefix, cursor=cursor)
            records.extend(self._to_record(obj) for obj in page.items)
            if not page.next_cursor:
                return records
            cursor = page.next_cursor

    async def _list(
        self,
        prefix: str | None,
        cursor: str | None,
        limit: Any,
    ) -> tuple[list[StoredObjectRead], str | None]:
        if not self.settings.bucket_name:
            raise ConfigurationError("BUCKET_NAME is not set")
        page_size = _parse_limit(limit, self.settings.list_page_size)
        store_prefix = self._store_prefix(prefix)
        if page_size is None and not cursor:
            return await self.collect(store_prefix), None
        if page_size is None:
            page_size = self.settings.list_page_size
        page = await self.store.list(prefix=store_prefix, cursor=cursor, limit=page_size)
        return [self._to_record(obj) for obj in page.items], page.next_cursor

    def _failure(self, exc: Exception) -> HandlerResponse:
        if isinstance(exc, ClientInputError):
            return error_response(self.settings, exc.status_code, exc.public_message)
        if isinstance(exc, ConfigurationError):
            logger.error("Listing rejected, service misconfigured: %s", exc)
            return error_response(self.settings, exc.status_code, exc.public_message)
        if isinstance(exc, BackendError):
            logger.error("Listing failed in object store: %s", exc)
        else:
            logger.error("Unhandled error while listing", exc_info=exc)
        return error_response(self.settings, 500, LISTING_FAILED)

    async def handle(
        self,
        method: str = "GET",
        prefix: str | None = None,
        cursor: str | None = None,
        limit: Any = None,
    ) -> HandlerResponse:
        if method.upper() == "OPTIONS":
            return preflight_response(self.settings)

        try:
            records, next_cursor = await self._list(prefix, cursor, limit)
        except Exception as exc:
            return self._failure(exc)

        response = json_response(
            self.settings,
            200,
            [record.model_dump(mode="json", by_alias=True) for record in records],
        )
        if next_cursor:
            response.headers[NEXT_CURSOR_HEADER] = next_cursor
            response.headers["Access-Control-Expose-Headers"] = NEXT_CURSOR_HEADER
        return response

    async def handle_groups(
        self,
        prefix: str | None = None,
        depth: Any = None,
        sort: str = "name",
        order: str = "asc",
    ) -> HandlerResponse:
        try:
            group_depth = _parse_depth(depth)
            if sort not in ("name", "count", "recent"):
                raise ClientInputError("sort must be one of name, count, recent")
            if order not in ("asc", "desc"):
                raise ClientInputError("order must be asc or desc")
            records, _ = await self._list(prefix, None, None)
        except Exception as exc:
            return self._failure(exc)

        groups = sort_groups(group_objects(records, group_depth), by=sort, descending=order == "desc")
        return json_response(
            self.settings,
            200,
            [group.model_dump(mode="json", by_alias=True) for group in groups],
        )
