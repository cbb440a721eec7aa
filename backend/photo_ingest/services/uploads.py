"""Validate-and-store pipeline behind the upload endpoint."""

import json
import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from photo_ingest.core.config import Settings
from photo_ingest.core.errors import (
    BackendError,
    ClientInputError,
    ConfigurationError,
    InvalidJsonBody,
    MissingBody,
)
from photo_ingest.schemas import UploadRequest, UploadResponse
from photo_ingest.services.keys import build_key
from photo_ingest.services.responses import (
    HandlerResponse,
    error_response,
    json_response,
    preflight_response,
)
from photo_ingest.services.storage import ObjectStore
from photo_ingest.services.validation import validate

logger = logging.getLogger(__name__)

UPLOAD_FAILED = "Upload failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _random_nonce() -> str:
    return secrets.token_hex(4)


def parse_json_body(body: Any) -> dict[str, Any]:
    """Accept raw bytes, text, or an already decoded mapping."""
    if isinstance(body, dict):
        return body
    if not body:
        raise MissingBody()
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        raise InvalidJsonBody() from None
    if not isinstance(payload, dict):
        raise InvalidJsonBody()
    return payload


class UploadHandler:
    def __init__(
        self,
        settings: Settings,
        store: ObjectStore,
        clock: Callable[[], datetime] = _utcnow,
        nonce_factory: Callable[[], str] = _random_nonce,
    ) -> None:
        self.settings = settings
        self.store = store
        self.clock = clock
        self.nonce_factory = nonce_factory

    async def handle(self, method: str, body: Any) -> HandlerResponse:
        if method.upper() == "OPTIONS":
            return preflight_response(self.settings)

        try:
            result = await self._process(body)
        except ClientInputError as exc:
            return error_response(self.settings, exc.status_code, exc.public_message)
        except ConfigurationError as exc:
            logger.error("Upload rejected, service misconfigured: %s", exc)
            return error_response(self.settings, exc.status_code, exc.public_message)
        except BackendError as exc:
            logger.error("Upload failed in object store: %s", exc)
            return error_response(self.settings, 500, UPLOAD_FAILED)
        except Exception:
            logger.exception("Unhandled error while uploading")
            return error_response(self.settings, 500, UPLOAD_FAILED)

        return json_response(self.settings, 200, result.model_dump(by_alias=True))

    async def _process(self, body: Any) -> UploadResponse:
        if not self.settings.bucket_name:
            raise ConfigurationError("BUCKET_NAME is not set")

        request = UploadRequest.model_validate(parse_json_body(body))
        upload = validate(
            request,
            allowed_types=self.settings.allowed_types,
            max_bytes=self.settings.max_upload_bytes,
        )

        now = self.clock()
        nonce = self.nonce_factory() if self.settings.key_unique_suffix else None
        key = build_key(upload.prefix, upload.filename, now, nonce=nonce)

        await self.store.put(
            key,
            upload.data,
            upload.content_type,
            metadata={
                "originalfilename": upload.filename,
                "uploadedat": now.isoformat(),
            },
        )
        logger.info("Stored %s (%d bytes, %s)", key, upload.size, upload.content_type)

        try:
            url = self.store.presign_read(key, upload.content_type, self.settings.url_expires_seconds)
        except BackendError:
            logger.warning("Object %s stored but presigning failed; leaving it in place", key)
            raise

        return UploadResponse(key=key, url=url, content_type=upload.content_type, size=upload.size)
