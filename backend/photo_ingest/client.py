import base64
import json
from typing import Any

import httpx


def unwrap_listing(payload: Any) -> list[dict[str, Any]]:
    """Normalize a listing response to a list of records.

    Accepts a bare array or an API-gateway envelope whose ``body`` is either
    a JSON string or an already decoded value. Anything else yields ``[]``.
    """
    if not payload:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and payload.get("body"):
        body = payload["body"]
        if isinstance(body, str):
            try:
                body = json.loads(body)
            except ValueError:
                return []
        return body if isinstance(body, list) else []
    return []


class PhotoClient:
    """Small HTTP client for the upload and listing endpoints."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        upload_path: str = "/photos",
        list_path: str = "/photos",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"x-api-key": api_key} if api_key else {}
        self.upload_path = upload_path
        self.list_path = list_path
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "PhotoClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def upload_photo(
        self,
        filename: str,
        content: bytes,
        content_type: str,
        prefix: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "filename": filename,
            "filetype": content_type,
            "data": base64.b64encode(content).decode("ascii"),
        }
        if prefix:
            body["prefix"] = prefix
        response = self._client.post(self.upload_path, json=body)
        response.raise_for_status()
        return response.json()

    def list_photos(self, prefix: str | None = None) -> list[dict[str, Any]]:
        params = {"prefix": prefix} if prefix else None
        response = self._client.get(self.list_path, params=params)
        response.raise_for_status()
        return unwrap_listing(response.json())
