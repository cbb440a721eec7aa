import json
from dataclasses import dataclass, field
from typing import Any

from photo_ingest.core.config import Settings

NEXT_CURSOR_HEADER = "X-Next-Cursor"


@dataclass
class HandlerResponse:
    status_code: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    def to_proxy(self) -> dict[str, Any]:
        """Render as an API-gateway proxy envelope."""
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": "" if self.body is None else json.dumps(self.body),
        }


def json_response(settings: Settings, status_code: int, body: Any) -> HandlerResponse:
    headers = {"Content-Type": "application/json", **settings.cors_headers}
    return HandlerResponse(status_code=status_code, body=body, headers=headers)


def error_response(settings: Settings, status_code: int, message: str) -> HandlerResponse:
    return json_response(settings, status_code, {"error": message})


def preflight_response(settings: Settings) -> HandlerResponse:
    headers = {"Content-Type": "application/json", **settings.cors_headers}
    return HandlerResponse(status_code=200, body=None, headers=headers)
