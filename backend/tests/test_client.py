import base64
import json

import httpx
import pytest

from photo_ingest.client import PhotoClient, unwrap_listing

RECORDS = [{"key": "events/20240102030405_a.jpg"}]


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        (RECORDS, RECORDS),
        ({"statusCode": 200, "headers": {}, "body": json.dumps(RECORDS)}, RECORDS),
        ({"statusCode": 200, "body": RECORDS}, RECORDS),
        ({"statusCode": 200, "body": "{broken"}, []),
        ({"unexpected": True}, []),
        (None, []),
    ],
)
def test_unwrap_listing(payload, expected):
    assert unwrap_listing(payload) == expected


def test_list_photos_unwraps_envelope():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["api_key"] = request.headers.get("x-api-key")
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"statusCode": 200, "body": json.dumps(RECORDS)})

    with PhotoClient("https://api.example.com", api_key="k", transport=httpx.MockTransport(handler)) as client:
        assert client.list_photos(prefix="events") == RECORDS
    assert seen == {"api_key": "k", "params": {"prefix": "events"}}


def test_upload_photo_sends_base64_body():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"key": "k", "url": "u", "contentType": "image/png", "size": 3})

    with PhotoClient("https://api.example.com", transport=httpx.MockTransport(handler)) as client:
        result = client.upload_photo("a.png", b"abc", "image/png", prefix="trips")

    assert result["size"] == 3
    assert captured == {
        "filename": "a.png",
        "filetype": "image/png",
        "data": base64.b64encode(b"abc").decode(),
        "prefix": "trips",
    }


def test_upload_photo_raises_on_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "empty data"}))
    with PhotoClient("https://api.example.com", transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            client.upload_photo("a.png", b"", "image/png")
